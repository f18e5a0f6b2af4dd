"""Outbound statistics notifications.

Delivery is at-most-once: nothing here retries. ``QueuedStatsReporter`` hands
each event to an RQ queue and returns; the worker performs the HTTP call.
``InlineStatsReporter`` performs it on the request thread.
"""

from __future__ import annotations

import logging
from typing import Protocol

from quiz_service.core.config import settings
from quiz_service.core.queue import get_queue
from quiz_service.models.quiz_session import QuizSession
from quiz_service.services.errors import StatsReportError
from quiz_service.services.stats_client import AnswerRecord, SessionRecord, StatsClient
from quiz_service.services.stats_jobs import (
    report_answer_job,
    report_finished_job,
    report_session_created_job,
)

log = logging.getLogger(__name__)


def session_record(session: QuizSession) -> SessionRecord:
    mode = getattr(session.mode, "value", session.mode)
    return SessionRecord(
        session_id=int(session.id),
        user_id=int(session.user_id),
        quiz_mode=str(mode),
        test_id=session.test_id,
        test_code=session.test_code,
    )


class StatsReporter(Protocol):
    def report_session_created(self, session: QuizSession) -> None: ...

    def report_answer(self, session_id: int, record: AnswerRecord) -> None: ...

    def report_finished(self, session_id: int) -> None: ...


class QueuedStatsReporter:
    def __init__(self, queue_name: str | None = None):
        self.queue_name = queue_name or settings.rq_queue_stats

    def _enqueue(self, func, *args) -> None:
        try:
            q = get_queue(self.queue_name)
            q.enqueue(func, *args, job_timeout=30, result_ttl=60 * 60, failure_ttl=24 * 60 * 60)
        except Exception as e:
            raise StatsReportError(f"failed to enqueue {func.__name__}: {type(e).__name__}") from e

    def report_session_created(self, session: QuizSession) -> None:
        self._enqueue(report_session_created_job, session_record(session))

    def report_answer(self, session_id: int, record: AnswerRecord) -> None:
        self._enqueue(report_answer_job, int(session_id), record)

    def report_finished(self, session_id: int) -> None:
        self._enqueue(report_finished_job, int(session_id))


class InlineStatsReporter:
    def __init__(self, client: StatsClient | None = None):
        self.client = client or StatsClient()

    def report_session_created(self, session: QuizSession) -> None:
        self.client.save_session(session_record(session))

    def report_answer(self, session_id: int, record: AnswerRecord) -> None:
        self.client.save_response(session_id, record)

    def report_finished(self, session_id: int) -> None:
        self.client.finish_session(session_id)


def get_stats_reporter() -> StatsReporter:
    if (settings.stats_delivery or "").strip().lower() == "inline":
        return InlineStatsReporter()
    return QueuedStatsReporter()
