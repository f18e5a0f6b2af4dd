from __future__ import annotations

import logging

import httpx

from quiz_service.core.config import settings
from quiz_service.services.stats_client import AnswerRecord, SessionRecord, StatsClient

log = logging.getLogger(__name__)


def report_session_created_job(record: SessionRecord) -> dict:
    StatsClient().save_session(record)
    log.info("stats: session saved session_id=%s", record.session_id)
    return {"ok": True, "session_id": record.session_id}


def report_answer_job(session_id: int, record: AnswerRecord) -> dict:
    StatsClient().save_response(session_id, record)
    log.info("stats: response saved session_id=%s question_id=%s", session_id, record.question_id)
    return {"ok": True, "session_id": session_id, "question_id": record.question_id}


def report_finished_job(session_id: int) -> dict:
    StatsClient().finish_session(session_id)
    log.info("stats: session finished session_id=%s", session_id)
    return {"ok": True, "session_id": session_id}


def notify_user_approved_job(user_id: int) -> dict:
    """Tell the auth service a user was approved so it can notify them.

    Best-effort: failures are logged and reported in the job result, never raised.
    """
    url = str(settings.auth_base_url or "").rstrip("/") + "/auth/notify-approved"
    try:
        timeout = httpx.Timeout(settings.auth_timeout_seconds)
        with httpx.Client(timeout=timeout) as client:
            r = client.post(
                url,
                json={"user_id": int(user_id)},
                headers={"X-Internal-Api-Key": settings.internal_api_key},
            )
    except httpx.HTTPError as e:
        log.warning("notify-approved: call failed user_id=%s error=%s", user_id, type(e).__name__)
        return {"ok": False, "error": type(e).__name__}

    if r.status_code != 204:
        log.warning("notify-approved: non-204 status user_id=%s status=%s", user_id, r.status_code)
        return {"ok": False, "status": r.status_code}
    return {"ok": True}
