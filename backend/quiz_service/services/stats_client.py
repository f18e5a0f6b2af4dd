from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

import httpx

from quiz_service.core.config import settings
from quiz_service.services.errors import StatsReportError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerRecord:
    question_id: int
    answer: str
    is_correct: bool
    screen_size: str
    time_spent: int
    case_code: str


@dataclass(frozen=True)
class SessionRecord:
    session_id: int
    user_id: int
    quiz_mode: str
    test_id: int | None = None
    test_code: str | None = None

    def to_json(self) -> dict:
        out = {"session_id": self.session_id, "user_id": self.user_id, "quiz_mode": self.quiz_mode}
        if self.test_id is not None:
            out["test_id"] = self.test_id
        if self.test_code is not None:
            out["test_code"] = self.test_code
        return out


class StatsClient:
    """HTTP client for the statistics service's internal session endpoints."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = str(base_url if base_url is not None else settings.stats_base_url).rstrip("/")
        self.api_key = str(api_key if api_key is not None else settings.stats_api_key)
        self.timeout = float(timeout if timeout is not None else settings.stats_timeout_seconds)
        self._transport = transport

    def _post(self, path: str, payload: dict | None = None) -> None:
        url = self.base_url + path
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(url, json=payload, headers={"X-Api-Key": self.api_key})
        except httpx.HTTPError as e:
            log.error("stats request failed: url=%s error=%s", url, type(e).__name__)
            raise StatsReportError(f"stats service unreachable: {type(e).__name__}") from e

        if resp.status_code >= 300:
            log.error("stats request rejected: url=%s status=%s", url, resp.status_code)
            raise StatsReportError(f"stats service returned {resp.status_code}")

    def save_session(self, record: SessionRecord) -> None:
        self._post("/sessions/save", record.to_json())

    def save_response(self, session_id: int, record: AnswerRecord) -> None:
        self._post(f"/sessions/{int(session_id)}/respond", asdict(record))

    def finish_session(self, session_id: int) -> None:
        self._post(f"/sessions/{int(session_id)}/finish")
