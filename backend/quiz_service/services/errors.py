"""Error taxonomy of the quiz session engine.

Each error knows how it is rendered at the HTTP boundary: ``status_code``,
a stable ``error_code`` and any extra structured fields from ``payload()``.
"""

from __future__ import annotations

from datetime import datetime


class QuizError(Exception):
    status_code = 500
    error_code = "internal_error"
    message = "internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def payload(self) -> dict:
        return {}


class PolicyError(QuizError):
    status_code = 403


class ApprovalRequired(PolicyError):
    error_code = "approval_required"
    message = "Account requires manual approval by an administrator."

    def payload(self) -> dict:
        return {"mode": "manual"}


class CooldownActive(PolicyError):
    error_code = "cooldown_active"
    message = "Please wait before starting the quiz."

    def __init__(self, *, wait_seconds: int, ready_at: datetime, cooldown_hours: int):
        super().__init__()
        self.wait_seconds = max(0, int(wait_seconds))
        self.ready_at = ready_at
        self.cooldown_hours = int(cooldown_hours)

    def payload(self) -> dict:
        return {
            "mode": "cooldown",
            "cooldownHours": self.cooldown_hours,
            "waitSeconds": self.wait_seconds,
            "readyAt": self.ready_at.isoformat(),
        }


class ContentError(QuizError):
    """Operator/content gaps: the request was fine, the catalogue is not."""

    status_code = 503


class InvalidTestCode(ContentError):
    status_code = 400
    error_code = "invalid_test_code"
    message = "Unknown test code."


class EmptyTest(ContentError):
    error_code = "empty_test"
    message = "test has no questions"


class NoQuestionsAvailable(ContentError):
    error_code = "no_questions"
    message = "no questions in group"


class SessionNotFound(QuizError):
    status_code = 404
    error_code = "not_found"
    message = "failed to get session"


class SessionForbidden(SessionNotFound):
    """Ownership mismatch. Rendered exactly like a missing session."""


class SessionFinished(QuizError):
    status_code = 404
    error_code = "already_finished"
    message = "quiz is finished"


class SequenceCorrupted(QuizError):
    error_code = "sequence_corrupted"
    message = "internal server error"

    def __init__(self, *, session_id: int, question_id: int | None):
        super().__init__()
        self.session_id = session_id
        self.question_id = question_id

    def __str__(self) -> str:
        return f"question {self.question_id} not found in ordering of session {self.session_id}"


class StatsReportError(QuizError):
    error_code = "internal_error"
    message = "internal server error"


class SequenceExhausted(QuizError):
    """The ordering is used up; the client should finish the session."""

    status_code = 409
    error_code = "sequence_exhausted"
    message = "no question left to answer"


class QuestionUnavailable(QuizError):
    status_code = 404
    error_code = "question_not_found"
    message = "failed to get question"
