import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quiz_service.db.base import Base

# Persisted sentinels; the wire contract exposes them unchanged.
NO_QUESTION = 0
EXHAUSTED = -1
NO_GROUP = 0


class QuizMode(str, enum.Enum):
    educational = "educational"
    classic = "classic"
    limited_time = "limited_time"


class QuizStatus(str, enum.Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    finished = "finished"


class QuizSession(Base):
    __tablename__ = "quiz_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)

    status: Mapped[QuizStatus] = mapped_column(
        Enum(QuizStatus, native_enum=False, length=20), default=QuizStatus.not_started, index=True
    )
    mode: Mapped[QuizMode] = mapped_column(Enum(QuizMode, native_enum=False, length=20))
    screen_size: Mapped[str] = mapped_column(String(32), default="")

    current_question: Mapped[int] = mapped_column(Integer, default=NO_QUESTION)
    current_group: Mapped[int] = mapped_column(Integer, default=NO_GROUP)
    group_order: Mapped[list[int]] = mapped_column(JSON, default=list)

    test_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("tests.id", ondelete="SET NULL"), nullable=True, index=True)
    test_code: Mapped[str | None] = mapped_column(String(24), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    question_requested_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def current_question_id(self) -> int | None:
        qid = int(self.current_question or 0)
        return qid if qid > 0 else None

    @current_question_id.setter
    def current_question_id(self, value: int | None) -> None:
        self.current_question = int(value) if value is not None and int(value) > 0 else EXHAUSTED

    @property
    def group_id(self) -> int | None:
        gid = int(self.current_group or 0)
        return gid if gid != NO_GROUP else None

    @property
    def ordering(self) -> list[int]:
        return [int(q) for q in (self.group_order or [])]

    @property
    def is_test_bound(self) -> bool:
        # test_id is cleared when the test is deleted; test_code keeps the binding.
        return self.test_id is not None or bool(self.test_code)

    @property
    def is_finished(self) -> bool:
        return self.status == QuizStatus.finished

    @property
    def has_position(self) -> bool:
        """True when the session points at a question that is part of its ordering."""
        qid = self.current_question_id
        return qid is not None and qid in self.ordering
