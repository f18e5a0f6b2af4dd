from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quiz_service.db.base import Base


class QuizUserAccess(Base):
    """Manual-approval record; a missing row means "not approved"."""

    __tablename__ = "quiz_user_access"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    approved: Mapped[bool] = mapped_column(Boolean, default=False)
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class QuizUserRegistry(Base):
    """First time a user was seen by the cooldown policy. Written once, never updated."""

    __tablename__ = "quiz_user_registry"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    source: Mapped[str] = mapped_column(String(32), default="first_seen")
