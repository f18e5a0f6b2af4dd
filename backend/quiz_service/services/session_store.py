from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quiz_service.models.quiz_session import QuizSession, QuizStatus


class SessionStore:
    """Authoritative persistence for quiz sessions.

    Every read goes to the database; callers must not hold a session object
    across requests. ``get(..., for_update=True)`` takes a row lock for the
    rest of the caller's transaction (a no-op on SQLite).
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, session_id: int, *, for_update: bool = False) -> QuizSession | None:
        stmt = select(QuizSession).where(QuizSession.id == int(session_id))
        if for_update:
            stmt = stmt.with_for_update()
        # populate_existing: never act on an identity-map copy from earlier in the request.
        return self.db.scalars(stmt.execution_options(populate_existing=True)).first()

    def create(self, session: QuizSession, *, now: datetime) -> QuizSession:
        session.created_at = now
        session.updated_at = now
        session.group_order = list(session.group_order or [])
        self.db.add(session)
        self.db.flush()
        return session

    def save(self, session: QuizSession, *, now: datetime) -> QuizSession:
        # JSON columns are not mutation-tracked; reassign to mark the ordering dirty.
        session.group_order = list(session.group_order or [])
        session.updated_at = now
        self.db.add(session)
        self.db.flush()
        return session

    def last_for_user(self, user_id: int, *, for_update: bool = False) -> QuizSession | None:
        stmt = (
            select(QuizSession)
            .where(QuizSession.user_id == int(user_id))
            .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalars(stmt.execution_options(populate_existing=True)).first()

    def active_for_user(self, user_id: int) -> list[QuizSession]:
        return list(
            self.db.scalars(
                select(QuizSession)
                .where(QuizSession.user_id == int(user_id), QuizSession.status != QuizStatus.finished)
                .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
            )
        )

    def recently_active(self, *, now: datetime, cutoff_minutes: int, limit: int) -> list[QuizSession]:
        last_seen = func.coalesce(QuizSession.question_requested_time, QuizSession.updated_at)
        return list(
            self.db.scalars(
                select(QuizSession)
                .where(QuizSession.finished_at.is_(None), last_seen > now - timedelta(minutes=int(cutoff_minutes)))
                .order_by(last_seen.desc(), QuizSession.id.desc())
                .limit(int(limit))
            )
        )
