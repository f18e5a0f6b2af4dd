from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from quiz_service.models.access import QuizUserAccess, QuizUserRegistry
from quiz_service.services.clock import as_utc
from quiz_service.services.errors import ApprovalRequired, CooldownActive
from quiz_service.services.quiz_settings import QuizSettings


def _insert_if_absent(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(QuizUserRegistry)
    if dialect == "sqlite":
        return sqlite.insert(QuizUserRegistry)
    raise RuntimeError(f"unsupported dialect for first-seen registration: {dialect}")


def is_user_approved(db: Session, user_id: int) -> bool:
    approved = db.scalar(select(QuizUserAccess.approved).where(QuizUserAccess.user_id == int(user_id)))
    return bool(approved)


def registered_at(db: Session, *, user_id: int, now: datetime) -> datetime:
    """Return the user's first-seen instant, recording ``now`` if there is none.

    Concurrent first evaluations race on the primary key; the loser's insert is
    dropped so the earliest committed timestamp always wins.
    """
    stmt = (
        _insert_if_absent(db)
        .values(user_id=int(user_id), registered_at=now, source="first_seen")
        .on_conflict_do_nothing(index_elements=["user_id"])
    )
    db.execute(stmt)
    # Must survive a CooldownActive rejection, which rolls the request back.
    db.commit()

    value = db.scalar(select(QuizUserRegistry.registered_at).where(QuizUserRegistry.user_id == int(user_id)))
    return as_utc(value) or now


def evaluate(db: Session, *, quiz_settings: QuizSettings, user_id: int, now: datetime) -> None:
    """Raise a PolicyError when ``user_id`` may not start a quiz right now."""
    mode = quiz_settings.security_mode

    if mode == "manual":
        if not is_user_approved(db, user_id):
            raise ApprovalRequired()
        return

    if mode == "cooldown":
        reg = registered_at(db, user_id=user_id, now=now)
        ready_at = reg + timedelta(hours=int(quiz_settings.cooldown_hours))
        if now < ready_at:
            raise CooldownActive(
                wait_seconds=int((ready_at - now).total_seconds()),
                ready_at=ready_at,
                cooldown_hours=quiz_settings.cooldown_hours,
            )
        return

    # "open": no restriction


def set_approval(db: Session, *, user_id: int, approved: bool, admin_id: int | None, now: datetime) -> QuizUserAccess:
    row = db.get(QuizUserAccess, int(user_id))
    if row is None:
        row = QuizUserAccess(user_id=int(user_id), created_at=now)
        db.add(row)
    row.approved = bool(approved)
    row.approved_by = admin_id
    row.approved_at = now
    return row


def approved_user_ids(db: Session) -> list[int]:
    return [
        int(uid)
        for uid in db.scalars(
            select(QuizUserAccess.user_id).where(QuizUserAccess.approved.is_(True)).order_by(QuizUserAccess.user_id)
        )
    ]
