from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from quiz_service.core.config import settings
from quiz_service.core.queue import get_queue
from quiz_service.core.security import require_internal_api_key
from quiz_service.db.session import get_db
from quiz_service.schemas.admin import ApprovalRequest, ApprovedUsersResponse, QuizSummaryResponse, SettingItem
from quiz_service.schemas.quiz import ActiveSession, SessionSummary
from quiz_service.services import access_policy
from quiz_service.services.clock import Clock, as_utc, get_clock
from quiz_service.services.quiz_settings import InvalidSetting, SettingsProvider
from quiz_service.services.repository import QuestionRepository, TestRepository
from quiz_service.services.session_store import SessionStore
from quiz_service.services.stats_jobs import notify_user_approved_job
from quiz_service.routers.sessions import session_summary

log = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["internal"], dependencies=[Depends(require_internal_api_key)])


@router.get("/summary", response_model=QuizSummaryResponse)
def summary(db: Session = Depends(get_db)):
    return QuizSummaryResponse(questions=QuestionRepository(db).count_questions(), active_surveys=0)


@router.post("/approve")
def approve(body: ApprovalRequest, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    access_policy.set_approval(db, user_id=body.user_id, approved=True, admin_id=None, now=clock.now())
    db.commit()

    try:
        q = get_queue(settings.rq_queue_default)
        q.enqueue(notify_user_approved_job, body.user_id, job_timeout=30, result_ttl=60 * 60, failure_ttl=60 * 60)
    except Exception:
        log.warning("notify-approved: enqueue failed user_id=%s", body.user_id, exc_info=True)

    return {"status": "ok"}


@router.post("/unapprove")
def unapprove(body: ApprovalRequest, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    access_policy.set_approval(db, user_id=body.user_id, approved=False, admin_id=None, now=clock.now())
    db.commit()
    return {"status": "ok"}


@router.get("/approved", response_model=ApprovedUsersResponse)
def approved(db: Session = Depends(get_db)):
    return ApprovedUsersResponse(approved_user_ids=access_policy.approved_user_ids(db))


@router.get("/settings", response_model=list[SettingItem])
def get_settings(db: Session = Depends(get_db)):
    return [SettingItem(name=k, value=v) for k, v in SettingsProvider(db).all().items()]


@router.post("/settings")
def update_settings(items: list[SettingItem], db: Session = Depends(get_db)):
    provider = SettingsProvider(db)
    try:
        for item in items:
            provider.save(item.name, item.value)
    except InvalidSetting as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    db.commit()
    return {"ok": True}


@router.get("/sessions/active", response_model=list[ActiveSession])
def active_sessions(
    cutoff: int = Query(default=0),
    limit: int = Query(default=0),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if cutoff <= 0:
        cutoff = settings.active_session_cutoff_minutes
    if limit <= 0 or limit > 500:
        limit = settings.active_session_limit

    rows = SessionStore(db).recently_active(now=clock.now(), cutoff_minutes=cutoff, limit=limit)
    return [
        ActiveSession(
            **session_summary(s).model_dump(),
            group_order=s.ordering,
            last_seen=as_utc(s.question_requested_time or s.updated_at),
        )
        for s in rows
    ]


@router.get("/tests/{code}/sessions", response_model=list[SessionSummary])
def test_sessions(code: str, db: Session = Depends(get_db)):
    tests = TestRepository(db)
    test = tests.test_by_code(code)
    if test is None:
        raise HTTPException(status_code=404, detail="not found")
    return [session_summary(s) for s in tests.sessions_for_test(test.id)]
