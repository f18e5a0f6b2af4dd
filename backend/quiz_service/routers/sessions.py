from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from quiz_service.core.config import settings
from quiz_service.core.rate_limit import rate_limit
from quiz_service.core.security import CurrentUser, get_current_user
from quiz_service.db.session import get_db
from quiz_service.models.quiz_session import QuizSession
from quiz_service.schemas.quiz import (
    NextQuestionResponse,
    SessionPublic,
    SessionSummary,
    StartQuizRequest,
    StartQuizResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    UserSessionsResponse,
)
from quiz_service.services.clock import Clock, get_clock
from quiz_service.services.quiz_settings import SettingsProvider
from quiz_service.services.sequencer import QuizSequencer
from quiz_service.services.session_store import SessionStore
from quiz_service.services.stats import StatsReporter, get_stats_reporter

router = APIRouter(prefix="/quiz/sessions", tags=["sessions"])


def get_sequencer(
    db: Session = Depends(get_db),
    reporter: StatsReporter = Depends(get_stats_reporter),
    clock: Clock = Depends(get_clock),
) -> QuizSequencer:
    return QuizSequencer(db, reporter=reporter, clock=clock)


def session_summary(s: QuizSession) -> SessionSummary:
    return SessionSummary(
        id=s.id,
        user_id=s.user_id,
        status=s.status.value,
        mode=s.mode.value,
        current_question=int(s.current_question),
        current_group=int(s.current_group),
        created_at=s.created_at,
        updated_at=s.updated_at,
        finished_at=s.finished_at,
        test_id=s.test_id,
        test_code=s.test_code,
    )


@router.get("", response_model=UserSessionsResponse)
def my_active_sessions(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    sessions = SessionStore(db).active_for_user(user.user_id)
    return UserSessionsResponse(sessions=[session_summary(s) for s in sessions])


@router.post("/new", response_model=StartQuizResponse)
def start_session(
    body: StartQuizRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    sequencer: QuizSequencer = Depends(get_sequencer),
    _: object = rate_limit(key_prefix="quiz_start", limit=settings.quiz_start_rate_limit, window_seconds=60),
):
    quiz_settings = SettingsProvider(db).snapshot()
    started = sequencer.start_session(
        user_id=user.user_id,
        mode=body.mode,
        screen_width=body.screen_width,
        screen_height=body.screen_height,
        test_code=body.test_code,
        quiz_settings=quiz_settings,
    )
    s = started.session
    return StartQuizResponse(
        session=SessionPublic(
            session_id=s.id,
            user_id=s.user_id,
            quiz_mode=s.mode.value,
            test_id=s.test_id,
            test_code=s.test_code,
        ),
        time_limit=started.time_limit,
    )


@router.get(
    "/{session_id}/nextQuestion",
    response_model=NextQuestionResponse,
    responses={204: {"description": "ordering exhausted, finish the session"}},
)
def next_question(
    session_id: int,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    sequencer: QuizSequencer = Depends(get_sequencer),
):
    nxt = sequencer.next_question(session_id=session_id, user_id=user.user_id)
    if nxt is None:
        return Response(status_code=204)
    response.headers["X-Quiz-Is-Last"] = "true" if nxt.is_last else "false"
    return NextQuestionResponse(question=nxt.question, is_last=nxt.is_last)


@router.post("/{session_id}/answer", response_model=SubmitAnswerResponse)
def submit_answer(
    session_id: int,
    body: SubmitAnswerRequest,
    user: CurrentUser = Depends(get_current_user),
    sequencer: QuizSequencer = Depends(get_sequencer),
    _: object = rate_limit(key_prefix="quiz_answer", limit=settings.quiz_answer_rate_limit, window_seconds=60),
):
    result = sequencer.submit_answer(
        session_id=session_id,
        user_id=user.user_id,
        answer=body.answer,
        screen_size=body.screen_size,
    )
    return SubmitAnswerResponse(correct=result.correct, correct_option=result.correct_option)


@router.post("/{session_id}/finish")
def finish_session(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    sequencer: QuizSequencer = Depends(get_sequencer),
):
    s = sequencer.finish_session(session_id=session_id, user_id=user.user_id)
    return {"ok": True, "session_id": s.id, "status": s.status.value}
