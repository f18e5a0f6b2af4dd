"""Quiz session sequencing.

A session walks an ordering of question ids (``group_order``). Test-bound
sessions walk one fixed ordering and then stop; free-roam sessions walk a
shuffled group and then move on to a different group. The position is the
current question id; ``-1`` means the ordering is used up.

Serving a question (``next_question``) and answering it (``submit_answer``)
are separate calls. The first stamps ``question_requested_time``, the second
measures latency from it and moves the pointer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from quiz_service.models.question import Question
from quiz_service.models.quiz_session import EXHAUSTED, NO_GROUP, QuizMode, QuizSession, QuizStatus
from quiz_service.schemas.quiz import (
    CasePublic,
    ParameterPublic,
    ParameterValuePublic,
    QuestionPublic,
)
from quiz_service.services import access_policy
from quiz_service.services.clock import Clock, as_utc, system_clock
from quiz_service.services.errors import (
    EmptyTest,
    InvalidTestCode,
    NoQuestionsAvailable,
    QuestionUnavailable,
    SequenceCorrupted,
    SequenceExhausted,
    SessionFinished,
    SessionForbidden,
    SessionNotFound,
)
from quiz_service.services.quiz_settings import QuizSettings
from quiz_service.services.repository import QuestionNotFound, QuestionRepository, TestRepository
from quiz_service.services.session_store import SessionStore
from quiz_service.services.stats import StatsReporter
from quiz_service.services.stats_client import AnswerRecord

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartedSession:
    session: QuizSession
    time_limit: int


@dataclass(frozen=True)
class NextQuestion:
    question: QuestionPublic
    is_last: bool


@dataclass(frozen=True)
class AnswerResult:
    correct: bool
    correct_option: str


def public_question(question: Question) -> QuestionPublic:
    case = question.case
    values = sorted(case.parameter_values, key=lambda v: (v.parameter.order, v.parameter_id))
    return QuestionPublic(
        id=question.id,
        question=question.question or "",
        options=[o.option.option for o in question.options],
        prediction_age=int(question.prediction_age or 0),
        group=int(question.group_number),
        case=CasePublic(
            id=case.id,
            code=case.code,
            gender=case.patient_gender or "",
            age1=int(case.age1 or 0),
            age2=int(case.age2 or 0),
            age3=int(case.age3 or 0),
            parameters=[
                ParameterPublic(
                    id=v.parameter.id,
                    name=v.parameter.name,
                    description=v.parameter.description or "",
                    reference_values=v.parameter.reference_values or "",
                    order=int(v.parameter.order or 0),
                )
                for v in values
            ],
            parameters_values=[
                ParameterValuePublic(parameter_id=v.parameter_id, value1=v.value1, value2=v.value2) for v in values
            ],
        ),
    )


def answers_match(answer: str, correct: str) -> bool:
    return (answer or "").strip().casefold() == (correct or "").strip().casefold()


class QuizSequencer:
    def __init__(
        self,
        db: Session,
        *,
        reporter: StatsReporter,
        questions: QuestionRepository | None = None,
        tests: TestRepository | None = None,
        store: SessionStore | None = None,
        clock: Clock | None = None,
    ):
        self.db = db
        self.reporter = reporter
        self.questions = questions or QuestionRepository(db)
        self.tests = tests or TestRepository(db)
        self.store = store or SessionStore(db)
        self.clock = clock or system_clock

    # -- helpers ---------------------------------------------------------

    def _fresh_group(self, *, excluding: int | None) -> tuple[int, list[int]] | None:
        group_id = self.questions.next_group_id(excluding)
        if group_id is None:
            return None
        order = self.questions.random_group_question_ids(group_id)
        if not order:
            return None
        return group_id, order

    def _owned(self, session_id: int, user_id: int) -> QuizSession:
        session = self.store.get(session_id, for_update=True)
        if session is None:
            raise SessionNotFound()
        if int(session.user_id) != int(user_id):
            raise SessionForbidden()
        return session

    def _question(self, question_id: int) -> Question:
        try:
            return self.questions.question_by_id(question_id)
        except QuestionNotFound as e:
            log.error("question %s referenced by a session does not exist", question_id)
            raise QuestionUnavailable() from e

    # -- operations ------------------------------------------------------

    def start_session(
        self,
        *,
        user_id: int,
        mode: QuizMode,
        screen_width: int,
        screen_height: int,
        quiz_settings: QuizSettings,
        test_code: str | None = None,
    ) -> StartedSession:
        now = self.clock.now()
        access_policy.evaluate(self.db, quiz_settings=quiz_settings, user_id=user_id, now=now)

        session = QuizSession(
            user_id=int(user_id),
            mode=mode,
            status=QuizStatus.not_started,
            screen_size=f"{int(screen_width)}x{int(screen_height)}",
            current_question=EXHAUSTED,
            current_group=NO_GROUP,
            group_order=[],
        )

        code = str(test_code or "").strip().upper()
        if code:
            test = self.tests.test_by_code(code)
            if test is None:
                log.warning("start rejected: unknown test code %r user_id=%s", code, user_id)
                raise InvalidTestCode()
            order = self.tests.ordered_question_ids(test.id)
            if not order:
                log.warning("start rejected: test %s (%s) has no questions", test.id, test.code)
                raise EmptyTest()
            session.test_id = test.id
            session.test_code = test.code
            session.group_order = order
            session.current_question_id = order[0]
        else:
            fresh = self._fresh_group(excluding=None)
            if fresh is not None:
                session.current_group, session.group_order = fresh
                session.current_question_id = fresh[1][0]

        prior = self.store.last_for_user(user_id, for_update=True)
        if prior is not None and not prior.is_finished:
            if (
                not code
                and not prior.is_test_bound
                and prior.current_question_id is not None
                and prior.ordering
            ):
                log.info(
                    "resuming ordering of session %s (question=%s group=%s) for user %s",
                    prior.id,
                    prior.current_question,
                    prior.current_group,
                    user_id,
                )
                session.current_question = prior.current_question
                session.current_group = prior.current_group
                session.group_order = prior.ordering

            # Superseded: at most one live session per user.
            prior.status = QuizStatus.finished
            prior.finished_at = prior.updated_at
            self.db.add(prior)

        if not session.has_position:
            log.warning("new session for user %s has no valid starting question, regenerating", user_id)
            fresh = self._fresh_group(excluding=None)
            if fresh is None:
                log.warning("start rejected: no questions available for user %s", user_id)
                raise NoQuestionsAvailable()
            session.current_group, session.group_order = fresh
            session.current_question_id = fresh[1][0]

        self.store.create(session, now=now)
        self.db.commit()
        log.info("quiz session %s created user_id=%s mode=%s test=%s", session.id, user_id, mode.value, session.test_code)

        try:
            self.reporter.report_session_created(session)
        except Exception:
            log.exception("failed to report session %s to stats service", session.id)

        return StartedSession(session=session, time_limit=int(quiz_settings.time_limit))

    def next_question(self, *, session_id: int, user_id: int) -> NextQuestion | None:
        """Current question of the session, or None once the ordering is used up."""
        session = self._owned(session_id, user_id)
        if session.is_finished:
            raise SessionFinished()

        qid = session.current_question_id
        if qid is None:
            return None

        question = self._question(qid)
        order = session.ordering
        is_last = session.is_test_bound and bool(order) and order[-1] == qid

        session.question_requested_time = self.clock.now()
        self.store.save(session, now=session.question_requested_time)
        self.db.commit()

        return NextQuestion(question=public_question(question), is_last=is_last)

    def submit_answer(self, *, session_id: int, user_id: int, answer: str, screen_size: str = "") -> AnswerResult:
        session = self._owned(session_id, user_id)
        if session.is_finished:
            raise SessionFinished()

        qid = session.current_question_id
        if qid is None:
            raise SequenceExhausted()

        now = self.clock.now()
        requested = as_utc(session.question_requested_time)
        time_spent = max(0, int((now - requested).total_seconds())) if requested is not None else 0

        try:
            correct_option = self.questions.correct_option(qid)
        except QuestionNotFound as e:
            log.error("question %s has no correct option", qid)
            raise QuestionUnavailable() from e
        question = self._question(qid)
        is_correct = answers_match(answer, correct_option)

        session.status = QuizStatus.in_progress

        if session.mode == QuizMode.educational and not (answer or "").strip():
            log.info("session %s: educational mode and empty answer, not recording", session.id)
        else:
            self.reporter.report_answer(
                session.id,
                AnswerRecord(
                    question_id=qid,
                    answer=answer or "",
                    is_correct=is_correct,
                    screen_size=screen_size or "",
                    time_spent=time_spent,
                    case_code=question.case.code,
                ),
            )

        self.advance(session)
        self.store.save(session, now=now)
        self.db.commit()

        return AnswerResult(correct=is_correct, correct_option=correct_option)

    def finish_session(self, *, session_id: int, user_id: int) -> QuizSession:
        session = self._owned(session_id, user_id)
        if session.is_finished:
            return session

        now = self.clock.now()
        session.status = QuizStatus.finished
        session.finished_at = now
        self.store.save(session, now=now)
        self.db.commit()

        try:
            self.reporter.report_finished(session.id)
        except Exception:
            log.exception("failed to report finish of session %s to stats service", session.id)

        return session

    def advance(self, session: QuizSession) -> None:
        """Move the pointer past the current question.

        Next entry of the same ordering if there is one; otherwise the
        sentinel for test-bound sessions, or a fresh shuffled group distinct
        from the current one for free-roam sessions.
        """
        order = session.ordering
        qid = session.current_question_id
        if qid is None or qid not in order:
            log.error("session %s: question %s missing from its ordering %s", session.id, qid, order)
            raise SequenceCorrupted(session_id=session.id, question_id=qid)

        idx = order.index(qid)
        if idx + 1 < len(order):
            session.current_question_id = order[idx + 1]
            return

        if session.is_test_bound:
            session.current_question = EXHAUSTED
            return

        fresh = self._fresh_group(excluding=session.group_id)
        if fresh is None:
            log.warning("session %s: no further group to move to", session.id)
            raise NoQuestionsAvailable()
        session.current_group, session.group_order = fresh
        session.current_question_id = fresh[1][0]
