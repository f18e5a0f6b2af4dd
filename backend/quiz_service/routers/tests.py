from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quiz_service.core.security import CurrentUser, require_roles
from quiz_service.db.session import get_db
from quiz_service.models.test import Test
from quiz_service.schemas.admin import (
    TestCreateRequest,
    TestDetailResponse,
    TestProgressResponse,
    TestPublic,
    TestQuestionLight,
    TestSessionRow,
)
from quiz_service.services.repository import QuestionNotFound, QuestionRepository, TestRepository

log = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz/tests", tags=["tests"])

CODE_RE = re.compile(r"^[A-Z0-9-]{4,24}$")

require_teacher = require_roles("teacher")


def _public(t: Test) -> TestPublic:
    return TestPublic(id=t.id, code=t.code, name=t.name, created_by=t.created_by, created_at=t.created_at)


def _owned_test(tests: TestRepository, test_id: int, user: CurrentUser) -> Test:
    t = tests.test_by_id(test_id)
    if t is None or (int(t.created_by) != user.user_id and not user.is_admin):
        raise HTTPException(status_code=404, detail="not found")
    return t


@router.post("", response_model=TestPublic, status_code=201)
def create_test(body: TestCreateRequest, db: Session = Depends(get_db), user: CurrentUser = Depends(require_teacher)):
    code = body.code.strip().upper()
    name = body.name.strip()
    if not CODE_RE.match(code):
        raise HTTPException(status_code=400, detail="invalid code format")
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    if not body.question_ids:
        raise HTTPException(status_code=400, detail="question_ids cannot be empty")
    if len(set(body.question_ids)) != len(body.question_ids):
        raise HTTPException(status_code=400, detail="question_ids must be unique")

    tests = TestRepository(db)
    if tests.test_by_code(code) is not None:
        raise HTTPException(status_code=409, detail="test code already exists")

    try:
        t = tests.create_test(code=code, name=name, created_by=user.user_id, question_ids=body.question_ids)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        log.warning("create test %s failed: %s", code, e.orig)
        raise HTTPException(status_code=409, detail="test code already exists or unknown question") from e

    log.info("test %s (%s) created by user %s with %s questions", t.id, t.code, user.user_id, len(body.question_ids))
    return _public(t)


@router.get("", response_model=list[TestPublic])
def list_my_tests(db: Session = Depends(get_db), user: CurrentUser = Depends(require_teacher)):
    return [_public(t) for t in TestRepository(db).tests_by_owner(user.user_id)]


@router.get("/{code}/progress", response_model=TestProgressResponse)
def test_progress(code: str, db: Session = Depends(get_db), user: CurrentUser = Depends(require_teacher)):
    tests = TestRepository(db)
    t = tests.test_by_code(code)
    if t is None:
        raise HTTPException(status_code=404, detail="not found")

    rows = [
        TestSessionRow(
            session_id=s.id,
            user_id=s.user_id,
            mode=s.mode.value,
            status=s.status.value,
            created_at=s.created_at,
            finished_at=s.finished_at,
        )
        for s in tests.sessions_for_test(t.id)
    ]
    return TestProgressResponse(test=_public(t), sessions=rows)


@router.get("/{test_id}", response_model=TestDetailResponse)
def get_test(test_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(require_teacher)):
    tests = TestRepository(db)
    t = _owned_test(tests, test_id, user)
    qids = tests.ordered_question_ids(t.id)

    questions = QuestionRepository(db)
    light: list[TestQuestionLight] = []
    for qid in qids:
        try:
            q = questions.question_by_id(qid)
        except QuestionNotFound:
            log.warning("test %s references missing question %s", t.id, qid)
            continue
        light.append(TestQuestionLight(id=q.id, case_code=q.case.code, gender=q.case.patient_gender or "", group=q.group_number))

    return TestDetailResponse(
        **_public(t).model_dump(),
        question_ids=qids,
        questions=light,
        questions_count=len(qids),
    )


@router.delete("/{test_id}", status_code=204)
def delete_test(test_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(require_teacher)):
    tests = TestRepository(db)
    t = _owned_test(tests, test_id, user)
    tests.delete_test(t)
    db.commit()
    log.info("test %s deleted by user %s", test_id, user.user_id)
    return Response(status_code=204)
