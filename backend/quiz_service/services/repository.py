from __future__ import annotations

import random

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from quiz_service.models.question import Question, QuestionOption
from quiz_service.models.quiz_session import NO_GROUP, QuizSession
from quiz_service.models.test import Test, TestQuestion


class QuestionNotFound(LookupError):
    pass


class QuestionRepository:
    """Read access to questions and their groups. No business rules live here."""

    def __init__(self, db: Session, rng: random.Random | None = None):
        self.db = db
        self.rng = rng or random.SystemRandom()

    def group_ids(self) -> list[int]:
        return [
            int(g)
            for g in self.db.scalars(
                select(Question.group_number).group_by(Question.group_number).order_by(Question.group_number)
            )
        ]

    def random_group_question_ids(self, group_id: int) -> list[int]:
        ids = [int(q) for q in self.db.scalars(select(Question.id).where(Question.group_number == int(group_id)))]
        self.rng.shuffle(ids)
        return ids

    def next_group_id(self, excluding: int | None = None) -> int | None:
        """Pick a group uniformly at random, skipping ``excluding`` when given.

        Returns None when no eligible group exists, including when
        ``excluding`` is the only group.
        """
        candidates = [g for g in self.group_ids() if g != NO_GROUP]
        if excluding is not None and excluding != NO_GROUP:
            candidates = [g for g in candidates if g != int(excluding)]
        if not candidates:
            return None
        return self.rng.choice(candidates)

    def question_by_id(self, question_id: int) -> Question:
        q = self.db.get(Question, int(question_id))
        if q is None:
            raise QuestionNotFound(question_id)
        return q

    def correct_option(self, question_id: int) -> str:
        opt = self.db.scalars(
            select(QuestionOption)
            .where(QuestionOption.question_id == int(question_id), QuestionOption.is_correct.is_(True))
            .limit(1)
        ).first()
        if opt is None:
            raise QuestionNotFound(question_id)
        return str(opt.option.option or "")

    def count_questions(self) -> int:
        return int(self.db.scalar(select(func.count(Question.id))) or 0)


class TestRepository:
    __test__ = False

    def __init__(self, db: Session):
        self.db = db

    def test_by_code(self, code: str) -> Test | None:
        code = str(code or "").strip().upper()
        if not code:
            return None
        return self.db.scalar(select(Test).where(Test.code == code))

    def test_by_id(self, test_id: int) -> Test | None:
        return self.db.get(Test, int(test_id))

    def ordered_question_ids(self, test_id: int) -> list[int]:
        return [
            int(q)
            for q in self.db.scalars(
                select(TestQuestion.question_id)
                .where(TestQuestion.test_id == int(test_id))
                .order_by(TestQuestion.sort_order, TestQuestion.question_id)
            )
        ]

    def sessions_for_test(self, test_id: int) -> list[QuizSession]:
        return list(
            self.db.scalars(
                select(QuizSession)
                .where(QuizSession.test_id == int(test_id))
                .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
            )
        )

    def tests_by_owner(self, user_id: int) -> list[Test]:
        return list(
            self.db.scalars(
                select(Test).where(Test.created_by == int(user_id)).order_by(Test.created_at.desc(), Test.id.desc())
            )
        )

    def create_test(self, *, code: str, name: str, created_by: int, question_ids: list[int]) -> Test:
        test = Test(code=code, name=name, created_by=int(created_by))
        self.db.add(test)
        self.db.flush()
        for i, qid in enumerate(question_ids):
            self.db.add(TestQuestion(test_id=test.id, question_id=int(qid), sort_order=i))
        self.db.flush()
        return test

    def delete_test(self, test: Test) -> None:
        self.db.execute(delete(TestQuestion).where(TestQuestion.test_id == test.id))
        self.db.delete(test)
        self.db.flush()
