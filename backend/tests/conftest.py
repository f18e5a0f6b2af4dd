import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from quiz_service.core.config import settings
from quiz_service.db.base import Base
from quiz_service.db import session as session_module
from quiz_service.main import create_app
from quiz_service.models.question import Case, CaseParameter, Option, Parameter, Question, QuestionOption
from quiz_service.models.quiz_session import QuizMode, QuizSession, QuizStatus
from quiz_service.models.test import Test, TestQuestion
from quiz_service.services.clock import get_clock
from quiz_service.services.stats import get_stats_reporter

# Import models so that they are registered in Base.metadata before create_all.
import quiz_service.models  # noqa: F401

settings.auth_verify_mode = "jwt"
settings.jwt_secret_key = "test-secret"
settings.internal_api_key = "test-internal-key"

INTERNAL_HEADERS = {"X-Api-Key": "test-internal-key"}


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))

    def flushall(self):
        self._data.clear()


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingReporter:
    def __init__(self):
        self.created: list[int] = []
        self.answers: list[tuple[int, object]] = []
        self.finished: list[int] = []
        self.fail_created = False
        self.fail_answers = False
        self.fail_finished = False

    @staticmethod
    def _fail():
        from quiz_service.services.errors import StatsReportError

        raise StatsReportError("stats service returned 502")

    def report_session_created(self, session) -> None:
        if self.fail_created:
            self._fail()
        self.created.append(int(session.id))

    def report_answer(self, session_id: int, record) -> None:
        if self.fail_answers:
            self._fail()
        self.answers.append((int(session_id), record))

    def report_finished(self, session_id: int) -> None:
        if self.fail_finished:
            self._fail()
        self.finished.append(int(session_id))


# Configure test DB (SQLite in-memory) at import time so all tests importing
# quiz_service.db.session.SessionLocal will get the patched version.
_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


# Stub Redis at import time (rate limiting + readiness).
_mem_redis = _MemoryRedis()
import quiz_service.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda **_: _mem_redis

import quiz_service.core.rate_limit as rate_limit_module
rate_limit_module.get_redis = lambda **_: _mem_redis

import quiz_service.routers.health as health_router_module
health_router_module.get_redis = lambda **_: _mem_redis


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=_engine)
    Base.metadata.create_all(bind=_engine)
    _mem_redis.flushall()
    yield


@pytest.fixture()
def clock():
    return FixedClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def reporter():
    return RecordingReporter()


@pytest.fixture()
def app(clock, reporter):
    app = create_app()

    # Ensure app dependencies use our session factory.
    def _get_db_override():
        db = session_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session_module.get_db] = _get_db_override
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_stats_reporter] = lambda: reporter
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


@pytest.fixture()
def sqlite_foreign_keys():
    # SQLite only enforces ON DELETE actions with this pragma; the pool shares one connection.
    with _engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
    yield
    with _engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")


def make_token(user_id: int, role: str = "user") -> str:
    return jwt.encode({"sub": str(user_id), "role": role}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def auth(user_id: int, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


def seed_question(
    db,
    *,
    question_id: int,
    group: int,
    correct: str = "Class I",
    wrong: str = "Class II",
    case_code: str | None = None,
    value3: float | None = 9.5,
) -> Question:
    case = Case(
        code=case_code or f"CASE-{question_id}",
        patient_gender="F",
        age1=9,
        age2=12,
        age3=15,
    )
    db.add(case)
    db.flush()

    param = db.get(Parameter, 1)
    if param is None:
        param = Parameter(id=1, name="SNA", description="Sella-Nasion-A angle", reference_values="80-84", order=1)
        db.add(param)
        db.flush()
    db.add(CaseParameter(case_id=case.id, parameter_id=param.id, value1=81.0, value2=82.5, value3=value3))

    q = Question(id=question_id, question="Predict the growth pattern", prediction_age=15, case_id=case.id, group_number=group)
    db.add(q)
    db.flush()

    for text, is_correct in ((correct, True), (wrong, False)):
        opt = db.query(Option).filter(Option.option == text).first()
        if opt is None:
            opt = Option(option=text)
            db.add(opt)
            db.flush()
        db.add(QuestionOption(question_id=q.id, option_id=opt.id, is_correct=is_correct))
    db.commit()
    return q


def seed_group(db, group: int, question_ids: list[int]) -> None:
    for qid in question_ids:
        seed_question(db, question_id=qid, group=group)


def seed_test(db, code: str, question_ids: list[int], *, created_by: int = 900) -> Test:
    t = Test(code=code, name=f"Test {code}", created_by=created_by)
    db.add(t)
    db.flush()
    for i, qid in enumerate(question_ids):
        db.add(TestQuestion(test_id=t.id, question_id=qid, sort_order=i))
    db.commit()
    return t


def seed_session(
    db,
    *,
    user_id: int,
    order: list[int],
    current: int,
    group: int = 0,
    mode: QuizMode = QuizMode.classic,
    status: QuizStatus = QuizStatus.in_progress,
    test: Test | None = None,
    at: datetime | None = None,
) -> QuizSession:
    at = at or datetime(2024, 3, 1, 11, 0, tzinfo=timezone.utc)
    s = QuizSession(
        user_id=user_id,
        mode=mode,
        status=status,
        screen_size="1920x1080",
        current_question=current,
        current_group=group,
        group_order=list(order),
        test_id=test.id if test is not None else None,
        test_code=test.code if test is not None else None,
        created_at=at,
        updated_at=at,
    )
    db.add(s)
    db.commit()
    return s
