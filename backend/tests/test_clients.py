import json

import httpx
import pytest

from quiz_service.core.security import AuthClient, TokenRejected, decode_jwt
from quiz_service.services import stats as stats_module
from quiz_service.services.errors import StatsReportError
from quiz_service.services.stats import QueuedStatsReporter
from quiz_service.services.stats_client import AnswerRecord, SessionRecord, StatsClient
from quiz_service.services.stats_jobs import report_answer_job, report_finished_job

from conftest import make_token


def test_auth_client_reads_verify_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"user_id": 17, "role": "teacher"})

    client = AuthClient(base_url="http://auth.local/", transport=httpx.MockTransport(handler))
    user = client.verify_token("tok")

    assert user.user_id == 17
    assert user.role == "teacher"
    assert seen == {"url": "http://auth.local/verify", "auth": "Bearer tok", "body": {"token": "tok"}}


@pytest.mark.parametrize(
    "response",
    [httpx.Response(401, json={"error": "expired"}), httpx.Response(200, json={"role": "user"})],
)
def test_auth_client_rejects(response):
    client = AuthClient(base_url="http://auth.local", transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(TokenRejected):
        client.verify_token("tok")


def test_decode_jwt():
    user = decode_jwt(make_token(8, role="admin"))
    assert user.user_id == 8
    assert user.is_admin

    with pytest.raises(TokenRejected):
        decode_jwt("garbage")


def test_stats_client_wire_contract():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path, request.headers.get("X-Api-Key"), request.content))
        return httpx.Response(201)

    client = StatsClient(base_url="http://stats.local", api_key="k1", transport=httpx.MockTransport(handler))
    client.save_session(SessionRecord(session_id=3, user_id=9, quiz_mode="classic"))
    client.save_response(
        3,
        AnswerRecord(question_id=11, answer="A", is_correct=True, screen_size="1x1", time_spent=4, case_code="C1"),
    )
    client.finish_session(3)

    assert [c[0] for c in calls] == ["/sessions/save", "/sessions/3/respond", "/sessions/3/finish"]
    assert all(c[1] == "k1" for c in calls)
    assert json.loads(calls[0][2]) == {"session_id": 3, "user_id": 9, "quiz_mode": "classic"}
    assert json.loads(calls[1][2]) == {
        "question_id": 11,
        "answer": "A",
        "is_correct": True,
        "screen_size": "1x1",
        "time_spent": 4,
        "case_code": "C1",
    }


def test_session_record_includes_test_fields_when_bound():
    record = SessionRecord(session_id=3, user_id=9, quiz_mode="classic", test_id=2, test_code="ABCD")
    assert record.to_json()["test_code"] == "ABCD"
    assert record.to_json()["test_id"] == 2


def test_stats_client_raises_on_rejection():
    client = StatsClient(
        base_url="http://stats.local",
        api_key="k1",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(StatsReportError):
        client.finish_session(1)


def test_stats_client_raises_when_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = StatsClient(base_url="http://stats.local", api_key="k1", transport=httpx.MockTransport(handler))
    with pytest.raises(StatsReportError):
        client.finish_session(1)


def test_queued_reporter_enqueues_jobs(monkeypatch):
    jobs = []

    class _Queue:
        def enqueue(self, func, *args, **kwargs):
            jobs.append((func, args, kwargs))

    monkeypatch.setattr(stats_module, "get_queue", lambda name=None: _Queue())
    reporter = QueuedStatsReporter(queue_name="stats")
    record = AnswerRecord(question_id=1, answer="", is_correct=False, screen_size="", time_spent=0, case_code="C")

    reporter.report_answer(5, record)
    reporter.report_finished(5)

    assert [j[0] for j in jobs] == [report_answer_job, report_finished_job]
    assert jobs[0][1] == (5, record)
    assert "retry" not in jobs[0][2]


def test_queued_reporter_surfaces_enqueue_failure(monkeypatch):
    def _down(name=None):
        raise ConnectionError("redis down")

    monkeypatch.setattr(stats_module, "get_queue", _down)
    with pytest.raises(StatsReportError):
        QueuedStatsReporter().report_finished(5)
