from datetime import timedelta

from conftest import INTERNAL_HEADERS, seed_group, seed_session, seed_test
from quiz_service.core.config import settings
from quiz_service.models.quiz_session import QuizStatus


def test_internal_routes_require_api_key(client):
    r = client.get("/quiz/summary")
    assert r.status_code == 401
    assert r.json()["error_code"] == "unauthorized"

    r = client.get("/quiz/summary", headers={"X-Api-Key": "wrong"})
    assert r.status_code == 401


def test_internal_routes_disabled_without_configured_key(client, monkeypatch):
    monkeypatch.setattr(settings, "internal_api_key", "")
    r = client.get("/quiz/summary", headers=INTERNAL_HEADERS)
    assert r.status_code == 404


def test_summary_counts_questions(client, db):
    seed_group(db, 1, [1, 2, 3])

    r = client.get("/quiz/summary", headers=INTERNAL_HEADERS)
    assert r.status_code == 200
    assert r.json() == {"questions": 3, "active_surveys": 0}


def test_settings_roundtrip_and_validation(client):
    r = client.post(
        "/quiz/settings",
        json=[{"Name": "quiz_security_mode", "Value": "Manual"}, {"Name": "time_limit", "Value": "45"}],
        headers=INTERNAL_HEADERS,
    )
    assert r.status_code == 200, r.text

    r = client.get("/quiz/settings", headers=INTERNAL_HEADERS)
    assert r.status_code == 200
    assert r.json() == [
        {"Name": "quiz_security_mode", "Value": "manual"},
        {"Name": "time_limit", "Value": "45"},
    ]

    r = client.post("/quiz/settings", json=[{"Name": "time_limit", "Value": "0"}], headers=INTERNAL_HEADERS)
    assert r.status_code == 400
    assert r.json()["error_code"] == "bad_request"

    r = client.post("/quiz/settings", json=[{"Name": "quiz_security_mode", "Value": "lockdown"}], headers=INTERNAL_HEADERS)
    assert r.status_code == 400

    r = client.get("/quiz/settings", headers=INTERNAL_HEADERS)
    assert {"Name": "time_limit", "Value": "45"} in r.json()


def test_approve_unapprove_and_list(client, monkeypatch):
    import quiz_service.routers.internal as internal_module

    def _broken_queue(name=None):
        raise ConnectionError("redis down")

    # Notification is best-effort; approval still succeeds.
    monkeypatch.setattr(internal_module, "get_queue", _broken_queue)

    for uid in (12, 4):
        r = client.post("/quiz/approve", json={"user_id": uid}, headers=INTERNAL_HEADERS)
        assert r.status_code == 200

    r = client.get("/quiz/approved", headers=INTERNAL_HEADERS)
    assert r.json() == {"approved_user_ids": [4, 12]}

    r = client.post("/quiz/unapprove", json={"user_id": 12}, headers=INTERNAL_HEADERS)
    assert r.status_code == 200
    r = client.get("/quiz/approved", headers=INTERNAL_HEADERS)
    assert r.json() == {"approved_user_ids": [4]}

    r = client.post("/quiz/approve", json={"user_id": 0}, headers=INTERNAL_HEADERS)
    assert r.status_code == 400


def test_active_sessions_within_cutoff(client, db, clock):
    seed_group(db, 7, [11, 12])
    now = clock.now()
    recent = seed_session(db, user_id=1, order=[11, 12], current=11, group=7, at=now - timedelta(minutes=2))
    seed_session(db, user_id=2, order=[11, 12], current=11, group=7, at=now - timedelta(minutes=30))
    finished = seed_session(
        db, user_id=3, order=[11, 12], current=12, group=7, at=now - timedelta(minutes=1), status=QuizStatus.finished
    )
    finished.finished_at = now - timedelta(seconds=10)
    db.commit()

    r = client.get("/quiz/sessions/active", headers=INTERNAL_HEADERS)
    assert r.status_code == 200
    rows = r.json()
    assert [row["id"] for row in rows] == [recent.id]
    assert rows[0]["group_order"] == [11, 12]
    assert rows[0]["last_seen"]

    r = client.get("/quiz/sessions/active", params={"cutoff": 60}, headers=INTERNAL_HEADERS)
    assert [row["user_id"] for row in r.json()] == [1, 2]

    r = client.get("/quiz/sessions/active", params={"cutoff": 60, "limit": 1}, headers=INTERNAL_HEADERS)
    assert len(r.json()) == 1


def test_sessions_for_test_code(client, db):
    seed_group(db, 1, [5, 6])
    test = seed_test(db, "ABCD", [5, 6])
    s = seed_session(db, user_id=9, order=[5, 6], current=6, test=test)
    seed_session(db, user_id=9, order=[5, 6], current=5, group=1)

    r = client.get("/quiz/tests/abcd/sessions", headers=INTERNAL_HEADERS)
    assert r.status_code == 200
    rows = r.json()
    assert [row["id"] for row in rows] == [s.id]
    assert rows[0]["test_code"] == "ABCD"

    r = client.get("/quiz/tests/NOPE/sessions", headers=INTERNAL_HEADERS)
    assert r.status_code == 404
