from datetime import timedelta

import pytest

from quiz_service.models.access import QuizUserRegistry
from quiz_service.services import access_policy
from quiz_service.services.clock import as_utc
from quiz_service.services.errors import ApprovalRequired, CooldownActive
from quiz_service.services.quiz_settings import QuizSettings


def _settings(mode: str, hours: int = 24) -> QuizSettings:
    return QuizSettings(security_mode=mode, cooldown_hours=hours, time_limit=60)


def test_cooldown_rejects_until_window_has_passed(db, clock):
    now = clock.now()
    db.add(QuizUserRegistry(user_id=42, registered_at=now - timedelta(hours=10)))
    db.commit()

    with pytest.raises(CooldownActive) as ei:
        access_policy.evaluate(db, quiz_settings=_settings("cooldown"), user_id=42, now=now)

    err = ei.value
    assert err.wait_seconds == 14 * 3600
    payload = err.payload()
    assert payload["mode"] == "cooldown"
    assert payload["cooldownHours"] == 24
    assert payload["waitSeconds"] == 14 * 3600
    assert payload["readyAt"] == (now + timedelta(hours=14)).isoformat()


def test_cooldown_allows_after_window(db, clock):
    now = clock.now()
    db.add(QuizUserRegistry(user_id=42, registered_at=now - timedelta(hours=25)))
    db.commit()

    access_policy.evaluate(db, quiz_settings=_settings("cooldown"), user_id=42, now=now)


def test_first_evaluation_registers_user_once(db, clock):
    first = clock.now()
    with pytest.raises(CooldownActive):
        access_policy.evaluate(db, quiz_settings=_settings("cooldown"), user_id=7, now=first)

    later = clock.advance(hours=3)
    with pytest.raises(CooldownActive) as ei:
        access_policy.evaluate(db, quiz_settings=_settings("cooldown"), user_id=7, now=later)

    assert ei.value.wait_seconds == 21 * 3600
    db.expire_all()
    assert as_utc(db.get(QuizUserRegistry, 7).registered_at) == first


def test_registration_survives_rollback(db, clock):
    now = clock.now()
    with pytest.raises(CooldownActive):
        access_policy.evaluate(db, quiz_settings=_settings("cooldown"), user_id=8, now=now)
    db.rollback()

    assert as_utc(access_policy.registered_at(db, user_id=8, now=clock.advance(hours=1))) == now


def test_zero_hour_cooldown_admits_new_users(db, clock):
    access_policy.evaluate(db, quiz_settings=_settings("cooldown", hours=0), user_id=9, now=clock.now())


def test_manual_mode_requires_approval(db, clock):
    with pytest.raises(ApprovalRequired) as ei:
        access_policy.evaluate(db, quiz_settings=_settings("manual"), user_id=11, now=clock.now())
    assert ei.value.payload() == {"mode": "manual"}

    access_policy.set_approval(db, user_id=11, approved=True, admin_id=1, now=clock.now())
    db.commit()
    access_policy.evaluate(db, quiz_settings=_settings("manual"), user_id=11, now=clock.now())

    access_policy.set_approval(db, user_id=11, approved=False, admin_id=1, now=clock.now())
    db.commit()
    with pytest.raises(ApprovalRequired):
        access_policy.evaluate(db, quiz_settings=_settings("manual"), user_id=11, now=clock.now())


def test_open_mode_admits_everyone(db, clock):
    access_policy.evaluate(db, quiz_settings=_settings("open"), user_id=12, now=clock.now())
    assert db.get(QuizUserRegistry, 12) is None


def test_approved_user_ids_lists_only_approved(db, clock):
    for uid, ok in ((3, True), (1, True), (2, False)):
        access_policy.set_approval(db, user_id=uid, approved=ok, admin_id=None, now=clock.now())
    db.commit()

    assert access_policy.approved_user_ids(db) == [1, 3]
