from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from quiz_service.core.config import settings
from quiz_service.models.setting import Setting

log = logging.getLogger(__name__)

SECURITY_MODE = "quiz_security_mode"
COOLDOWN_HOURS = "quiz_cooldown_hours"
TIME_LIMIT = "time_limit"

SECURITY_MODES = {"open", "manual", "cooldown"}


class InvalidSetting(ValueError):
    pass


@dataclass(frozen=True)
class QuizSettings:
    security_mode: str
    cooldown_hours: int
    time_limit: int


def _as_int(raw: str | None, default: int) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


class SettingsProvider:
    """Reads the admin-managed quiz settings stored in the ``settings`` table."""

    def __init__(self, db: Session):
        self.db = db

    def all(self) -> dict[str, str]:
        rows = self.db.scalars(select(Setting).order_by(Setting.name)).all()
        return {r.name: r.value for r in rows}

    def snapshot(self) -> QuizSettings:
        values = self.all()

        mode = str(values.get(SECURITY_MODE) or "").strip().lower()
        if mode not in SECURITY_MODES:
            if mode:
                log.warning("unknown %s=%r, falling back to %s", SECURITY_MODE, mode, settings.default_security_mode)
            mode = settings.default_security_mode

        hours = _as_int(values.get(COOLDOWN_HOURS), settings.default_cooldown_hours)
        if hours < 0:
            hours = settings.default_cooldown_hours

        time_limit = _as_int(values.get(TIME_LIMIT), settings.default_time_limit_seconds)

        return QuizSettings(security_mode=mode, cooldown_hours=hours, time_limit=time_limit)

    def save(self, name: str, value: str) -> None:
        name = str(name or "").strip()
        value = str(value if value is not None else "").strip()
        if not name:
            raise InvalidSetting("invalid setting name")

        if name == TIME_LIMIT:
            if _as_int(value, 0) <= 0:
                raise InvalidSetting("time limit must be a positive integer")
        elif name == COOLDOWN_HOURS:
            if _as_int(value, -1) < 0:
                raise InvalidSetting("cooldown hours must be a non-negative integer")
        elif name == SECURITY_MODE:
            value = value.lower()
            if value not in SECURITY_MODES:
                raise InvalidSetting("security mode must be one of: " + ", ".join(sorted(SECURITY_MODES)))

        row = self.db.get(Setting, name)
        if row is None:
            self.db.add(Setting(name=name, value=value))
        else:
            row.value = value
