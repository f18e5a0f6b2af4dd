from __future__ import annotations

from rq import Queue

from quiz_service.core.config import settings
from quiz_service.core.redis_client import get_redis


def get_queue(name: str | None = None) -> Queue:
    eff = str(name or "").strip() or str(settings.rq_queue_default)
    return Queue(name=eff, connection=get_redis(decode_responses=False))
