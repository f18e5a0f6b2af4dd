from __future__ import annotations

import redis

from quiz_service.core.config import settings


def get_redis(*, decode_responses: bool = True) -> redis.Redis:
    # RQ pickles job payloads, so queue connections must keep raw bytes.
    return redis.Redis.from_url(settings.redis_url, decode_responses=decode_responses)
