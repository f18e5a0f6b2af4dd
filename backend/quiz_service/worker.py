from __future__ import annotations

import os

from rq import Worker

from quiz_service.core.config import settings
from quiz_service.core.redis_client import get_redis


def main() -> None:
    conn = get_redis(decode_responses=False)
    raw = str(os.getenv("RQ_WORKER_QUEUES") or "").strip()
    if raw:
        queues = [q.strip() for q in raw.split(",") if q.strip()]
    else:
        queues = [
            str(settings.rq_queue_stats),
            str(settings.rq_queue_default),
        ]
    worker = Worker(queues, connection=conn)
    worker.work()


if __name__ == "__main__":
    main()
