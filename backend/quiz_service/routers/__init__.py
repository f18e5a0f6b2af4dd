from quiz_service.routers import health, internal, sessions, tests

__all__ = [
    "health",
    "internal",
    "sessions",
    "tests",
]
