"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    CRON_SECRET,
    DATABASE_URL,
    DB_RESET,
    LOG_LEVEL,
    MATCHMAKING_GIVE_UP_MS,
    SEED_QUESTIONS,
)
from .database import engine, get_session
from .log import request_id_var, setup_logging
from .time import Clock, as_utc, from_ms, get_clock, to_ms, utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "CRON_SECRET",
    "Clock",
    "as_utc",
    "DATABASE_URL",
    "DB_RESET",
    "LOG_LEVEL",
    "MATCHMAKING_GIVE_UP_MS",
    "SEED_QUESTIONS",
    "engine",
    "from_ms",
    "get_clock",
    "get_session",
    "request_id_var",
    "setup_logging",
    "to_ms",
    "utcnow",
]
