"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# Storage --------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DATA_DIR / 'app.db'}"
DB_RESET = _env_bool("DB_RESET", False)
SEED_QUESTIONS = _env_bool("SEED_QUESTIONS", True)


# CORS -----------------------------------------------------------------------
# FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
_frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN"))
_additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

_local_dev_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_frontend_origins,
        *_additional_origins,
        *_local_dev_origins,
    ]
)


# Runtime behaviour ----------------------------------------------------------
CRON_SECRET = os.getenv("CRON_SECRET") or None
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
MATCHMAKING_GIVE_UP_MS = _env_int("MATCHMAKING_GIVE_UP_MS", 12_000)


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "CRON_SECRET",
    "DATABASE_URL",
    "DATA_DIR",
    "DB_RESET",
    "LOG_LEVEL",
    "MATCHMAKING_GIVE_UP_MS",
    "PROJECT_ROOT",
    "SEED_QUESTIONS",
]
