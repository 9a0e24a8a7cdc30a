"""System-level API endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from ...core import MATCHMAKING_GIVE_UP_MS
from ...services.progress import ROUND_DURATION_MS
from ...services.questions import ROUNDS_PER_MATCH

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness probe."""

    return {"ok": True}


@router.get("/config")
def get_config() -> Dict[str, Any]:
    """Expose gameplay constants the client needs for its timers."""

    return {
        "roundDurationMs": ROUND_DURATION_MS,
        "roundsPerMatch": ROUNDS_PER_MATCH,
        "matchmakingGiveUpMs": MATCHMAKING_GIVE_UP_MS,
    }


__all__ = ["router"]
