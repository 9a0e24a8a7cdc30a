"""Leaderboard and season endpoints."""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlmodel import Session

from ...core import CRON_SECRET, Clock, get_clock, get_session
from ...services.seasons import get_leaderboard, rotate_season, season_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leaderboard"])


@router.get("/leaderboard")
def leaderboard(
    season_id: Optional[str] = Query(None, alias="seasonId"),
    cohort_tag: Optional[str] = Query(None, alias="cohortTag"),
    limit: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """Ranked season rows, optionally for one cohort."""

    return get_leaderboard(session, season_id, cohort_tag, limit, clock=clock)


def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    if not CRON_SECRET:
        logger.error("CRON_SECRET is not configured")
        raise HTTPException(500, "CRON_SECRET not configured")
    if not hmac.compare_digest(authorization or "", f"Bearer {CRON_SECRET}"):
        raise HTTPException(401, "Unauthorized")


@router.get("/cron/rotate-season", dependencies=[Depends(require_cron_secret)])
def cron_rotate_season(
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    season = rotate_season(session, clock=clock)
    return {"ok": True, "season": season_to_dict(season)}


__all__ = ["router", "require_cron_secret"]
