"""Matchmaking endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ...core import Clock, get_clock, get_session
from ...schemas import ClientRequest, QueueJoin
from ...services.matches import BotOpponent, create_match
from ...services.matchmaking import cancel_queue, join_queue

router = APIRouter(prefix="/matchmaking", tags=["matchmaking"])


@router.post("/join")
def join(
    body: QueueJoin,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """Poll matchmaking; clients repeat this until ``status`` is matched."""

    return join_queue(session, body.client_id, body.queue_started_at_ms, clock=clock).to_dict()


@router.post("/cancel")
def cancel(body: ClientRequest, session: Session = Depends(get_session)) -> Dict[str, Any]:
    cancel_queue(session, body.client_id)
    return {"ok": True}


@router.post("/create-bot")
def create_bot(
    body: ClientRequest,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    created = create_match(session, body.client_id, BotOpponent(), clock)
    return {"ok": True, "matchId": created.match_id, "cached": created.cached}


__all__ = ["router"]
