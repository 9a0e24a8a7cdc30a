"""Match lifecycle endpoints.

Clients poll ``GET /match/{id}`` for progress, post answers to ``submit``
and call ``finalize-round`` once the deadline shown in the view passes.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ...core import Clock, get_clock, get_session
from ...schemas import AnswerSubmit, BotMatchStart, ClientRequest, HumanOpponentSpec, MatchComplete, MatchStart
from ...services.identity import ensure_user
from ...services.matches import (
    BotOpponent,
    HumanOpponent,
    complete_match,
    create_match,
    finalize_round,
    get_match_summary,
    get_match_view,
    load_match,
    side_of,
    submit_answer,
)
from ...services.snapshots import export_match

router = APIRouter(prefix="/match", tags=["match"])


@router.post("/start")
def start_match(
    body: MatchStart,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    if isinstance(body.opponent, HumanOpponentSpec):
        opponent = HumanOpponent(body.opponent.player_b_id)
    else:
        opponent = BotOpponent()
    created = create_match(session, body.player_id, opponent, clock)
    return {"ok": True, "matchId": created.match_id, "cached": created.cached}


@router.post("/bot/start")
def start_bot_match(
    body: BotMatchStart,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """Start (or resume) a bot match, registering the client if needed."""

    user = ensure_user(session, body.client_id, body.username, clock=clock)
    created = create_match(session, user.id, BotOpponent(), clock)
    return {"ok": True, "matchId": created.match_id, "cached": created.cached}


@router.post("/complete")
def complete(
    body: MatchComplete,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    return complete_match(session, body.match_id, body.client_id, body.result_a, clock=clock)


@router.get("/{match_id}")
def match_view(
    match_id: str,
    client_id: str = Query(..., alias="clientId", min_length=1),
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    return get_match_view(session, match_id, client_id, clock=clock)


@router.post("/{match_id}/submit")
def submit(
    match_id: str,
    body: AnswerSubmit,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    first_commit = body.time_to_first_commit_ms
    result = submit_answer(
        session,
        match_id,
        body.round_id,
        body.client_id,
        body.selected_index,
        clock=clock,
        time_to_first_commit_ms=int(first_commit) if first_commit is not None else None,
    )
    return {"roundComplete": result.round_complete, "matchComplete": result.match_complete}


@router.post("/{match_id}/finalize-round")
def finalize_current_round(
    match_id: str,
    body: ClientRequest,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    return finalize_round(session, match_id, body.client_id, clock=clock)


@router.get("/{match_id}/summary")
def match_summary(
    match_id: str,
    client_id: str = Query(..., alias="clientId", min_length=1),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    return get_match_summary(session, match_id, client_id)


@router.get("/{match_id}/export")
def match_export(
    match_id: str,
    client_id: str = Query(..., alias="clientId", min_length=1),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Snapshot of the match with its rounds and round logs, for either player."""

    side_of(load_match(session, match_id), client_id)
    return export_match(session, match_id)


__all__ = ["router"]
