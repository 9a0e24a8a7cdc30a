"""Client round telemetry."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ...core import Clock, get_clock, get_session
from ...schemas import RoundLogSubmit
from ...services.round_logs import record_client_round

router = APIRouter(tags=["rounds"])


@router.post("/round/submit")
def submit_round_log(
    body: RoundLogSubmit,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    log = record_client_round(
        session,
        client_id=body.client_id,
        match_id=body.match_id,
        round_index=body.round_index,
        correct=body.correct,
        response_time_ms=body.response_time_ms,
        question_id=body.question_id,
        selected_option=body.selected_option,
        time_expired=body.time_expired,
        time_to_first_commit_ms=body.time_to_first_commit_ms,
        clock=clock,
    )
    return {
        "ok": True,
        "roundLogId": log.id,
        "responseTimeMs": log.response_time_ms,
        "timeToFirstCommitMs": log.time_to_first_commit_ms,
    }


__all__ = ["router"]
