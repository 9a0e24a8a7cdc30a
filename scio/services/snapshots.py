"""JSON snapshots of a match with its rounds and round logs."""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlmodel import Session, select

from ..models import Match, MatchRound, RoundLog
from .matches import load_match, load_rounds

logger = logging.getLogger(__name__)


def export_match(session: Session, match_id: str) -> Dict[str, Any]:
    match = load_match(session, match_id)
    logs = session.exec(
        select(RoundLog).where(RoundLog.match_id == match_id).order_by(RoundLog.user_id, RoundLog.round_index)
    ).all()
    return {
        "match": match.model_dump(mode="json"),
        "rounds": [round_.model_dump(mode="json") for round_ in load_rounds(session, match_id)],
        "roundLogs": [log.model_dump(mode="json") for log in logs],
    }


def restore_match(session: Session, snapshot: Dict[str, Any]) -> Match:
    """Write a snapshot back, replacing rows with the same primary keys."""

    match = session.merge(Match.model_validate(snapshot["match"]))
    for data in snapshot.get("rounds", []):
        session.merge(MatchRound.model_validate(data))
    for data in snapshot.get("roundLogs", []):
        session.merge(RoundLog.model_validate(data))
    session.commit()
    session.refresh(match)
    logger.info("Restored match %s (%s)", match.id, match.status)
    return match


__all__ = ["export_match", "restore_match"]
