"""Per-player round telemetry."""

from __future__ import annotations

from typing import List, Optional

from sqlmodel import Session, select

from ..core.time import Clock, utcnow
from ..models import Match, MatchStatus, RoundLog, User
from .errors import BadRequest, Conflict, Forbidden, NotFound

MAX_RESPONSE_MS = 600_000


def clamp_response_time(value: Optional[float]) -> int:
    if value is None or value != value:
        return 0
    return min(MAX_RESPONSE_MS, max(0, int(value)))


def clamp_first_commit(value: Optional[float], response_time_ms: int) -> Optional[int]:
    if value is None or value != value:
        return None
    return min(response_time_ms, max(0, int(value)))


def upsert_round_log(
    session: Session,
    *,
    match_id: str,
    user_id: str,
    round_index: int,
    correct: bool,
    response_time_ms: int,
    question_id: Optional[int] = None,
    selected_option: Optional[str] = None,
    time_expired: bool = False,
    time_to_first_commit_ms: Optional[int] = None,
    overwrite: bool = True,
    clock: Clock = utcnow,
) -> RoundLog:
    """Stage the log for ``(match, user, round)``; caller commits.

    With ``overwrite=False`` an existing row is returned untouched.
    """

    log = session.exec(
        select(RoundLog).where(
            RoundLog.match_id == match_id,
            RoundLog.user_id == user_id,
            RoundLog.round_index == round_index,
        )
    ).first()
    if log and not overwrite:
        return log

    now = clock()
    if log is None:
        log = RoundLog(match_id=match_id, user_id=user_id, round_index=round_index, created_at=now)
    log.question_id = question_id
    log.correct = correct
    log.selected_option = selected_option
    log.time_expired = time_expired
    log.response_time_ms = clamp_response_time(response_time_ms)
    log.time_to_first_commit_ms = clamp_first_commit(
        time_to_first_commit_ms, log.response_time_ms
    )
    log.updated_at = now
    session.add(log)
    return log


def record_client_round(
    session: Session,
    *,
    client_id: str,
    match_id: str,
    round_index: int,
    correct: bool,
    response_time_ms: Optional[float],
    question_id: Optional[int] = None,
    selected_option: Optional[str] = None,
    time_expired: bool = False,
    time_to_first_commit_ms: Optional[float] = None,
    clock: Clock = utcnow,
) -> RoundLog:
    """Store telemetry reported by the client for one of its rounds."""

    if round_index < 0:
        raise BadRequest("roundIndex must be non-negative")

    match = session.get(Match, match_id)
    if not match:
        raise NotFound("Match not found")
    if match.status != MatchStatus.ACTIVE:
        raise Conflict("Match not active")
    if not session.get(User, client_id):
        raise NotFound("User not found")
    if not match.has_player(client_id):
        raise Forbidden("Not a player in this match")

    log = upsert_round_log(
        session,
        match_id=match_id,
        user_id=client_id,
        round_index=round_index,
        question_id=question_id,
        correct=correct,
        selected_option=selected_option,
        time_expired=time_expired,
        response_time_ms=clamp_response_time(response_time_ms),
        time_to_first_commit_ms=time_to_first_commit_ms,
        clock=clock,
    )
    session.commit()
    session.refresh(log)
    return log


def logs_for(session: Session, match_id: str, user_id: str) -> List[RoundLog]:
    return list(
        session.exec(
            select(RoundLog)
            .where(RoundLog.match_id == match_id, RoundLog.user_id == user_id)
            .order_by(RoundLog.round_index)
        ).all()
    )


__all__ = [
    "MAX_RESPONSE_MS",
    "clamp_first_commit",
    "clamp_response_time",
    "logs_for",
    "record_client_round",
    "upsert_round_log",
]
