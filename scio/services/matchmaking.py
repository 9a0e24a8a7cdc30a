"""Rating-window matchmaking with a bot fallback.

There is no queue structure to maintain: a player "waits" by carrying a
recent ``queued_at`` timestamp, and every join poll re-runs the opponent
search against the other waiting players.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlmodel import Session, func, or_, select

from ..core.config import MATCHMAKING_GIVE_UP_MS
from ..core.time import Clock, from_ms, to_ms, utcnow
from ..models import Match, MatchStatus, OpponentKind, User
from .events import record_event
from .identity import get_user
from .matches import BotOpponent, HumanOpponent, create_match

logger = logging.getLogger(__name__)

BASE_WINDOW = 100
WINDOW_STEP = 10
WINDOW_STEP_MS = 2_000
QUEUE_TTL = timedelta(minutes=2)


@dataclass(frozen=True)
class QueueStatus:
    status: str
    queue_started_at_ms: int
    search_window: int
    timeout_ms: int
    match_id: Optional[str] = None
    opponent_kind: Optional[OpponentKind] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "matchId": self.match_id,
            "opponentKind": self.opponent_kind.value if self.opponent_kind else None,
            "queueStartedAtMs": self.queue_started_at_ms,
            "searchWindow": self.search_window,
            "timeoutMs": self.timeout_ms,
        }


def search_window(elapsed_ms: int) -> int:
    """Rating distance accepted after waiting ``elapsed_ms``."""

    return BASE_WINDOW + (max(0, elapsed_ms) // WINDOW_STEP_MS) * WINDOW_STEP


def find_human_opponent(
    session: Session,
    user_id: str,
    user_rating: int,
    queue_start_ms: int,
    clock: Clock = utcnow,
) -> Optional[str]:
    """Closest-rated waiting player inside the current window, if any.

    Read-only: creating the match is up to the caller.
    """

    now = clock()
    window = search_window(to_ms(now) - queue_start_ms)
    opponent = session.exec(
        select(User)
        .where(
            User.id != user_id,
            User.queued_at.is_not(None),
            User.queued_at >= now - QUEUE_TTL,
            User.rating >= user_rating - window,
            User.rating <= user_rating + window,
        )
        .order_by(func.abs(User.rating - user_rating), User.queued_at)
    ).first()
    return opponent.id if opponent else None


def _recent_active_match(session: Session, user_id: str, since_ms: int) -> Optional[Match]:
    return session.exec(
        select(Match)
        .where(
            Match.status == MatchStatus.ACTIVE,
            or_(Match.player_a_id == user_id, Match.player_b_id == user_id),
            Match.started_at >= from_ms(since_ms),
        )
        .order_by(Match.started_at.desc())
    ).first()


def _is_waiting(user: User, now_ms: int) -> bool:
    if user.queued_at is None:
        return False
    return now_ms - to_ms(user.queued_at) < QUEUE_TTL.total_seconds() * 1000


def join_queue(
    session: Session,
    user_id: str,
    queue_started_at_ms: Optional[int] = None,
    clock: Clock = utcnow,
    give_up_ms: int = MATCHMAKING_GIVE_UP_MS,
    rng: Optional[random.Random] = None,
) -> QueueStatus:
    """One matchmaking poll.

    Returns a match already opened for this player since it started
    waiting, pairs it with a waiting human in range, or falls back to a bot
    once ``give_up_ms`` has passed.
    """

    user = get_user(session, user_id)
    now_ms = to_ms(clock())

    if queue_started_at_ms is None:
        start_ms = to_ms(user.queued_at) if _is_waiting(user, now_ms) else now_ms
    else:
        start_ms = min(queue_started_at_ms, now_ms)
    elapsed_ms = now_ms - start_ms
    window = search_window(elapsed_ms)

    def matched(match_id: str, kind: OpponentKind) -> QueueStatus:
        return QueueStatus("matched", start_ms, window, give_up_ms, match_id, kind)

    existing = _recent_active_match(session, user.id, start_ms)
    if existing:
        logger.debug("Join for %s found match %s", user.id, existing.id)
        return matched(existing.id, OpponentKind(existing.opponent_kind))

    if not _is_waiting(user, now_ms):
        record_event(session, "queue_joined", {"rating": user.rating}, user.id, clock)
        logger.info("%s joined matchmaking at rating %d", user.id, user.rating)
    user.queued_at = from_ms(start_ms)
    session.add(user)
    session.commit()

    opponent_id = find_human_opponent(session, user.id, user.rating, start_ms, clock)
    if opponent_id:
        created = create_match(session, user.id, HumanOpponent(opponent_id), clock, rng)
        logger.info("Paired %s with %s in match %s", user.id, opponent_id, created.match_id)
        return matched(created.match_id, OpponentKind.HUMAN)

    if elapsed_ms >= give_up_ms:
        created = create_match(session, user.id, BotOpponent(), clock, rng)
        logger.info("No opponent for %s after %d ms, bot match %s", user.id, elapsed_ms, created.match_id)
        return matched(created.match_id, OpponentKind.BOT)

    return QueueStatus("queued", start_ms, window, give_up_ms)


def cancel_queue(session: Session, user_id: str) -> User:
    user = get_user(session, user_id)
    if user.queued_at is not None:
        user.queued_at = None
        session.add(user)
        session.commit()
        session.refresh(user)
        logger.info("%s left matchmaking", user_id)
    return user


__all__ = [
    "BASE_WINDOW",
    "QUEUE_TTL",
    "QueueStatus",
    "cancel_queue",
    "find_human_opponent",
    "join_queue",
    "search_window",
]
