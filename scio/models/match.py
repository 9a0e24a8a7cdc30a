"""Database models for matches and their gameplay rounds."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


def _new_id() -> str:
    return uuid.uuid4().hex


class MatchStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class OpponentKind(str, Enum):
    BOT = "BOT"
    HUMAN = "HUMAN"


class MatchResult(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    DRAW = "DRAW"
    UNKNOWN = "UNKNOWN"


class RoundState(str, Enum):
    OPEN = "OPEN"
    ENDED = "ENDED"


class Match(SQLModel, table=True):
    """A five-round battle between player A and a human or bot side B.

    ``dedup_key`` is only set while the match is ACTIVE; its unique index
    keeps concurrent start requests from opening two matches for the same
    pairing.
    """

    id: str = ORMField(default_factory=_new_id, primary_key=True, max_length=32)
    player_a_id: str = ORMField(foreign_key="user.id", index=True)
    player_b_id: Optional[str] = ORMField(default=None, foreign_key="user.id", index=True)
    opponent_kind: OpponentKind
    status: MatchStatus = ORMField(default=MatchStatus.ACTIVE, index=True)
    mode: str = "ranked"
    dedup_key: Optional[str] = ORMField(default=None, unique=True)
    started_at: datetime = ORMField(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    rating_before_a: int
    rating_before_b: int
    rating_after_a: Optional[int] = None
    rating_after_b: Optional[int] = None
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    result_a: MatchResult = MatchResult.UNKNOWN
    near_miss: bool = False
    deciding_round_index: Optional[int] = None

    @property
    def is_bot(self) -> bool:
        return self.opponent_kind == OpponentKind.BOT

    def has_player(self, user_id: str) -> bool:
        return user_id in (self.player_a_id, self.player_b_id)


class MatchRound(SQLModel, table=True):
    """One timed question inside a match.

    Answers are stored as selected option indexes for both sides; a null
    ``ended_at`` means the round is still OPEN.
    """

    __table_args__ = (
        UniqueConstraint("match_id", "round_index", name="uq_matchround_index"),
    )

    id: str = ORMField(default_factory=_new_id, primary_key=True, max_length=32)
    match_id: str = ORMField(foreign_key="match.id", index=True)
    round_index: int
    question_id: int = ORMField(foreign_key="question.id")
    correct_index: int
    player_a_answer: Optional[int] = None
    player_b_answer: Optional[int] = None
    player_a_answered_at: Optional[datetime] = None
    player_b_answered_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    end_reason: Optional[str] = None
    deciding: bool = False

    @property
    def state(self) -> RoundState:
        return RoundState.OPEN if self.ended_at is None else RoundState.ENDED

    @property
    def both_answered(self) -> bool:
        return self.player_a_answer is not None and self.player_b_answer is not None


__all__ = [
    "Match",
    "MatchResult",
    "MatchRound",
    "MatchStatus",
    "OpponentKind",
    "RoundState",
]
