"""Database model exports."""

from .event import Event
from .match import Match, MatchResult, MatchRound, MatchStatus, OpponentKind, RoundState
from .question import Question
from .round_log import RoundLog
from .season import LeaderboardSnapshot, Season
from .user import User

__all__ = [
    "Event",
    "LeaderboardSnapshot",
    "Match",
    "MatchResult",
    "MatchRound",
    "MatchStatus",
    "OpponentKind",
    "Question",
    "RoundLog",
    "RoundState",
    "Season",
    "User",
]
