"""Service layer: game rules and match operations, independent of HTTP."""

from .errors import BadRequest, Conflict, ErrorCode, Forbidden, NoQuestions, NotFound, ServiceError
from .matches import (
    BotOpponent,
    HumanOpponent,
    create_match,
    finalize_match,
    finalize_round,
    get_match_view,
    submit_answer,
)
from .matchmaking import find_human_opponent, join_queue
from .rating import tier_for, update_ratings
from .snapshots import export_match, restore_match

__all__ = [
    "BadRequest",
    "BotOpponent",
    "Conflict",
    "ErrorCode",
    "Forbidden",
    "HumanOpponent",
    "NoQuestions",
    "NotFound",
    "ServiceError",
    "create_match",
    "export_match",
    "finalize_match",
    "finalize_round",
    "find_human_opponent",
    "get_match_view",
    "join_queue",
    "restore_match",
    "submit_answer",
    "tier_for",
    "update_ratings",
]
