"""Elo rating updates and tier bands."""

from __future__ import annotations

import math
from typing import Tuple

K_FACTOR = 32
STARTING_RATING = 1200
BOT_RATING = 1200

_TIERS = (
    (1150, "Bronze"),
    (1350, "Silver"),
    (1550, "Gold"),
)


def expected_score(rating: float, opponent_rating: float) -> float:
    """Logistic probability that ``rating`` beats ``opponent_rating``."""

    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def update_ratings(
    rating_a: float, rating_b: float, score_a: float, k_factor: int = K_FACTOR
) -> Tuple[int, int]:
    """Return both sides' new ratings after a match.

    ``score_a`` is side A's actual score (1 win, 0.5 draw, 0 loss); side B
    scores the complement. NaN ratings are not rejected here and come back
    out as NaN, so callers must validate what they pass in.
    """

    expected_a = expected_score(rating_a, rating_b)
    expected_b = 1 - expected_a
    new_a = rating_a + k_factor * (score_a - expected_a)
    new_b = rating_b + k_factor * ((1 - score_a) - expected_b)
    return _round(new_a), _round(new_b)


def _round(value: float):
    # Half-up, not round-half-even: 1212.5 -> 1213.
    if math.isnan(value):
        return value
    return math.floor(value + 0.5)


def tier_for(rating: int) -> str:
    for upper, name in _TIERS:
        if rating < upper:
            return name
    return "Platinum"


__all__ = [
    "BOT_RATING",
    "K_FACTOR",
    "STARTING_RATING",
    "expected_score",
    "tier_for",
    "update_ratings",
]
