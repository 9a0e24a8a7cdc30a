"""Deterministic answers for the bot opponent.

The bot's correctness depends only on the question seed and its
difficulty, so the same round always plays out the same way:

- easy: 70-85% chance of answering correctly
- medium: 55-70%
- hard: 40-55%
- anything else: flat 75%
"""

from __future__ import annotations

import math
from typing import Sequence

_BANDS = {
    "easy": 0.70,
    "medium": 0.55,
    "hard": 0.40,
}
_BAND_WIDTH = 0.15
_DEFAULT_PROBABILITY = 0.75


def seed_value(seed: str) -> int:
    """Fold a seed string into a 32-bit integer."""

    value = 0
    for char in seed:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    return value + len(seed)


def seeded_random(seed: int) -> float:
    """Sine hash of ``seed`` mapped into [0, 1)."""

    x = math.sin(seed) * 10000
    return x - math.floor(x)


def correct_probability(difficulty: str, draw: float) -> float:
    low = _BANDS.get(difficulty)
    if low is None:
        return _DEFAULT_PROBABILITY
    return low + draw * _BAND_WIDTH


def bot_answer(question_seed: str, difficulty: str) -> bool:
    """Return whether the bot answers this question correctly.

    One draw picks both the probability inside the difficulty band and the
    outcome.
    """

    draw = seeded_random(seed_value(question_seed))
    return draw < correct_probability(difficulty, draw)


def bot_selection(was_correct: bool, correct_index: int, option_count: int) -> int:
    """Map the oracle outcome to the option index stored for the bot."""

    if was_correct or option_count < 2:
        return correct_index
    return (correct_index + 1) % option_count


def bot_pick(question_seed: str, difficulty: str, correct_index: int, options: Sequence[str]) -> int:
    return bot_selection(bot_answer(question_seed, difficulty), correct_index, len(options))


__all__ = [
    "bot_answer",
    "bot_pick",
    "bot_selection",
    "correct_probability",
    "seed_value",
    "seeded_random",
]
