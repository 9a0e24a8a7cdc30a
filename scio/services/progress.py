"""Pure derivations over persisted match state.

Nothing here touches the database or caches anything: the current round,
its deadline and the final tallies are recomputed from stored timestamps
and answers on every call, so any server process reading the same rows
gets the same answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from ..core.time import to_ms
from ..models import MatchResult, MatchRound

ROUND_DURATION_MS = 25_000

RESULT_SCORES = {
    MatchResult.WIN: 1.0,
    MatchResult.DRAW: 0.5,
    MatchResult.LOSS: 0.0,
}


@dataclass(frozen=True)
class RoundProgress:
    current_round_index: Optional[int]
    round_start_ms: Optional[int]
    round_deadline_ms: Optional[int]
    status: str

    @property
    def resolved(self) -> bool:
        return self.current_round_index is None

    def to_dict(self, now_ms: int) -> dict:
        return {
            "currentRoundIndex": self.current_round_index,
            "roundStartMs": self.round_start_ms,
            "roundDeadlineMs": self.round_deadline_ms,
            "roundDurationMs": ROUND_DURATION_MS,
            "roundStatus": self.status,
            "serverNowMs": now_ms,
        }


def derive_progress(
    started_at_ms: int,
    rounds: Sequence[MatchRound],
    now_ms: int,
    duration_ms: int = ROUND_DURATION_MS,
) -> RoundProgress:
    """Locate the open round and its deadline.

    The current round is the first one without an end timestamp. It starts
    when the previous round ended (round 0 starts with the match), so a
    round can never be current while an earlier one is still open.
    """

    anchor_ms = started_at_ms
    for round_ in sorted(rounds, key=lambda r: r.round_index):
        if round_.ended_at is None:
            deadline_ms = anchor_ms + duration_ms
            status = "timeout" if now_ms >= deadline_ms else "active"
            return RoundProgress(round_.round_index, anchor_ms, deadline_ms, status)
        anchor_ms = to_ms(round_.ended_at)
    return RoundProgress(None, None, None, "ended")


def round_start_ms(started_at_ms: int, rounds: Sequence[MatchRound], round_index: int) -> int:
    if round_index == 0:
        return started_at_ms
    for round_ in rounds:
        if round_.round_index == round_index - 1 and round_.ended_at is not None:
            return to_ms(round_.ended_at)
    return started_at_ms


def tally_scores(rounds: Iterable[MatchRound]) -> Tuple[int, int]:
    """Count rounds where each side picked the correct option."""

    score_a = score_b = 0
    for round_ in rounds:
        if round_.player_a_answer is not None and round_.player_a_answer == round_.correct_index:
            score_a += 1
        if round_.player_b_answer is not None and round_.player_b_answer == round_.correct_index:
            score_b += 1
    return score_a, score_b


def derive_result(score_a: int, score_b: int) -> MatchResult:
    if score_a > score_b:
        return MatchResult.WIN
    if score_a < score_b:
        return MatchResult.LOSS
    return MatchResult.DRAW


def invert_result(result: MatchResult) -> MatchResult:
    if result == MatchResult.WIN:
        return MatchResult.LOSS
    if result == MatchResult.LOSS:
        return MatchResult.WIN
    return result


def is_near_miss(result: MatchResult, score_a: int, score_b: int) -> bool:
    """A loss by exactly one question."""

    return result == MatchResult.LOSS and score_b - score_a == 1


def find_deciding_round(
    rounds: Sequence[MatchRound], score_a: int, score_b: int
) -> Optional[int]:
    """Earliest wrong answer of side A whose correction closes the gap."""

    for round_ in sorted(rounds, key=lambda r: r.round_index):
        if round_.player_a_answer == round_.correct_index:
            continue
        if score_a + 1 >= score_b:
            return round_.round_index
    return None


__all__ = [
    "RESULT_SCORES",
    "ROUND_DURATION_MS",
    "RoundProgress",
    "derive_progress",
    "derive_result",
    "find_deciding_round",
    "invert_result",
    "is_near_miss",
    "round_start_ms",
    "tally_scores",
]
