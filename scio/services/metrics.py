"""Time-pressure metrics for a finished match."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable

ACCURACY_HIGH = 0.7
ACCURACY_LOW = 0.55
TIME_REMAINING_LOW = 0.35
TIME_REMAINING_HIGH = 0.45


@dataclass
class MatchMetrics:
    accuracy: float
    avg_response_time_ms: float
    avg_time_remaining_ratio: float
    match_efficiency_score: float
    label: str
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "accuracy": data["accuracy"],
            "avgResponseTimeMs": data["avg_response_time_ms"],
            "avgTimeRemainingRatio": data["avg_time_remaining_ratio"],
            "matchEfficiencyScore": data["match_efficiency_score"],
            "label": data["label"],
            "explanation": data["explanation"],
        }


def time_remaining_ratio(response_time_ms: int, round_duration_ms: int) -> float:
    return max(0, round_duration_ms - response_time_ms) / round_duration_ms


def round_efficiency(correct: bool, response_time_ms: int, round_duration_ms: int) -> float:
    """Share of the clock left when answering correctly; 0 when wrong."""

    if not correct:
        return 0.0
    return time_remaining_ratio(response_time_ms, round_duration_ms)


def compute_match_metrics(rounds: Iterable[Any], round_duration_ms: int) -> MatchMetrics:
    """Aggregate RoundLog-like rows (``correct``, ``response_time_ms``)."""

    rounds = list(rounds)
    if not rounds:
        return MatchMetrics(0.0, 0.0, 0.0, 0.0, "Balanced", "No rounds completed")

    count = len(rounds)
    accuracy = sum(1 for r in rounds if r.correct) / count
    avg_response = sum(r.response_time_ms for r in rounds) / count
    avg_remaining = (
        sum(time_remaining_ratio(r.response_time_ms, round_duration_ms) for r in rounds)
        / count
    )
    efficiency = (
        sum(
            round_efficiency(r.correct, r.response_time_ms, round_duration_ms)
            for r in rounds
        )
        / count
    )

    if accuracy >= ACCURACY_HIGH and avg_remaining < TIME_REMAINING_LOW:
        label = "Accurate but slow"
        explanation = (
            "You're getting it right, but underusing the clock. "
            "Try committing earlier to build speed."
        )
    elif accuracy < ACCURACY_LOW and avg_remaining >= TIME_REMAINING_HIGH:
        label = "Fast but inaccurate"
        explanation = (
            "You're committing quickly, but accuracy is lagging. "
            "Slow down slightly and verify your reasoning."
        )
    else:
        label = "Balanced"
        explanation = "Good tradeoff between speed and accuracy. Keep refining both."

    return MatchMetrics(accuracy, avg_response, avg_remaining, efficiency, label, explanation)


__all__ = ["MatchMetrics", "compute_match_metrics", "round_efficiency", "time_remaining_ratio"]
