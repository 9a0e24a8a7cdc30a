"""Question bank helpers."""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlmodel import Session, func, select

from ..models import Question
from .errors import NoQuestions

logger = logging.getLogger(__name__)

ROUNDS_PER_MATCH = 5
OVERSAMPLE_FACTOR = 4

QUESTION_BANK_PATH = Path(__file__).resolve().parents[1] / "data" / "questions.json"


def question_options(question: Question) -> List[str]:
    """Extract the option list from stored JSON."""

    return json.loads(question.options_json or "[]")


def question_to_dict(question: Question, *, reveal: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": question.id,
        "type": question.type,
        "prompt": question.prompt,
        "options": question_options(question),
        "difficulty": question.difficulty,
    }
    if reveal:
        data["correctIndex"] = question.correct_index
    return data


def draw_questions(
    session: Session, count: int = ROUNDS_PER_MATCH, rng: Optional[random.Random] = None
) -> List[Question]:
    """Pick ``count`` distinct questions at random.

    Oversamples a candidate pool, shuffles it and keeps the first ``count``.
    """

    rng = rng or random.Random()
    candidates = list(
        session.exec(
            select(Question).order_by(func.random()).limit(count * OVERSAMPLE_FACTOR)
        ).all()
    )
    if len(candidates) < count:
        logger.error(
            "Not enough questions in bank: found %d, need %d", len(candidates), count
        )
        raise NoQuestions("Not enough questions available. Please contact support.")
    rng.shuffle(candidates)
    return candidates[:count]


def load_question_bank(path: Path = QUESTION_BANK_PATH) -> List[Dict[str, Any]]:
    return json.loads(path.read_text(encoding="utf-8"))


def seed_questions(session: Session, path: Path = QUESTION_BANK_PATH) -> int:
    """Insert the built-in bank when the table is empty; returns rows added."""

    existing = session.exec(select(func.count(Question.id))).one()
    if existing:
        return 0

    bank = load_question_bank(path)
    for item in bank:
        session.add(
            Question(
                type=item.get("type", "reasoning"),
                prompt=item["prompt"],
                options_json=json.dumps(item["options"]),
                correct_index=int(item["correct_index"]),
                difficulty=item.get("difficulty", "medium"),
            )
        )
    session.commit()
    logger.info("Seeded %d questions", len(bank))
    return len(bank)


__all__ = [
    "OVERSAMPLE_FACTOR",
    "ROUNDS_PER_MATCH",
    "draw_questions",
    "load_question_bank",
    "question_options",
    "question_to_dict",
    "seed_questions",
]
