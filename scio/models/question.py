"""Database model for the question bank."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class Question(SQLModel, table=True):
    """Immutable multiple-choice reasoning question."""

    id: Optional[int] = ORMField(default=None, primary_key=True)
    type: str = "reasoning"
    prompt: str
    # JSON list of option strings: ["plants", "animals", ...]
    options_json: str
    correct_index: int
    difficulty: str = ORMField(default="medium", index=True)


__all__ = ["Question"]
