"""Database model for per-player round telemetry."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class RoundLog(SQLModel, table=True):
    """How one player handled one round; upserted, never duplicated."""

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", "round_index", name="uq_roundlog_slot"),
    )

    id: Optional[int] = ORMField(default=None, primary_key=True)
    match_id: str = ORMField(foreign_key="match.id", index=True)
    user_id: str = ORMField(foreign_key="user.id", index=True)
    round_index: int
    question_id: Optional[int] = None
    correct: bool = False
    selected_option: Optional[str] = None
    time_expired: bool = False
    response_time_ms: int = 0
    time_to_first_commit_ms: Optional[int] = None
    created_at: datetime = ORMField(default_factory=utcnow)
    updated_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["RoundLog"]
