"""Database models for weekly seasons and their leaderboard rows."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Season(SQLModel, table=True):
    id: str = ORMField(
        default_factory=lambda: uuid.uuid4().hex, primary_key=True, max_length=32
    )
    name: str
    starts_at: datetime
    ends_at: datetime
    is_active: bool = ORMField(default=True, index=True)
    created_at: datetime = ORMField(default_factory=utcnow)


class LeaderboardSnapshot(SQLModel, table=True):
    """Per-season aggregate for one player."""

    __table_args__ = (
        UniqueConstraint("season_id", "user_id", name="uq_snapshot_season_user"),
    )

    id: Optional[int] = ORMField(default=None, primary_key=True)
    season_id: str = ORMField(foreign_key="season.id", index=True)
    user_id: str = ORMField(foreign_key="user.id", index=True)
    rating: int = 1200
    matches: int = 0
    wins: int = 0
    losses: int = 0
    accuracy: float = 0.0
    efficiency: float = 0.0
    updated_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["LeaderboardSnapshot", "Season"]
