"""Database model for player identities."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class User(SQLModel, table=True):
    """Anonymous player keyed by the id its client generated.

    ``(canonical_name, discriminator)`` is unique so two players may share
    a display name and still be told apart by their ``Name#0042`` tag.
    """

    __table_args__ = (
        UniqueConstraint("canonical_name", "discriminator", name="uq_user_name_tag"),
    )

    id: str = ORMField(primary_key=True, max_length=64)
    display_name: str
    canonical_name: str = ORMField(index=True)
    discriminator: int = 0
    rating: int = 1200
    tier: str = "Silver"
    cohort_tag: Optional[str] = ORMField(default=None, index=True)
    last_name_change_at: Optional[datetime] = None
    queued_at: Optional[datetime] = ORMField(default=None, index=True)
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["User"]
