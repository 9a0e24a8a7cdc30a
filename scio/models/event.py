"""Database model for the product event log."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Event(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    user_id: Optional[str] = ORMField(default=None, index=True)
    name: str = ORMField(index=True)
    properties_json: Optional[str] = None
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["Event"]
