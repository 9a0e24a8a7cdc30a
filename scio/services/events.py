"""Product event log helpers."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlmodel import Session

from ..core.time import Clock, utcnow
from ..models import Event


def record_event(
    session: Session,
    name: str,
    properties: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    clock: Clock = utcnow,
) -> Event:
    """Stage an event row; it commits with the caller's transaction."""

    event = Event(
        user_id=user_id,
        name=name,
        properties_json=json.dumps(properties, default=str) if properties else None,
        created_at=clock(),
    )
    session.add(event)
    return event


__all__ = ["record_event"]
