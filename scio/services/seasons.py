"""Weekly seasons and the per-season leaderboard aggregate."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from ..core.time import Clock, as_utc, utcnow
from ..models import LeaderboardSnapshot, MatchResult, Season, User
from .errors import NotFound
from .identity import format_user_tag

logger = logging.getLogger(__name__)

SEASON_LENGTH = timedelta(days=7)
DEFAULT_LEADERBOARD_LIMIT = 50
MAX_LEADERBOARD_LIMIT = 200


def week_start(moment: datetime) -> datetime:
    """Midnight UTC on the Monday of ``moment``'s week."""

    moment = as_utc(moment)
    monday = moment - timedelta(days=moment.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def season_name(starts_at: datetime) -> str:
    return f"Week of {starts_at.date().isoformat()}"


def season_to_dict(season: Season) -> Dict[str, Any]:
    return {
        "id": season.id,
        "name": season.name,
        "startsAt": as_utc(season.starts_at).isoformat(),
        "endsAt": as_utc(season.ends_at).isoformat(),
        "isActive": season.is_active,
    }


def get_active_season(session: Session, clock: Clock = utcnow, commit: bool = True) -> Season:
    """Return the newest active season, opening this week's if none is."""

    season = session.exec(
        select(Season).where(Season.is_active == True).order_by(Season.created_at.desc())  # noqa: E712
    ).first()
    if season:
        return season

    starts_at = week_start(clock())
    season = Season(
        name=season_name(starts_at),
        starts_at=starts_at,
        ends_at=starts_at + SEASON_LENGTH,
        is_active=True,
        created_at=clock(),
    )
    session.add(season)
    if commit:
        session.commit()
        session.refresh(season)
    else:
        session.flush()
    logger.info("Opened season %s", season.name)
    return season


def rotate_season(session: Session, clock: Clock = utcnow) -> Season:
    """Close every active season and open a fresh seven-day one."""

    now = clock()
    session.exec(
        update(Season).where(Season.is_active == True).values(is_active=False, ends_at=now)  # noqa: E712
    )
    season = Season(
        name=season_name(now),
        starts_at=now,
        ends_at=now + SEASON_LENGTH,
        is_active=True,
        created_at=now,
    )
    session.add(season)
    session.commit()
    session.refresh(season)
    logger.info("Rotated to season %s (%s)", season.name, season.id)
    return season


def get_or_create_snapshot(session: Session, user: User, season_id: str) -> LeaderboardSnapshot:
    snapshot = session.exec(
        select(LeaderboardSnapshot).where(
            LeaderboardSnapshot.season_id == season_id,
            LeaderboardSnapshot.user_id == user.id,
        )
    ).first()
    if snapshot is None:
        snapshot = LeaderboardSnapshot(season_id=season_id, user_id=user.id, rating=user.rating)
        session.add(snapshot)
    return snapshot


def record_match_result(
    session: Session,
    user: User,
    result: MatchResult,
    accuracy: float,
    efficiency: float,
    new_rating: int,
    clock: Clock = utcnow,
) -> LeaderboardSnapshot:
    """Fold one finished match into the player's active-season row.

    Stages changes only; the match finalization transaction commits them.
    """

    season = get_active_season(session, clock, commit=False)
    snapshot = get_or_create_snapshot(session, user, season.id)

    played = snapshot.matches or 0
    total = played + 1
    snapshot.accuracy = ((snapshot.accuracy or 0.0) * played + accuracy) / total
    snapshot.efficiency = ((snapshot.efficiency or 0.0) * played + efficiency) / total
    snapshot.matches = total
    if result == MatchResult.WIN:
        snapshot.wins = (snapshot.wins or 0) + 1
    elif result == MatchResult.LOSS:
        snapshot.losses = (snapshot.losses or 0) + 1
    snapshot.rating = new_rating
    snapshot.updated_at = clock()
    session.add(snapshot)
    return snapshot


def get_leaderboard(
    session: Session,
    season_id: Optional[str] = None,
    cohort_tag: Optional[str] = None,
    limit: Optional[int] = None,
    clock: Clock = utcnow,
) -> Dict[str, Any]:
    """Ranked rows for a season, optionally restricted to one cohort."""

    limit = DEFAULT_LEADERBOARD_LIMIT if limit is None else min(max(limit, 1), MAX_LEADERBOARD_LIMIT)

    if season_id:
        season = session.get(Season, season_id)
        if not season:
            raise NotFound("Season not found")
    else:
        season = get_active_season(session, clock)

    query = (
        select(LeaderboardSnapshot, User)
        .join(User, User.id == LeaderboardSnapshot.user_id)
        .where(LeaderboardSnapshot.season_id == season.id)
    )
    if cohort_tag:
        query = query.where(User.cohort_tag == cohort_tag)
    query = query.order_by(
        LeaderboardSnapshot.rating.desc(), LeaderboardSnapshot.efficiency.desc()
    ).limit(limit)

    entries = []
    for rank, (snapshot, user) in enumerate(session.exec(query).all(), start=1):
        entries.append(
            {
                "rank": rank,
                "userId": user.id,
                "name": format_user_tag(user.display_name, user.discriminator),
                "cohortTag": user.cohort_tag,
                "rating": snapshot.rating,
                "matches": snapshot.matches,
                "wins": snapshot.wins,
                "losses": snapshot.losses,
                "accuracy": snapshot.accuracy,
                "efficiency": snapshot.efficiency,
            }
        )

    return {"ok": True, "season": season_to_dict(season), "entries": entries}


__all__ = [
    "get_active_season",
    "get_leaderboard",
    "get_or_create_snapshot",
    "record_match_result",
    "rotate_season",
    "season_to_dict",
    "week_start",
]
