"""Anonymous player identities and display-name discriminators.

A player is keyed by the opaque id its client generated. Display names are
not unique: players sharing a canonical name are told apart by a four
digit discriminator, shown as ``Name#0042``.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, NamedTuple, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.time import Clock, as_utc, utcnow
from ..models import User
from .errors import BadRequest, Conflict, NotFound
from .rating import STARTING_RATING, tier_for

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
MAX_DISCRIMINATOR = 9999
RANDOM_DISCRIMINATOR_ATTEMPTS = 20
WRITE_ATTEMPTS = 3
NAME_CHANGE_COOLDOWN = timedelta(hours=24)
DEFAULT_DISPLAY_NAME = "Player"

COHORT_ALLOWLIST = ("UCL", "LSE", "KCL", "Imperial", "Oxford", "Cambridge", "Other")

_ALLOWED_NAME = re.compile(r"^[A-Za-z0-9 _]+$")
_WHITESPACE = re.compile(r"\s+")

PROFANITY_LIST = (
    "fuck", "shit", "ass", "bitch", "damn", "crap", "piss", "dick", "cock",
    "pussy", "bastard", "slut", "whore", "fag", "nigger", "nigga", "retard",
    "rape", "nazi", "hitler", "porn", "xxx", "sex",
)


class ValidationResult(NamedTuple):
    valid: bool
    reason: Optional[str] = None


@dataclass
class IdentityResult:
    ok: bool
    user: Optional[User] = None
    reason: Optional[str] = None
    cooldown_ends_at: Optional[datetime] = None


def contains_profanity(text: str) -> bool:
    lower = text.lower()
    return any(word in lower for word in PROFANITY_LIST)


def canonicalize_username(name: str) -> str:
    """Trim, collapse inner whitespace and lowercase."""

    return _WHITESPACE.sub(" ", name.strip()).lower()


def validate_username(desired_name: Optional[str]) -> ValidationResult:
    if not desired_name or not desired_name.strip():
        return ValidationResult(False, "Username cannot be empty")

    trimmed = desired_name.strip()
    if len(trimmed) < USERNAME_MIN_LENGTH:
        return ValidationResult(
            False, f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )
    if len(trimmed) > USERNAME_MAX_LENGTH:
        return ValidationResult(
            False, f"Username must be at most {USERNAME_MAX_LENGTH} characters"
        )
    if not _ALLOWED_NAME.match(trimmed):
        return ValidationResult(
            False, "Username can only contain letters, numbers, spaces, and underscores"
        )
    if contains_profanity(trimmed):
        return ValidationResult(
            False,
            "Username contains inappropriate language. Please choose a different name.",
        )
    return ValidationResult(True)


def format_user_tag(display_name: str, discriminator: int) -> str:
    return f"{display_name}#{discriminator:04d}"


def user_to_dict(user: User) -> Dict[str, Any]:
    """Serialise a user to an API-friendly dict."""

    return {
        "id": user.id,
        "displayName": user.display_name,
        "canonicalName": user.canonical_name,
        "discriminator": user.discriminator,
        "tag": format_user_tag(user.display_name, user.discriminator),
        "rating": user.rating,
        "tier": user.tier,
        "cohortTag": user.cohort_tag,
    }


def find_available_discriminator(
    session: Session,
    canonical_name: str,
    exclude_user_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> int:
    """Pick a free discriminator for ``canonical_name``.

    Tries random slots first and falls back to the lowest free slot. The
    result is only a candidate: the unique constraint on the user table has
    the final word when it is written.
    """

    rng = rng or random.Random()
    query = select(User.discriminator).where(User.canonical_name == canonical_name)
    if exclude_user_id:
        query = query.where(User.id != exclude_user_id)
    used = set(session.exec(query).all())

    if not used:
        return 0
    if len(used) > MAX_DISCRIMINATOR:
        raise Conflict(f"All discriminators for '{canonical_name}' are taken")

    for _ in range(RANDOM_DISCRIMINATOR_ATTEMPTS):
        candidate = rng.randint(0, MAX_DISCRIMINATOR)
        if candidate not in used:
            return candidate

    for candidate in range(MAX_DISCRIMINATOR + 1):
        if candidate not in used:
            return candidate

    raise Conflict("Failed to find an available discriminator")


def get_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def _create_user(
    session: Session,
    client_id: str,
    display_name: str,
    clock: Clock,
    rng: Optional[random.Random],
) -> User:
    canonical_name = canonicalize_username(display_name)
    for attempt in range(WRITE_ATTEMPTS):
        user = User(
            id=client_id,
            display_name=display_name,
            canonical_name=canonical_name,
            discriminator=find_available_discriminator(session, canonical_name, rng=rng),
            rating=STARTING_RATING,
            tier=tier_for(STARTING_RATING),
            created_at=clock(),
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            # A concurrent first contact from the same client may have won.
            existing = session.get(User, client_id)
            if existing:
                return existing
            logger.warning(
                "Discriminator collision for %r (attempt %d)", canonical_name, attempt + 1
            )
            continue
        session.refresh(user)
        logger.info("Registered user %s as %s", client_id, format_user_tag(user.display_name, user.discriminator))
        return user

    raise Conflict("This username combination is already taken. Please try again.")


def _rename_user(
    session: Session,
    user: User,
    display_name: str,
    clock: Clock,
    rng: Optional[random.Random],
) -> User:
    canonical_name = canonicalize_username(display_name)
    same_canonical = canonical_name == user.canonical_name
    for attempt in range(WRITE_ATTEMPTS):
        if not same_canonical:
            user.discriminator = find_available_discriminator(
                session, canonical_name, exclude_user_id=user.id, rng=rng
            )
        user.display_name = display_name
        user.canonical_name = canonical_name
        user.last_name_change_at = clock()
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning(
                "Discriminator collision renaming %s (attempt %d)", user.id, attempt + 1
            )
            session.refresh(user)
            continue
        session.refresh(user)
        return user

    raise Conflict("This username combination is already taken. Please try again.")


def upsert_identity(
    session: Session,
    client_id: str,
    desired_name: Optional[str] = None,
    clock: Clock = utcnow,
    rng: Optional[random.Random] = None,
) -> IdentityResult:
    """Create the player on first contact, or apply a requested rename.

    Renames are limited to one per cooldown window; the first name chosen
    at registration does not count as a change.
    """

    if not client_id or not client_id.strip():
        raise BadRequest("Invalid clientId")

    user = session.get(User, client_id)
    if user is None:
        if desired_name:
            validation = validate_username(desired_name)
            if not validation.valid:
                raise BadRequest(validation.reason or "Invalid username")
            display_name = desired_name.strip()
        else:
            display_name = DEFAULT_DISPLAY_NAME
        return IdentityResult(True, _create_user(session, client_id, display_name, clock, rng))

    if not desired_name or desired_name.strip() == user.display_name:
        return IdentityResult(True, user)

    if user.last_name_change_at is not None:
        ends_at = as_utc(user.last_name_change_at) + NAME_CHANGE_COOLDOWN
        if clock() < ends_at:
            return IdentityResult(
                False,
                user,
                reason="Name change cooldown active. You can change your name once every 24 hours.",
                cooldown_ends_at=ends_at,
            )

    validation = validate_username(desired_name)
    if not validation.valid:
        raise BadRequest(validation.reason or "Invalid username")

    return IdentityResult(True, _rename_user(session, user, desired_name.strip(), clock, rng))


def ensure_user(
    session: Session,
    client_id: str,
    display_name: Optional[str] = None,
    clock: Clock = utcnow,
) -> User:
    """Return the player, registering it first if this client is new."""

    user = session.get(User, client_id)
    if user:
        return user
    return upsert_identity(session, client_id, display_name, clock=clock).user


def set_cohort(session: Session, client_id: str, cohort_tag: str) -> User:
    if cohort_tag not in COHORT_ALLOWLIST:
        raise BadRequest(
            f"Invalid cohort tag; allowed values: {', '.join(COHORT_ALLOWLIST)}"
        )
    user = get_user(session, client_id)
    user.cohort_tag = cohort_tag
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


__all__ = [
    "COHORT_ALLOWLIST",
    "IdentityResult",
    "MAX_DISCRIMINATOR",
    "NAME_CHANGE_COOLDOWN",
    "ValidationResult",
    "canonicalize_username",
    "contains_profanity",
    "ensure_user",
    "find_available_discriminator",
    "format_user_tag",
    "get_user",
    "set_cohort",
    "upsert_identity",
    "user_to_dict",
    "validate_username",
]
