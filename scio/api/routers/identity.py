"""Player identity endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ...core import Clock, get_clock, get_session
from ...schemas import IdentityUpsert, IdentityValidate, ProfileUpdate
from ...services.identity import set_cohort, upsert_identity, user_to_dict, validate_username

router = APIRouter(tags=["identity"])


@router.post("/identity/upsert")
def identity_upsert(
    body: IdentityUpsert,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """Register the client on first contact or apply a rename."""

    result = upsert_identity(session, body.client_id.strip(), body.desired_name, clock=clock)
    data: Dict[str, Any] = {"ok": result.ok, "user": user_to_dict(result.user)}
    if not result.ok:
        data["reason"] = result.reason
        data["cooldownEndsAt"] = result.cooldown_ends_at.isoformat() if result.cooldown_ends_at else None
    return data


@router.post("/identity/validate")
def identity_validate(body: IdentityValidate) -> Dict[str, Any]:
    validation = validate_username(body.desired_name)
    return {"valid": validation.valid, "reason": validation.reason}


@router.post("/user/profile")
def update_profile(body: ProfileUpdate, session: Session = Depends(get_session)) -> Dict[str, Any]:
    user = set_cohort(session, body.client_id, body.cohort_tag)
    return {"ok": True, "user": user_to_dict(user)}


__all__ = ["router"]
