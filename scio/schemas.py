"""Request bodies accepted by the API.

Bodies arrive in camelCase; fields are exposed in snake_case. Validation
failures surface as ``BAD_REQUEST`` through the app's exception handler.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ClientId = Annotated[str, Field(min_length=1, max_length=64)]


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Identity ------------------------------------------------------------------


class IdentityUpsert(RequestModel):
    client_id: ClientId
    desired_name: Optional[str] = None


class IdentityValidate(RequestModel):
    desired_name: str


class ProfileUpdate(RequestModel):
    client_id: ClientId
    cohort_tag: str


# Matchmaking ---------------------------------------------------------------


class QueueJoin(RequestModel):
    client_id: ClientId
    queue_started_at_ms: Optional[int] = Field(default=None, ge=0)


class ClientRequest(RequestModel):
    client_id: ClientId


# Matches -------------------------------------------------------------------


class BotOpponentSpec(RequestModel):
    kind: Literal["BOT"]


class HumanOpponentSpec(RequestModel):
    kind: Literal["HUMAN"]
    player_b_id: ClientId


OpponentSpecBody = Annotated[
    Union[BotOpponentSpec, HumanOpponentSpec], Field(discriminator="kind")
]


class MatchStart(RequestModel):
    player_id: ClientId
    opponent: OpponentSpecBody


class BotMatchStart(RequestModel):
    client_id: ClientId
    username: Optional[str] = None


class AnswerSubmit(RequestModel):
    client_id: ClientId
    round_id: str = Field(min_length=1)
    selected_index: int = Field(ge=0)
    time_to_first_commit_ms: Optional[float] = None


class MatchComplete(RequestModel):
    client_id: ClientId
    match_id: str = Field(min_length=1)
    result_a: Optional[Literal["WIN", "LOSS", "DRAW", "UNKNOWN"]] = None


# Round telemetry -----------------------------------------------------------


class RoundLogSubmit(RequestModel):
    client_id: ClientId
    match_id: str = Field(min_length=1)
    round_index: int
    correct: bool
    response_time_ms: Optional[float] = None
    question_id: Optional[int] = None
    selected_option: Optional[str] = None
    time_expired: bool = False
    time_to_first_commit_ms: Optional[float] = None


__all__ = [
    "AnswerSubmit",
    "BotMatchStart",
    "BotOpponentSpec",
    "ClientRequest",
    "HumanOpponentSpec",
    "IdentityUpsert",
    "IdentityValidate",
    "MatchComplete",
    "MatchStart",
    "OpponentSpecBody",
    "ProfileUpdate",
    "QueueJoin",
    "RoundLogSubmit",
]
