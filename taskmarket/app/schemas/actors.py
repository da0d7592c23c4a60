"""API schemas for actor registration and sessions."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements import Actor, ActorRole, PlanKey


class ActorRegisterRequest(BaseModel):
    id: str
    display_name: str = Field(alias="displayName")
    role: ActorRole
    plan_id: Optional[PlanKey] = Field(alias="planId", default=None)

    model_config = ConfigDict(populate_by_name=True)


class ActorOut(BaseModel):
    id: str
    display_name: str = Field(alias="displayName")
    role: ActorRole

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_domain(cls, actor: Actor) -> "ActorOut":
        return cls(id=actor.id, display_name=actor.display_name, role=actor.role)


class ActorList(BaseModel):
    actors: List[ActorOut]


class SessionRequest(BaseModel):
    actor_id: str = Field(alias="actorId")

    model_config = ConfigDict(populate_by_name=True)


class SessionResponse(BaseModel):
    actor: ActorOut
    access_token: str = Field(alias="accessToken")
    token_type: str = Field(alias="tokenType", default="bearer")

    model_config = ConfigDict(populate_by_name=True)
