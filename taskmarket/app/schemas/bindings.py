"""API schemas for bindings and their message channels."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..engagements import Binding, BindingStatus, ChannelMessage


class BindingOut(BaseModel):
    id: str
    work_item_id: str = Field(alias="workItemId")
    requester_id: str = Field(alias="requesterId")
    provider_id: str = Field(alias="providerId")
    offer_id: str = Field(alias="offerId")
    status: BindingStatus
    created_at: datetime = Field(alias="createdAt")
    completed_at: Optional[datetime] = Field(alias="completedAt", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_domain(cls, binding: Binding) -> "BindingOut":
        return cls(
            id=binding.id,
            work_item_id=binding.work_item_id,
            requester_id=binding.requester_id,
            provider_id=binding.provider_id,
            offer_id=binding.offer_id,
            status=binding.status,
            created_at=binding.created_at,
            completed_at=binding.completed_at,
        )


class BindingList(BaseModel):
    bindings: List[BindingOut]


class BindingStatusUpdate(BaseModel):
    status: BindingStatus


class ChannelMessageOut(BaseModel):
    id: str
    binding_id: str = Field(alias="bindingId")
    sender_id: str = Field(alias="senderId")
    body: str
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_domain(cls, message: ChannelMessage) -> "ChannelMessageOut":
        return cls(
            id=message.id,
            binding_id=message.binding_id,
            sender_id=message.sender_id,
            body=message.body,
            created_at=message.created_at,
        )


class ChannelMessageList(BaseModel):
    messages: List[ChannelMessageOut]


class ChannelMessageSendRequest(BaseModel):
    body: str
