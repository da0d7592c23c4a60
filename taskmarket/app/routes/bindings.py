"""API routes for bindings and their message channels."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.bindings import (
    BindingList,
    BindingOut,
    BindingStatusUpdate,
    ChannelMessageList,
    ChannelMessageOut,
    ChannelMessageSendRequest,
)
from ..services import marketplace as marketplace_service
from .dependencies import domain_errors, get_current_actor

router = APIRouter(prefix="/api/bindings", tags=["bindings"])


@router.get("", response_model=BindingList)
def list_bindings(*, current_actor=Depends(get_current_actor)) -> BindingList:
    market = marketplace_service.get_marketplace()
    bindings = market.store.list_bindings_for_actor(current_actor.id)
    return BindingList(bindings=[BindingOut.from_domain(binding) for binding in bindings])


@router.get("/{binding_id}", response_model=BindingOut)
def get_binding(
    binding_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> BindingOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        binding = market.store.get_binding(binding_id)
    if not (current_actor.is_admin or binding.involves(current_actor.id)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this binding")
    return BindingOut.from_domain(binding)


@router.patch("/{binding_id}/status", response_model=BindingOut)
def update_binding_status(
    binding_id: str,
    payload: BindingStatusUpdate,
    *,
    current_actor=Depends(get_current_actor),
) -> BindingOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        binding = market.store.set_binding_status(binding_id, payload.status, current_actor.id)
        market.persist()
    return BindingOut.from_domain(binding)


@router.get("/{binding_id}/messages", response_model=ChannelMessageList)
def list_binding_messages(
    binding_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> ChannelMessageList:
    from ..services import channel as channel_service

    market = marketplace_service.get_marketplace()
    with domain_errors():
        messages = channel_service.list_messages(binding_id, viewer_id=current_actor.id, store=market.store)
    return ChannelMessageList(messages=[ChannelMessageOut.from_domain(message) for message in messages])


@router.post("/{binding_id}/messages", response_model=ChannelMessageOut, status_code=201)
def send_binding_message(
    binding_id: str,
    payload: ChannelMessageSendRequest,
    *,
    current_actor=Depends(get_current_actor),
) -> ChannelMessageOut:
    from ..services import channel as channel_service

    market = marketplace_service.get_marketplace()
    with domain_errors():
        message = channel_service.post_message(
            binding_id,
            sender_id=current_actor.id,
            body=payload.body,
            store=market.store,
            max_length=market.config.message_max_length,
        )
        market.persist()
    return ChannelMessageOut.from_domain(message)
