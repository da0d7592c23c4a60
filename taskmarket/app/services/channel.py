from __future__ import annotations

import logging
from typing import List, Optional

from ..engagements import ChannelMessage, EngagementStore
from ..errors import Forbidden, ValidationError
from ..feature_gates import require_messaging

logger = logging.getLogger("marketplace")

DEFAULT_MAX_LENGTH = 2000


def _resolve_store(store: Optional[EngagementStore]) -> EngagementStore:
    if store is not None:
        return store
    from .marketplace import get_marketplace

    return get_marketplace().store


def post_message(
    binding_id: str,
    *,
    sender_id: str,
    body: str,
    store: Optional[EngagementStore] = None,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> ChannelMessage:
    """Append ``body`` to the binding's channel on behalf of ``sender_id``.

    Provider senders need a plan with messaging enabled; requesters are never
    refused on capability grounds.
    """

    message_body = (body or "").strip()
    if not message_body:
        raise ValidationError("Message body cannot be empty")
    if len(message_body) > max_length:
        raise ValidationError(
            f"Message body must be {max_length} characters or fewer",
            detail={"max_length": max_length},
        )

    store = _resolve_store(store)
    sessions = store.sessions
    with store.transaction():
        binding = store.get_binding(binding_id)
        sender = sessions.get_actor(sender_id)
        if not binding.involves(sender.id):
            logger.warning("Actor %s attempted to post into binding %s", sender.id, binding.id)
            raise Forbidden(
                "You do not have access to this binding",
                detail={"binding_id": binding.id},
            )
        try:
            require_messaging(sender, sessions.get_subscription(sender.id), now=sessions.now())
        except Forbidden:
            logger.warning("Messaging denied for actor %s on binding %s", sender.id, binding.id)
            raise
        message = store.append_message(binding.id, sender.id, message_body)

    logger.debug("Message %s appended to binding %s", message.id, binding_id)
    return message


def list_messages(
    binding_id: str,
    *,
    viewer_id: Optional[str] = None,
    store: Optional[EngagementStore] = None,
) -> List[ChannelMessage]:
    """Return the binding's messages, oldest first."""

    store = _resolve_store(store)
    with store.transaction():
        binding = store.get_binding(binding_id)
        if viewer_id is not None:
            viewer = store.sessions.get_actor(viewer_id)
            if not viewer.is_admin and not binding.involves(viewer.id):
                raise Forbidden(
                    "You do not have access to this binding",
                    detail={"binding_id": binding.id},
                )
        return store.messages_for(binding.id)


__all__ = ["post_message", "list_messages"]
