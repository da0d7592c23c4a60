"""Helpers for enforcing capability checks on service layers."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..entitlements import Actor, ActorRole, SubscriptionRecord, has_messaging_capability
from ..errors import Forbidden


def require_messaging(
    sender: Actor,
    subscription: Optional[SubscriptionRecord],
    *,
    now: Optional[datetime] = None,
    message: str | None = None,
) -> None:
    """Ensure ``sender`` may post into a binding channel.

    Only provider-side plans gate messaging. Requesters and admins are never
    refused here; participation checks happen in the channel itself.
    """

    if sender.role == ActorRole.PROVIDER:
        if has_messaging_capability(subscription, now=now):
            return
        raise Forbidden(
            message or "Messaging requires a plan with chat enabled.",
            detail={"missing_entitlement": "messaging.enabled", "upgrade_path": "/api/subscription"},
        )
    if sender.role in (ActorRole.REQUESTER, ActorRole.ADMIN):
        return
    raise ValueError(f"Unhandled actor role: {sender.role}")  # pragma: no cover
