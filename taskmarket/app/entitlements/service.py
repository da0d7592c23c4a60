"""Service responsible for computing entitlement payloads."""
from __future__ import annotations

from typing import Optional

from .catalog import get_plan_definition
from .models import EntitlementPayload, FeatureBundle
from .resolver import effective_plan, has_messaging_capability, remaining_offers
from .session import EntitlementSession, SessionManager


class EntitlementService:
    """Resolves what an actor may do right now.

    Payloads are computed on every call; nothing is cached between requests.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self._sessions = sessions

    def get_entitlement(self, actor_id: str) -> EntitlementPayload:
        session = self._sessions.load_session(actor_id)
        return self.compute_payload(session)

    def compute_payload(self, session: EntitlementSession) -> EntitlementPayload:
        now = session.as_of
        plan = effective_plan(session.subscription, now)
        bundle: Optional[FeatureBundle] = plan.bundle if plan else None
        return EntitlementPayload(
            actor_id=session.actor.id,
            plan=plan.key if plan else None,
            remaining_offers=remaining_offers(session.subscription, session.usage, now=now),
            has_messaging=has_messaging_capability(session.subscription, now=now),
            feature_flags=bundle.to_flags() if bundle else {},
            week_start=session.usage.week_start if session.usage else None,
            generated_at=now,
        )

    def describe_plan(self, actor_id: str):
        """Return the catalog entry currently granted to ``actor_id``, if any."""

        subscription = self._sessions.get_subscription(actor_id)
        if subscription is None:
            return None
        plan = effective_plan(subscription, self._sessions.now())
        return get_plan_definition(plan.key)
