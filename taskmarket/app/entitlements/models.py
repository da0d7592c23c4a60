"""Domain models for actors, subscriptions, and entitlement computation."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlanKey(str, Enum):
    """Canonical identifiers for subscription plans."""

    FREE = "FREE"
    PRO = "PRO"
    PREMIUM = "PREMIUM"


class ActorRole(str, Enum):
    """Role variant carried by every actor."""

    REQUESTER = "REQUESTER"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class SubscriptionStatus(str, Enum):
    """Lifecycle state for subscriptions."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class FeatureBundle:
    """Represents the capability grants attached to a plan."""

    weekly_offer_cap: Optional[int] = 3
    messaging_enabled: bool = False

    @property
    def unlimited_offers(self) -> bool:
        return self.weekly_offer_cap is None

    def to_flags(self) -> Dict[str, Optional[int] | bool]:
        """Serialize bundle to flattened flag keys."""

        return {
            "offers.weekly_cap": self.weekly_offer_cap,
            "messaging.enabled": self.messaging_enabled,
        }


class Actor(BaseModel):
    """An identity performing operations, tagged with a role."""

    id: str
    display_name: str
    role: ActorRole

    model_config = ConfigDict(frozen=True)

    @field_validator("id", "display_name")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @property
    def is_provider(self) -> bool:
        return self.role == ActorRole.PROVIDER

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


class SubscriptionRecord(BaseModel):
    """Subscription held by a provider; requesters have none."""

    id: str
    actor_id: str
    plan_key: PlanKey
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    starts_at: datetime
    ends_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    def is_active_at(self, now: datetime) -> bool:
        """Return whether the subscription grants its plan at ``now``."""

        if not self.is_active:
            return False
        if now < self.starts_at:
            return False
        return self.ends_at is None or now < self.ends_at


class WeeklyUsage(BaseModel):
    """Per-actor count of quota-consuming actions in one ISO week."""

    actor_id: str
    week_start: date
    count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    def incremented(self) -> "WeeklyUsage":
        return self.model_copy(update={"count": self.count + 1})


class EntitlementPayload(BaseModel):
    """Computed entitlement view returned to clients."""

    actor_id: str
    plan: Optional[PlanKey]
    remaining_offers: Optional[int]
    has_messaging: bool
    feature_flags: Dict[str, Optional[int] | bool] = Field(default_factory=dict)
    week_start: Optional[date] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)
