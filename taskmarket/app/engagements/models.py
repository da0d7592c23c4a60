"""Typed representations of work items, offers, bindings, and channel messages."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

TITLE_MIN_LENGTH = 10
TITLE_MAX_LENGTH = 80
DESCRIPTION_MAX_LENGTH = 2000
MAX_SKILLS = 10
OFFER_MESSAGE_MIN_LENGTH = 50


class WorkItemStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


class OfferStatus(str, Enum):
    SENT = "SENT"
    VIEWED = "VIEWED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class BindingStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Category(str, Enum):
    """Work categories offered to requesters."""

    DESIGN = "UI/UX, Product Design"
    GRAPHIC = "Graphic Design / Branding"
    WEB = "Web Development"
    MOBILE = "Mobile Development"
    BOTS = "Bots / Automation"
    QA = "QA / Testing"
    DEVOPS = "DevOps / Cloud"
    DATA = "Data / ML"
    SECURITY = "Cybersecurity"
    WRITING = "Technical Writing / Documentation"
    COURIER = "Courier Services"
    CLEANING = "Cleaning"
    TRANSFER = "Transfer / Transport"
    CONSTRUCTION = "Construction and Renovation"
    OTHER = "Other"


class BudgetType(str, Enum):
    FIXED = "FIXED"
    HOURLY = "HOURLY"
    DISCUSS = "DISCUSS"


class WorkItemDraft(BaseModel):
    """Owner-supplied fields for a new work item."""

    title: str
    description: str
    category: Category
    skills: Tuple[str, ...] = ()
    budget_type: BudgetType = BudgetType.DISCUSS
    budget_value: Optional[str] = None
    deadline: Optional[str] = None
    publish: bool = Field(default=True, description="Create as PUBLISHED instead of DRAFT.")

    model_config = ConfigDict(frozen=True)

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str) -> str:
        value = value.strip()
        if len(value) < TITLE_MIN_LENGTH:
            raise ValueError(f"title must be at least {TITLE_MIN_LENGTH} characters")
        if len(value) > TITLE_MAX_LENGTH:
            raise ValueError(f"title must be {TITLE_MAX_LENGTH} characters or fewer")
        return value

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("description is required")
        if len(value) > DESCRIPTION_MAX_LENGTH:
            raise ValueError(f"description must be {DESCRIPTION_MAX_LENGTH} characters or fewer")
        return value

    @field_validator("skills")
    @classmethod
    def _validate_skills(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        normalized = []
        for skill in value:
            skill = skill.strip()
            if skill and skill not in normalized:
                normalized.append(skill)
        if not normalized:
            raise ValueError("add at least one skill")
        if len(normalized) > MAX_SKILLS:
            raise ValueError(f"at most {MAX_SKILLS} skills are allowed")
        return tuple(normalized)

    @field_validator("budget_value", "deadline")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class OfferTerms(BaseModel):
    """Price, timing, and pitch a provider attaches to an offer."""

    price_text: str
    eta_text: str
    message: str
    portfolio_links: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("price_text", "eta_text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("message")
    @classmethod
    def _validate_message(cls, value: str) -> str:
        value = value.strip()
        if len(value) < OFFER_MESSAGE_MIN_LENGTH:
            raise ValueError(f"message must be at least {OFFER_MESSAGE_MIN_LENGTH} characters")
        return value


class WorkItem(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str
    category: Category
    skills: Tuple[str, ...]
    budget_type: BudgetType
    budget_value: Optional[str] = None
    deadline: Optional[str] = None
    status: WorkItemStatus
    application_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class Offer(BaseModel):
    id: str
    work_item_id: str
    provider_id: str
    terms: OfferTerms
    status: OfferStatus = OfferStatus.SENT
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class Binding(BaseModel):
    """The engagement created when a requester accepts an offer."""

    id: str
    work_item_id: str
    requester_id: str
    provider_id: str
    offer_id: str
    status: BindingStatus = BindingStatus.IN_PROGRESS
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    def involves(self, actor_id: str) -> bool:
        return actor_id in (self.requester_id, self.provider_id)


class ChannelMessage(BaseModel):
    id: str
    binding_id: str
    sender_id: str
    body: str
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class WorkItemFilter(BaseModel):
    """Listing criteria; ``status=None`` matches every status."""

    status: Optional[WorkItemStatus] = WorkItemStatus.PUBLISHED
    owner_id: Optional[str] = None
    category: Optional[Category] = None
    budget_type: Optional[BudgetType] = None
    query: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def matches(self, item: WorkItem) -> bool:
        if self.status is not None and item.status != self.status:
            return False
        if self.owner_id is not None and item.owner_id != self.owner_id:
            return False
        if self.category is not None and item.category != self.category:
            return False
        if self.budget_type is not None and item.budget_type != self.budget_type:
            return False
        needle = (self.query or "").strip().lower()
        if not needle:
            return True
        return (
            needle in item.title.lower()
            or needle in item.description.lower()
            or any(needle in skill.lower() for skill in item.skills)
        )


@dataclass(frozen=True)
class StoreSnapshot:
    """Consistent read of every entity taken under the store lock."""

    work_items: Tuple[WorkItem, ...]
    offers: Tuple[Offer, ...]
    bindings: Tuple[Binding, ...]
    messages: Tuple[ChannelMessage, ...]

    def offers_for(self, work_item_id: str) -> Tuple[Offer, ...]:
        return tuple(offer for offer in self.offers if offer.work_item_id == work_item_id)


ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_model(model: Type[ModelT], value: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Validate ``value`` into ``model``, raising the domain validation error."""

    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        raise ValidationError(
            f"Invalid {model.__name__}",
            detail={
                "fields": [
                    {"field": ".".join(str(part) for part in error["loc"]), "reason": error["msg"]}
                    for error in errors
                ]
            },
        ) from exc
