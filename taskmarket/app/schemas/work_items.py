"""API schemas for work item endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..engagements import BudgetType, Category, WorkItem, WorkItemStatus


class WorkItemCreateRequest(BaseModel):
    title: str
    description: str
    category: Category
    skills: List[str] = Field(default_factory=list)
    budget_type: BudgetType = Field(alias="budgetType", default=BudgetType.DISCUSS)
    budget_value: Optional[str] = Field(alias="budgetValue", default=None)
    deadline: Optional[str] = None
    publish: bool = True

    model_config = ConfigDict(populate_by_name=True)

    def to_draft_data(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "skills": tuple(self.skills),
            "budget_type": self.budget_type,
            "budget_value": self.budget_value,
            "deadline": self.deadline,
            "publish": self.publish,
        }


class WorkItemStatusUpdate(BaseModel):
    status: WorkItemStatus


class WorkItemOut(BaseModel):
    id: str
    owner_id: str = Field(alias="ownerId")
    title: str
    description: str
    category: Category
    skills: List[str]
    budget_type: BudgetType = Field(alias="budgetType")
    budget_value: Optional[str] = Field(alias="budgetValue", default=None)
    deadline: Optional[str] = None
    status: WorkItemStatus
    application_count: int = Field(alias="applicationCount")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_domain(cls, item: WorkItem) -> "WorkItemOut":
        return cls(
            id=item.id,
            owner_id=item.owner_id,
            title=item.title,
            description=item.description,
            category=item.category,
            skills=list(item.skills),
            budget_type=item.budget_type,
            budget_value=item.budget_value,
            deadline=item.deadline,
            status=item.status,
            application_count=item.application_count,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class WorkItemList(BaseModel):
    items: List[WorkItemOut]


__all__ = [
    "WorkItemCreateRequest",
    "WorkItemList",
    "WorkItemOut",
    "WorkItemStatusUpdate",
]
