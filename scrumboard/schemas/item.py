"""
Item schemas.

Request/response models for backlog item endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from scrumboard.models.item import ItemPriority, ItemStatus, ItemType

_TYPE_PATTERN = "^(epic|story|task|bug)$"
_PRIORITY_PATTERN = "^(urgent|high|medium|low|none)$"


# ---------------------------------------------------------------------------
# Item Create
# ---------------------------------------------------------------------------

class ItemCreateRequest(BaseModel):
    """Request body for POST /projects/{project_id}/items."""

    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    type: str = Field(default="task", pattern=_TYPE_PATTERN)
    priority: str = Field(default="none", pattern=_PRIORITY_PATTERN)
    effort: int = Field(default=0, ge=0)
    assignee_id: UUID | None = None
    parent_id: UUID | None = None


# ---------------------------------------------------------------------------
# Item Update
# ---------------------------------------------------------------------------

class ItemUpdateRequest(BaseModel):
    """
    Request body for PATCH /items/{item_id}.

    Omitted fields are left untouched. An explicit null parent_id or
    assignee_id detaches the item.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    type: str | None = Field(default=None, pattern=_TYPE_PATTERN)
    priority: str | None = Field(default=None, pattern=_PRIORITY_PATTERN)
    effort: int | None = Field(default=None, ge=0)
    assignee_id: UUID | None = None
    parent_id: UUID | None = None


class AssigneeUpdateRequest(BaseModel):
    """Request body for PATCH /items/{item_id}/assignee."""

    assignee_id: UUID | None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ItemSummaryResponse(BaseModel):
    """Compact item info embedded in ledger responses."""

    id: UUID
    title: str
    type: ItemType
    effort: int
    status: ItemStatus
    assignee_id: UUID | None
    parent_id: UUID | None

    model_config = {"from_attributes": True}


class ItemResponse(BaseModel):
    """Full item detail."""

    id: UUID
    project_id: UUID
    title: str
    description: str | None
    type: ItemType
    priority: ItemPriority
    effort: int
    combined_effort: int = 0
    status: ItemStatus
    assignee_id: UUID | None
    reporter_id: UUID | None
    parent_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ItemListResponse(BaseModel):
    """Response for GET /projects/{project_id}/items."""

    items: list[ItemResponse]
    total: int
