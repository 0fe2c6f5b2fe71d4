"""
Item-sprint ledger schemas.

Request/response models for scheduling items into sprints and for the
task board.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from scrumboard.models.item_sprint_history import TaskBoardStatus
from scrumboard.schemas.item import ItemSummaryResponse


class MoveItemRequest(BaseModel):
    """Request body for POST /sprints/{sprint_id}/items."""

    item_id: UUID
    parent_id: UUID | None = None


class RemoveItemRequest(BaseModel):
    """Request body for POST /sprints/{sprint_id}/items/remove."""

    item_id: UUID
    parent_id: UUID | None = None


class BoardStatusUpdateRequest(BaseModel):
    """Request body for PATCH /associations/{association_id}/status."""

    status: str = Field(pattern="^(to_do|in_progress|for_review|done)$")


class AssociationResponse(BaseModel):
    """One ledger record."""

    id: UUID
    item_id: UUID
    sprint_id: UUID
    status: TaskBoardStatus
    created_at: datetime
    updated_at: datetime
    removed_at: datetime | None
    superseded_by_id: UUID | None
    item: ItemSummaryResponse

    model_config = {"from_attributes": True}


class LedgerChangeResponse(BaseModel):
    """
    Outcome of a ledger mutation.

    changed is False when there was nothing to do, which is not an error.
    """

    changed: bool
    association: AssociationResponse | None = None


class TaskBoardResponse(BaseModel):
    """Live TASK/BUG associations of a sprint, one list per board column."""

    sprint_id: UUID
    to_do: list[AssociationResponse] = Field(default_factory=list)
    in_progress: list[AssociationResponse] = Field(default_factory=list)
    for_review: list[AssociationResponse] = Field(default_factory=list)
    done: list[AssociationResponse] = Field(default_factory=list)


class AssociationListResponse(BaseModel):
    associations: list[AssociationResponse]
    total: int
