"""
Sprint schemas.

Request/response models for sprint endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from scrumboard.models.sprint import SprintStatus


class SprintStartRequest(BaseModel):
    """
    Request body for POST /sprints/{sprint_id}/start.

    duration is informational only; the project's sprint_duration decides
    the end date.
    """

    goal: str = Field(default="", max_length=2000)
    duration: int | None = Field(default=None, ge=1)


class SprintResponse(BaseModel):
    """Sprint detail response, including derived effort figures."""

    id: UUID
    project_id: UUID
    number: int
    status: SprintStatus
    goal: str | None
    duration: int | None
    start_date: datetime | None
    end_date: datetime | None
    created_at: datetime
    updated_at: datetime
    total_effort: int = 0
    velocity: int = 0
    days_remaining: int = 0

    model_config = {"from_attributes": True}


class SprintListResponse(BaseModel):
    """Response for GET /projects/{project_id}/sprints."""

    sprints: list[SprintResponse]
    total: int
