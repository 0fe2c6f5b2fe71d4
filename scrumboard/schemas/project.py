from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class ProjectCreateRequest(BaseModel):
    title: str = Field(min_length=2, max_length=100)
    description: str | None = None
    sprint_duration: int | None = Field(default=None, ge=1, le=365)

    @field_validator("title")
    @classmethod
    def title_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Project title must contain at least 2 characters")
        return v


class ProjectResponse(BaseModel):
    id: UUID
    title: str
    description: str | None
    sprint_duration: int
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int
