"""
Sprint management endpoints.

Current sprint, sprint history, start and finish (Scrum).
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.database import get_db
from scrumboard.core.exceptions import not_found
from scrumboard.models.sprint import SprintStatus
from scrumboard.routers.projects import get_project_service
from scrumboard.schemas.sprint import SprintListResponse, SprintResponse, SprintStartRequest
from scrumboard.services.project_service import ProjectService
from scrumboard.services.sprint_service import SprintService

router = APIRouter()


def get_sprint_service(db: AsyncSession = Depends(get_db)) -> SprintService:
    return SprintService(db=db)


# ---------------------------------------------------------------------------
# Current sprint
# ---------------------------------------------------------------------------

@router.get(
    "/projects/{project_id}/sprints/current",
    response_model=SprintResponse,
    summary="Get the ready or active sprint of a project",
)
async def get_current_sprint(
    project_id: UUID,
    service: SprintService = Depends(get_sprint_service),
) -> SprintResponse:
    sprint = await service.find_active_sprint_in_project(project_id)
    if sprint is None:
        raise not_found("NO_CURRENT_SPRINT", "Project has no ready or active sprint")
    return SprintResponse.model_validate(sprint)


# ---------------------------------------------------------------------------
# List / Create
# ---------------------------------------------------------------------------

@router.get(
    "/projects/{project_id}/sprints",
    response_model=SprintListResponse,
    summary="List sprints of a project by status (history by default)",
)
async def list_sprints(
    project_id: UUID,
    sprint_status: SprintStatus = Query(default=SprintStatus.finished, alias="status"),
    service: SprintService = Depends(get_sprint_service),
) -> SprintListResponse:
    sprints = await service.find_sprints_by_project_and_status(project_id, sprint_status)
    return SprintListResponse(
        sprints=[SprintResponse.model_validate(s) for s in sprints],
        total=len(sprints),
    )


@router.post(
    "/projects/{project_id}/sprints",
    response_model=SprintResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open the next sprint (returns the ready one if it exists)",
)
async def create_sprint(
    project_id: UUID,
    projects: ProjectService = Depends(get_project_service),
    service: SprintService = Depends(get_sprint_service),
) -> SprintResponse:
    if await projects.get_project(project_id) is None:
        raise not_found("PROJECT_NOT_FOUND", "Project not found")
    sprint = await service.create_sprint(project_id)
    return SprintResponse.model_validate(sprint)


@router.get(
    "/projects/{project_id}/sprints/{sprint_id}",
    response_model=SprintResponse,
    summary="Get a sprint of a project",
)
async def get_sprint(
    project_id: UUID,
    sprint_id: UUID,
    service: SprintService = Depends(get_sprint_service),
) -> SprintResponse:
    sprint = await service.find_sprint_in_project(project_id, sprint_id)
    if sprint is None:
        raise not_found("SPRINT_NOT_FOUND", "Sprint not found")
    return SprintResponse.model_validate(sprint)


# ---------------------------------------------------------------------------
# Start / Finish
# ---------------------------------------------------------------------------

@router.post(
    "/sprints/{sprint_id}/start",
    response_model=SprintResponse,
    summary="Start a ready sprint",
)
async def start_sprint(
    sprint_id: UUID,
    data: SprintStartRequest,
    service: SprintService = Depends(get_sprint_service),
) -> SprintResponse:
    sprint = await service.start_sprint(sprint_id, data.goal, data.duration)
    if sprint is None:
        raise not_found("SPRINT_NOT_FOUND", "Sprint not found")
    return SprintResponse.model_validate(sprint)


@router.post(
    "/sprints/{sprint_id}/finish",
    response_model=SprintResponse,
    summary="Finish an active sprint",
)
async def finish_sprint(
    sprint_id: UUID,
    service: SprintService = Depends(get_sprint_service),
) -> SprintResponse:
    sprint = await service.finish_sprint(sprint_id)
    if sprint is None:
        raise not_found("SPRINT_NOT_FOUND", "Sprint not found")
    return SprintResponse.model_validate(sprint)
