"""
Project management endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.database import get_db
from scrumboard.core.exceptions import not_found
from scrumboard.schemas.project import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
)
from scrumboard.services.project_service import ProjectService

router = APIRouter()


def get_project_service(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db=db)


@router.get(
    "/projects",
    response_model=ProjectListResponse,
    summary="List projects",
)
async def list_projects(
    service: ProjectService = Depends(get_project_service),
) -> ProjectListResponse:
    projects = await service.list_projects()
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=len(projects),
    )


@router.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project and its first sprint",
)
async def create_project(
    data: ProjectCreateRequest,
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    project = await service.create_project(data)
    return ProjectResponse.model_validate(project)


@router.get(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    summary="Get a project",
)
async def get_project(
    project_id: UUID,
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    project = await service.get_project(project_id)
    if project is None:
        raise not_found("PROJECT_NOT_FOUND", "Project not found")
    return ProjectResponse.model_validate(project)
