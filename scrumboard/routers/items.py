"""
Backlog item endpoints.

CRUD for epics, stories, tasks and bugs, including reparenting.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.database import get_db
from scrumboard.core.exceptions import not_found
from scrumboard.routers.projects import get_project_service
from scrumboard.schemas.item import (
    AssigneeUpdateRequest,
    ItemCreateRequest,
    ItemListResponse,
    ItemResponse,
    ItemUpdateRequest,
)
from scrumboard.services.item_service import ItemService
from scrumboard.services.project_service import ProjectService

router = APIRouter()


def get_item_service(db: AsyncSession = Depends(get_db)) -> ItemService:
    return ItemService(db=db)


# ---------------------------------------------------------------------------
# List / Create
# ---------------------------------------------------------------------------

@router.get(
    "/projects/{project_id}/items",
    response_model=ItemListResponse,
    summary="List the backlog of a project",
)
async def list_items(
    project_id: UUID,
    projects: ProjectService = Depends(get_project_service),
    service: ItemService = Depends(get_item_service),
) -> ItemListResponse:
    if await projects.get_project(project_id) is None:
        raise not_found("PROJECT_NOT_FOUND", "Project not found")
    items = await service.list_items(project_id)
    return ItemListResponse(
        items=[ItemResponse.model_validate(i) for i in items],
        total=len(items),
    )


@router.post(
    "/projects/{project_id}/items",
    response_model=ItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a backlog item",
)
async def create_item(
    project_id: UUID,
    data: ItemCreateRequest,
    projects: ProjectService = Depends(get_project_service),
    service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    if await projects.get_project(project_id) is None:
        raise not_found("PROJECT_NOT_FOUND", "Project not found")
    item = await service.create_item(project_id, data)
    return ItemResponse.model_validate(item)


# ---------------------------------------------------------------------------
# Single item
# ---------------------------------------------------------------------------

@router.get(
    "/items/{item_id}",
    response_model=ItemResponse,
    summary="Get an item",
)
async def get_item(
    item_id: UUID,
    service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    item = await service.find_item(item_id)
    if item is None:
        raise not_found("ITEM_NOT_FOUND", "Item not found")
    return ItemResponse.model_validate(item)


@router.patch(
    "/items/{item_id}",
    response_model=ItemResponse,
    summary="Update an item",
)
async def update_item(
    item_id: UUID,
    data: ItemUpdateRequest,
    service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    item = await service.update_item(item_id, data)
    if item is None:
        raise not_found("ITEM_NOT_FOUND", "Item not found")
    return ItemResponse.model_validate(item)


@router.patch(
    "/items/{item_id}/assignee",
    response_model=ItemResponse,
    summary="Assign or unassign an item",
)
async def update_assignee(
    item_id: UUID,
    data: AssigneeUpdateRequest,
    service: ItemService = Depends(get_item_service),
) -> ItemResponse:
    item = await service.update_assignee(item_id, data.assignee_id)
    if item is None:
        raise not_found("ITEM_NOT_FOUND", "Item not found")
    return ItemResponse.model_validate(item)


@router.delete(
    "/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an item",
)
async def delete_item(
    item_id: UUID,
    service: ItemService = Depends(get_item_service),
) -> Response:
    if not await service.delete_item(item_id):
        raise not_found("ITEM_NOT_FOUND", "Item not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
