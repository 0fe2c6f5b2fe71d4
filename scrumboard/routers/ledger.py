"""
Sprint scheduling and task board endpoints.

Moves items between the backlog and sprints and walks them across the
board columns.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.database import get_db
from scrumboard.core.dependencies import get_redis
from scrumboard.core.exceptions import not_found
from scrumboard.models.item import ItemType
from scrumboard.models.item_sprint_history import ItemSprintHistory, TaskBoardStatus
from scrumboard.routers.sprints import get_sprint_service
from scrumboard.schemas.ledger import (
    AssociationListResponse,
    AssociationResponse,
    BoardStatusUpdateRequest,
    LedgerChangeResponse,
    MoveItemRequest,
    RemoveItemRequest,
    TaskBoardResponse,
)
from scrumboard.services.ledger_service import LedgerService
from scrumboard.services.sprint_service import SprintService

router = APIRouter()


def get_ledger_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis | None = Depends(get_redis),
) -> LedgerService:
    return LedgerService(db=db, redis=redis)


def _change(record: ItemSprintHistory | None) -> LedgerChangeResponse:
    if record is None:
        return LedgerChangeResponse(changed=False)
    return LedgerChangeResponse(
        changed=True,
        association=AssociationResponse.model_validate(record),
    )


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

@router.post(
    "/sprints/{sprint_id}/items",
    response_model=LedgerChangeResponse,
    summary="Move an item and its children into a sprint",
)
async def move_item(
    sprint_id: UUID,
    data: MoveItemRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerChangeResponse:
    record = await service.move_item_to_sprint(data.item_id, sprint_id, data.parent_id)
    return _change(record)


@router.post(
    "/sprints/{sprint_id}/items/remove",
    response_model=LedgerChangeResponse,
    summary="Return an item and its children to the backlog",
)
async def remove_item(
    sprint_id: UUID,
    data: RemoveItemRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerChangeResponse:
    record = await service.remove_item_from_sprint(data.item_id, sprint_id, data.parent_id)
    return _change(record)


@router.patch(
    "/associations/{association_id}/status",
    response_model=LedgerChangeResponse,
    summary="Move a scheduled item to another board column",
)
async def update_board_status(
    association_id: UUID,
    data: BoardStatusUpdateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerChangeResponse:
    record = await service.update_association_status(
        association_id, TaskBoardStatus(data.status)
    )
    return _change(record)


# ---------------------------------------------------------------------------
# Board queries
# ---------------------------------------------------------------------------

@router.get(
    "/sprints/{sprint_id}/board",
    response_model=TaskBoardResponse,
    summary="Task board of a sprint",
)
async def get_board(
    sprint_id: UUID,
    sprints: SprintService = Depends(get_sprint_service),
    service: LedgerService = Depends(get_ledger_service),
) -> TaskBoardResponse:
    if await sprints.get_sprint(sprint_id) is None:
        raise not_found("SPRINT_NOT_FOUND", "Sprint not found")
    board = await service.task_board(sprint_id)
    return TaskBoardResponse(
        sprint_id=sprint_id,
        **{
            column.value: [AssociationResponse.model_validate(r) for r in records]
            for column, records in board.items()
        },
    )


@router.get(
    "/sprints/{sprint_id}/associations",
    response_model=AssociationListResponse,
    summary="Scheduled items of a sprint in one board column",
)
async def list_associations(
    sprint_id: UUID,
    board_status: TaskBoardStatus = Query(alias="status"),
    item_types: list[ItemType] = Query(default=[], alias="type"),
    service: LedgerService = Depends(get_ledger_service),
) -> AssociationListResponse:
    records = await service.find_all_associations_by_status(
        sprint_id, board_status, *item_types
    )
    return AssociationListResponse(
        associations=[AssociationResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.get(
    "/items/{item_id}/sprint-history",
    response_model=AssociationListResponse,
    summary="Every sprint an item has been scheduled in",
)
async def item_history(
    item_id: UUID,
    service: LedgerService = Depends(get_ledger_service),
) -> AssociationListResponse:
    records = await service.item_history(item_id)
    return AssociationListResponse(
        associations=[AssociationResponse.model_validate(r) for r in records],
        total=len(records),
    )
