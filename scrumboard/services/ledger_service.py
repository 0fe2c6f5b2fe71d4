"""
Item-sprint ledger.

Records which sprint each item belongs to and where it sits on the task
board. Records are never deleted: leaving a sprint stamps removed_at, and
a move links the superseded record to the one that replaced it. Moves and
removals carry the item's whole subtree so a story and its tasks always
share a sprint.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Iterable
from uuid import UUID, uuid4

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from scrumboard.core.clock import utcnow
from scrumboard.core.config import settings
from scrumboard.core.exceptions import CrossProjectError, SprintFinishedError
from scrumboard.core.security import ledger_lock_redis_key
from scrumboard.models.item import EFFORT_TYPES, Item, ItemType
from scrumboard.models.item_sprint_history import ItemSprintHistory, TaskBoardStatus
from scrumboard.models.sprint import Sprint, SprintStatus
from scrumboard.services.item_service import ItemService

logger = logging.getLogger(__name__)


class LedgerService:
    """Handles item placement in sprints and task board status."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis | None = None) -> None:
        self.db = db
        self.redis = redis
        self.items = ItemService(db)

    # -----------------------------------------------------------------------
    # Move Item To Sprint
    # -----------------------------------------------------------------------

    async def move_item_to_sprint(
        self,
        item_id: UUID,
        sprint_id: UUID,
        parent_id: UUID | None = None,
    ) -> ItemSprintHistory | None:
        """
        Place an item (and its subtree) into a sprint as TO_DO.

        A live record in another open sprint is superseded, not deleted.
        When parent_id differs from the current parent the item is
        reparented first; if the new parent lives in an open sprint, that
        sprint becomes the target so the subtree stays with its parent.

        Returns the item's live record in the target sprint, or None when
        the item or sprint does not exist, or when the item was neither
        placed nor reparented.
        """
        item = await self.items.get_item(item_id)
        sprint = await self._get_sprint(sprint_id)
        if item is None or sprint is None:
            logger.info("Move of item %s to sprint %s: nothing to do", item_id, sprint_id)
            return None

        if item.project_id != sprint.project_id:
            raise CrossProjectError()
        _ensure_open(sprint)

        target = sprint
        reparented = False
        if parent_id is not None and parent_id != item.parent_id:
            parent = await self.items.set_parent(item, parent_id)
            reparented = True
            parent_sprint = await self._open_sprint_of(parent.id) if parent else None
            if parent_sprint is not None and parent_sprint.id != target.id:
                logger.info(
                    "Item %s follows parent %s into sprint %s",
                    item.id, parent.id, parent_sprint.id,
                )
                target = parent_sprint

        tree = await self.items.load_tree(item.project_id)
        nodes = tree.subtree(item.id)
        live = await self._live_records_with_status([node.id for node in nodes])
        sources = {
            record.sprint_id
            for records in live.values()
            for record, status in records
            if status != SprintStatus.finished
        }

        async with self._lock_sprints({target.id, *sources}) as locked:
            target = locked.get(target.id)
            if target is None:
                return None
            _ensure_open(target)
            record, changed = await self._place(nodes, target)

        if not changed and not reparented:
            return None
        return record

    # -----------------------------------------------------------------------
    # Remove Item From Sprint
    # -----------------------------------------------------------------------

    async def remove_item_from_sprint(
        self,
        item_id: UUID,
        sprint_id: UUID,
        parent_id: UUID | None = None,
    ) -> ItemSprintHistory | None:
        """
        Return an item (and its subtree) to the backlog.

        The live records in the sprint are stamped removed. When parent_id
        differs from the current parent the item is reparented as well, but
        not re-scheduled. Returns the item's removed record, or None when
        there was no live record to remove.
        """
        item = await self.items.get_item(item_id)
        sprint = await self._get_sprint(sprint_id)
        if item is None or sprint is None:
            logger.info("Removal of item %s from sprint %s: nothing to do", item_id, sprint_id)
            return None

        _ensure_open(sprint)
        if parent_id is not None and parent_id != item.parent_id:
            await self.items.set_parent(item, parent_id)

        async with self._lock_sprints([sprint.id]) as locked:
            sprint = locked.get(sprint.id)
            if sprint is None:
                return None
            _ensure_open(sprint)
            tree = await self.items.load_tree(item.project_id)
            subtree_ids = [node.id for node in tree.subtree(item.id)]
            records = await self._live_records(subtree_ids, sprint_id=sprint.id)

            root = next((r for r in records if r.item_id == item.id), None)
            if root is None:
                logger.info("Item %s is not live in sprint %s: nothing to do", item.id, sprint.id)
                return None

            now = utcnow()
            for record in records:
                record.removed_at = now
            await self.db.flush()

        logger.info(
            "Removed item %s from sprint %s (%d record(s))", item.id, sprint.id, len(records)
        )
        return root

    # -----------------------------------------------------------------------
    # Task board status
    # -----------------------------------------------------------------------

    async def update_association_status(
        self, association_id: UUID, status: TaskBoardStatus
    ) -> ItemSprintHistory | None:
        """Move a live record to another board column. Any-to-any is allowed."""
        record = await self.get_association(association_id)
        if record is None or not record.is_live:
            return None

        async with self._lock_sprints([record.sprint_id]) as locked:
            sprint = locked.get(record.sprint_id)
            if sprint is None:
                return None
            _ensure_open(sprint)
            await self.db.refresh(record, attribute_names=["status", "removed_at"])
            if not record.is_live:
                return None
            if record.status != status:
                logger.info(
                    "Association %s moved from %s to %s",
                    record.id, record.status.value, status.value,
                )
                record.status = status
                await self.db.flush()
        return record

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def get_association(self, association_id: UUID) -> ItemSprintHistory | None:
        result = await self.db.execute(
            select(ItemSprintHistory).where(ItemSprintHistory.id == association_id)
        )
        return result.scalar_one_or_none()

    async def find_all_associations_by_status(
        self,
        sprint_id: UUID,
        status: TaskBoardStatus,
        *item_types: ItemType,
    ) -> list[ItemSprintHistory]:
        """
        Live records of a sprint in one board column, restricted to the
        given item types (TASK/BUG when none are given). Empty when nothing
        matches.
        """
        types = set(item_types) or set(EFFORT_TYPES)
        result = await self.db.execute(
            select(ItemSprintHistory)
            .join(Item, ItemSprintHistory.item_id == Item.id)
            .options(contains_eager(ItemSprintHistory.item))
            .where(
                ItemSprintHistory.sprint_id == sprint_id,
                ItemSprintHistory.status == status,
                ItemSprintHistory.removed_at.is_(None),
                Item.type.in_(types),
            )
            .order_by(ItemSprintHistory.created_at)
        )
        return list(result.scalars().all())

    async def task_board(self, sprint_id: UUID) -> dict[TaskBoardStatus, list[ItemSprintHistory]]:
        """All four board columns of a sprint, TASK/BUG items only."""
        board: dict[TaskBoardStatus, list[ItemSprintHistory]] = {
            status: [] for status in TaskBoardStatus
        }
        result = await self.db.execute(
            select(ItemSprintHistory)
            .join(Item, ItemSprintHistory.item_id == Item.id)
            .options(contains_eager(ItemSprintHistory.item))
            .where(
                ItemSprintHistory.sprint_id == sprint_id,
                ItemSprintHistory.removed_at.is_(None),
                Item.type.in_(EFFORT_TYPES),
            )
            .order_by(ItemSprintHistory.created_at)
        )
        for record in result.scalars().all():
            board[record.status].append(record)
        return board

    async def item_history(self, item_id: UUID) -> list[ItemSprintHistory]:
        """Every record of an item, removed ones included, oldest first."""
        result = await self.db.execute(
            select(ItemSprintHistory)
            .where(ItemSprintHistory.item_id == item_id)
            .order_by(ItemSprintHistory.created_at)
        )
        return list(result.scalars().all())

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _place(
        self, nodes: Iterable[Item], target: Sprint
    ) -> tuple[ItemSprintHistory | None, bool]:
        """Schedule `nodes` into `target`. Returns the root record and whether anything changed."""
        nodes = list(nodes)
        if not nodes:
            return None, False
        root_id = nodes[0].id
        live = await self._live_records_with_status([node.id for node in nodes])

        created: list[ItemSprintHistory] = []
        superseded: list[tuple[ItemSprintHistory, UUID]] = []
        root_record: ItemSprintHistory | None = None
        for node in nodes:
            records = live.get(node.id, [])
            existing = next((r for r, _ in records if r.sprint_id == target.id), None)
            if existing is not None:
                if node.id == root_id:
                    root_record = existing
                continue

            record = ItemSprintHistory(
                id=uuid4(),
                item=node,
                sprint_id=target.id,
                status=TaskBoardStatus.to_do,
            )
            self.db.add(record)
            created.append(record)
            if node.id == root_id:
                root_record = record
            # Finished sprints keep their records for velocity history
            superseded.extend(
                (r, record.id) for r, status in records if status != SprintStatus.finished
            )

        if not created:
            logger.info("Item %s already scheduled in sprint %s: nothing to do", root_id, target.id)
            return root_record, False

        await self.db.flush()
        now = utcnow()
        for old, replacement_id in superseded:
            old.removed_at = now
            old.superseded_by_id = replacement_id
        await self.db.flush()

        logger.info(
            "Moved item %s into sprint %s (%d new, %d superseded)",
            root_id, target.id, len(created), len(superseded),
        )
        return root_record, True

    async def _live_records(
        self, item_ids: list[UUID], sprint_id: UUID
    ) -> list[ItemSprintHistory]:
        if not item_ids:
            return []
        result = await self.db.execute(
            select(ItemSprintHistory)
            .where(
                ItemSprintHistory.item_id.in_(item_ids),
                ItemSprintHistory.sprint_id == sprint_id,
                ItemSprintHistory.removed_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _live_records_with_status(
        self, item_ids: list[UUID]
    ) -> dict[UUID, list[tuple[ItemSprintHistory, SprintStatus]]]:
        """Live records of the given items with the status of their sprint."""
        result = await self.db.execute(
            select(ItemSprintHistory, Sprint.status)
            .join(Sprint, Sprint.id == ItemSprintHistory.sprint_id)
            .where(
                ItemSprintHistory.item_id.in_(item_ids),
                ItemSprintHistory.removed_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        by_item: dict[UUID, list[tuple[ItemSprintHistory, SprintStatus]]] = defaultdict(list)
        for record, sprint_status in result.all():
            by_item[record.item_id].append((record, sprint_status))
        return by_item

    async def _open_sprint_of(self, item_id: UUID) -> Sprint | None:
        """The READY or ACTIVE sprint an item is live in, if any."""
        result = await self.db.execute(
            select(Sprint)
            .join(ItemSprintHistory, ItemSprintHistory.sprint_id == Sprint.id)
            .where(
                ItemSprintHistory.item_id == item_id,
                ItemSprintHistory.removed_at.is_(None),
                Sprint.status != SprintStatus.finished,
            )
            .order_by(ItemSprintHistory.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _get_sprint(self, sprint_id: UUID, for_update: bool = False) -> Sprint | None:
        stmt = select(Sprint).where(Sprint.id == sprint_id)
        if for_update:
            # Reload so status reflects writes committed while we waited
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    @asynccontextmanager
    async def _lock_sprints(
        self, sprint_ids: Iterable[UUID]
    ) -> AsyncIterator[dict[UUID, Sprint]]:
        """
        Serialize ledger writes on every sprint a change touches.

        Locks are taken in sprint id order. The Redis locks come first and
        are skipped when no client was configured; the sprint rows are then
        locked with SELECT ... FOR UPDATE. Yields the freshly loaded sprints
        that still exist, by id.
        """
        ordered = sorted(set(sprint_ids))
        async with AsyncExitStack() as stack:
            if self.redis is not None:
                for sprint_id in ordered:
                    await stack.enter_async_context(
                        self.redis.lock(
                            ledger_lock_redis_key(sprint_id),
                            timeout=settings.LEDGER_LOCK_TIMEOUT_SECONDS,
                            blocking_timeout=settings.LEDGER_LOCK_TIMEOUT_SECONDS,
                        )
                    )
            locked: dict[UUID, Sprint] = {}
            for sprint_id in ordered:
                sprint = await self._get_sprint(sprint_id, for_update=True)
                if sprint is not None:
                    locked[sprint_id] = sprint
            yield locked


def _ensure_open(sprint: Sprint) -> None:
    if sprint.status == SprintStatus.finished:
        raise SprintFinishedError()
