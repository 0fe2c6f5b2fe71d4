"""
Item business logic.

Handles backlog item CRUD and the item hierarchy rules: parent/type
ordering on create and update, subtree status changes, and defensive
unscheduling before deletion.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.exceptions import InvalidAssigneeError, InvalidParentError
from scrumboard.models.item import EFFORT_TYPES, Item, ItemPriority, ItemStatus, ItemType
from scrumboard.models.item_sprint_history import ItemSprintHistory
from scrumboard.models.sprint import Sprint, SprintStatus
from scrumboard.models.user import User
from scrumboard.schemas.item import ItemCreateRequest, ItemUpdateRequest
from scrumboard.services.hierarchy import ALLOWED_PARENT_TYPES, ItemTree, validate_parent

logger = logging.getLogger(__name__)


class ItemService:
    """Handles all item operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def get_item(self, item_id: UUID) -> Item | None:
        result = await self.db.execute(select(Item).where(Item.id == item_id))
        return result.scalar_one_or_none()

    async def find_item(self, item_id: UUID) -> Item | None:
        """Load an item with its combined effort filled in."""
        item = await self.get_item(item_id)
        if item is None:
            return None
        tree = await self.load_tree(item.project_id)
        tree.combined_effort(item.id)
        return item

    async def list_items(self, project_id: UUID) -> list[Item]:
        """List a project's backlog with combined effort rolled up."""
        result = await self.db.execute(
            select(Item)
            .where(Item.project_id == project_id)
            .order_by(Item.created_at)
        )
        items = list(result.scalars().all())
        ItemTree(items).rollup()
        return items

    async def load_tree(self, project_id: UUID) -> ItemTree:
        result = await self.db.execute(select(Item).where(Item.project_id == project_id))
        return ItemTree(result.scalars().all())

    # -----------------------------------------------------------------------
    # Create Item
    # -----------------------------------------------------------------------

    async def create_item(
        self,
        project_id: UUID,
        data: ItemCreateRequest,
        reporter_id: UUID | None = None,
    ) -> Item:
        """Create a backlog item. EPIC/STORY effort is stored as zero."""
        item_type = ItemType(data.type)
        parent = await self._resolve_parent(data.parent_id)
        validate_parent(item_type, project_id, parent)

        if data.assignee_id is not None:
            await self._verify_assignee(data.assignee_id)

        item = Item(
            project_id=project_id,
            title=data.title,
            description=data.description,
            type=item_type,
            priority=ItemPriority(data.priority),
            effort=data.effort if item_type in EFFORT_TYPES else 0,
            status=ItemStatus.not_started,
            assignee_id=data.assignee_id,
            reporter_id=reporter_id,
            parent_id=parent.id if parent else None,
        )
        self.db.add(item)
        await self.db.flush()
        item.combined_effort = item.effort

        logger.info("Created %s item %s in project %s", item_type.value, item.id, project_id)
        return item

    # -----------------------------------------------------------------------
    # Update Item
    # -----------------------------------------------------------------------

    async def update_item(self, item_id: UUID, data: ItemUpdateRequest) -> Item | None:
        """
        Partially update an item.

        Type and parent changes are validated against both the new parent
        and the item's existing children before anything is written.
        """
        item = await self.get_item(item_id)
        if item is None:
            return None

        fields = data.model_fields_set
        new_type = ItemType(data.type) if data.type is not None else item.type

        if "parent_id" in fields:
            parent = await self._resolve_parent(data.parent_id)
        else:
            parent = await self._resolve_parent(item.parent_id)

        if new_type != item.type or "parent_id" in fields:
            validate_parent(new_type, item.project_id, parent)
        if new_type != item.type:
            tree = await self.load_tree(item.project_id)
            for child in tree.children(item.id):
                if new_type not in ALLOWED_PARENT_TYPES[child.type]:
                    raise InvalidParentError(
                        f"A {child.type.value} child cannot stay under an item of type {new_type.value}"
                    )

        if "assignee_id" in fields and data.assignee_id is not None:
            await self._verify_assignee(data.assignee_id)

        if data.title is not None:
            item.title = data.title
        if "description" in fields:
            item.description = data.description
        if data.priority is not None:
            item.priority = ItemPriority(data.priority)
        if "assignee_id" in fields:
            item.assignee_id = data.assignee_id
        item.type = new_type
        item.parent_id = parent.id if parent else None
        if new_type not in EFFORT_TYPES:
            item.effort = 0
        elif data.effort is not None:
            item.effort = data.effort

        await self.db.flush()
        tree = await self.load_tree(item.project_id)
        tree.combined_effort(item.id)
        return item

    async def update_assignee(self, item_id: UUID, assignee_id: UUID | None) -> Item | None:
        item = await self.get_item(item_id)
        if item is None:
            return None
        if assignee_id is not None:
            await self._verify_assignee(assignee_id)
        item.assignee_id = assignee_id
        await self.db.flush()
        return item

    async def set_parent(self, item: Item, parent_id: UUID | None) -> Item | None:
        """Validate and apply a parent change. Returns the new parent."""
        parent = await self._resolve_parent(parent_id)
        validate_parent(item.type, item.project_id, parent)
        item.parent_id = parent.id if parent else None
        await self.db.flush()
        logger.info("Item %s reparented under %s", item.id, item.parent_id)
        return parent

    def set_status_to_item_and_children(
        self, item: Item, status: ItemStatus, tree: ItemTree
    ) -> list[Item]:
        """Set `status` on the item and every descendant. Caller flushes."""
        changed = tree.subtree(item.id) or [item]
        for node in changed:
            node.status = status
        return changed

    # -----------------------------------------------------------------------
    # Delete Item
    # -----------------------------------------------------------------------

    async def delete_item(self, item_id: UUID) -> bool:
        """
        Delete an item.

        Children are detached to the top level first so that unscheduling
        the item does not carry them out of their sprint. Every live
        association in an open sprint is then removed through the ledger.

        The database cascades the remaining history rows, finished sprints
        included: a finished sprint no longer counts a deleted item in its
        total effort or velocity, and the item drops out of its audit trail.
        """
        item = await self.get_item(item_id)
        if item is None:
            return False

        await self.db.execute(
            update(Item).where(Item.parent_id == item.id).values(parent_id=None)
        )
        # Deferred import: the ledger depends on this service
        from scrumboard.services.ledger_service import LedgerService

        ledger = LedgerService(self.db)
        sprint_ids = await self.db.execute(
            select(ItemSprintHistory.sprint_id)
            .join(Sprint, Sprint.id == ItemSprintHistory.sprint_id)
            .where(
                ItemSprintHistory.item_id == item.id,
                ItemSprintHistory.removed_at.is_(None),
                Sprint.status != SprintStatus.finished,
            )
        )
        for sprint_id in sprint_ids.scalars().all():
            await ledger.remove_item_from_sprint(item.id, sprint_id)

        await self.db.delete(item)
        await self.db.flush()
        logger.info("Deleted item %s", item_id)
        return True

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _resolve_parent(self, parent_id: UUID | None) -> Item | None:
        if parent_id is None:
            return None
        parent = await self.get_item(parent_id)
        if parent is None:
            raise InvalidParentError("Parent item not found")
        return parent

    async def _verify_assignee(self, user_id: UUID) -> None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise InvalidAssigneeError()

