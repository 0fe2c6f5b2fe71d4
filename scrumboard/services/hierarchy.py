"""
Item hierarchy.

An arena of one project's items keyed by id, with the parent/child
adjacency derived from parent_id. Effort rollups are recomputed on demand
from the leaves; epics and stories never hold authoritative effort.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable
from uuid import UUID

from scrumboard.core.exceptions import InvalidParentError
from scrumboard.models.item import Item, ItemType

# Coarser types a child may hang under
ALLOWED_PARENT_TYPES: dict[ItemType, frozenset[ItemType]] = {
    ItemType.epic: frozenset(),
    ItemType.story: frozenset({ItemType.epic}),
    ItemType.task: frozenset({ItemType.story, ItemType.epic}),
    ItemType.bug: frozenset({ItemType.story, ItemType.epic}),
}


def validate_parent(item_type: ItemType, project_id: UUID, parent: Item | None) -> None:
    """
    Check that `parent` may own an item of `item_type` in `project_id`.

    Raises InvalidParentError on a cross-project parent or when the parent is
    not of a strictly coarser type. The ordering is strict, so a valid
    assignment can never close a cycle.
    """
    if parent is None:
        return
    if parent.project_id != project_id:
        raise InvalidParentError("The parent item belongs to a different project")
    allowed = ALLOWED_PARENT_TYPES[item_type]
    if parent.type not in allowed:
        if not allowed:
            raise InvalidParentError(f"An item of type {item_type.value} cannot have a parent")
        names = ", ".join(sorted(t.value for t in allowed))
        raise InvalidParentError(
            f"An item of type {item_type.value} can only be a child of: {names}"
        )


class ItemTree:
    """Read-only view over a project's items."""

    def __init__(self, items: Iterable[Item]) -> None:
        self._items: dict[UUID, Item] = {item.id: item for item in items}
        self._children: dict[UUID, list[Item]] = defaultdict(list)
        for item in self._items.values():
            if item.parent_id is not None and item.parent_id in self._items:
                self._children[item.parent_id].append(item)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: UUID) -> Item | None:
        return self._items.get(item_id)

    def children(self, item_id: UUID) -> list[Item]:
        return list(self._children.get(item_id, ()))

    def roots(self) -> list[Item]:
        return [
            item for item in self._items.values()
            if item.parent_id is None or item.parent_id not in self._items
        ]

    def descendants(self, item_id: UUID) -> list[Item]:
        """All transitive children of `item_id`, parents before their children."""
        found: list[Item] = []
        seen: set[UUID] = {item_id}
        stack = list(reversed(self.children(item_id)))
        while stack:
            item = stack.pop()
            if item.id in seen:
                continue
            seen.add(item.id)
            found.append(item)
            stack.extend(reversed(self.children(item.id)))
        return found

    def subtree(self, item_id: UUID) -> list[Item]:
        """The item itself followed by its descendants."""
        item = self._items.get(item_id)
        if item is None:
            return []
        return [item, *self.descendants(item_id)]

    def combined_effort(self, item_id: UUID) -> int:
        """
        Effort of an item including its children.

        TASK/BUG report their own effort; EPIC/STORY report the sum over
        their direct children, so a childless EPIC/STORY reports zero.
        The result is also written to item.combined_effort for display.
        """
        item = self._items.get(item_id)
        if item is None:
            return 0
        if item.carries_effort:
            total = item.effort
        else:
            total = sum(self.combined_effort(child.id) for child in self.children(item_id))
        item.combined_effort = total
        return total

    def rollup(self) -> None:
        """Recompute combined effort for every item in the arena."""
        for root in self.roots():
            self.combined_effort(root.id)
