"""
Sprint effort and velocity.

Both calculations are flat sums over a sprint's live associations and
only touch the derived fields of the objects they are given. Persisting
anything is the caller's job.
"""

from __future__ import annotations

from typing import Iterable

from scrumboard.models.item_sprint_history import ItemSprintHistory, TaskBoardStatus
from scrumboard.models.sprint import Sprint
from scrumboard.services.hierarchy import ItemTree


def _live(associations: Iterable[ItemSprintHistory]) -> list[ItemSprintHistory]:
    return [a for a in associations if a.is_live]


def calculate_total_effort(
    sprint: Sprint,
    associations: Iterable[ItemSprintHistory],
    tree: ItemTree | None = None,
) -> int:
    """Sum the effort of the TASK/BUG items live-associated with `sprint`."""
    live = _live(associations)
    if tree is not None:
        for association in live:
            tree.combined_effort(association.item_id)
    total = sum(a.item.effort for a in live if a.item.carries_effort)
    sprint.total_effort = total
    return total


def calculate_velocity(sprint: Sprint, associations: Iterable[ItemSprintHistory]) -> int:
    """Sum the effort of the TASK/BUG items whose live association is DONE."""
    velocity = sum(
        a.item.effort
        for a in _live(associations)
        if a.item.carries_effort and a.status == TaskBoardStatus.done
    )
    sprint.velocity = velocity
    return velocity


def has_effort_items(associations: Iterable[ItemSprintHistory]) -> bool:
    """True when at least one live association points at a TASK/BUG item."""
    return any(a.item.carries_effort for a in _live(associations))
