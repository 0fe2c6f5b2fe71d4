"""
Item ORM model.
"""

from __future__ import annotations

import enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scrumboard.models.base import Base, TimestampMixin, UUIDMixin


class ItemType(str, enum.Enum):
    epic = "epic"
    story = "story"
    task = "task"
    bug = "bug"


class ItemPriority(str, enum.Enum):
    urgent = "urgent"
    high = "high"
    medium = "medium"
    low = "low"
    none = "none"


class ItemStatus(str, enum.Enum):
    not_started = "not_started"
    active = "active"
    done = "done"


# Only these types carry authoritative effort and appear on a task board
EFFORT_TYPES: frozenset[ItemType] = frozenset({ItemType.task, ItemType.bug})


class Item(Base, UUIDMixin, TimestampMixin):
    """Represents a unit of work within a project backlog."""

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("effort >= 0", name="ck_items_effort_non_negative"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[ItemType] = mapped_column(
        Enum(ItemType, name="item_type"),
        nullable=False,
        default=ItemType.task,
    )
    priority: Mapped[ItemPriority] = mapped_column(
        Enum(ItemPriority, name="item_priority"),
        nullable=False,
        default=ItemPriority.none,
    )
    effort: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[ItemStatus] = mapped_column(
        Enum(ItemStatus, name="item_status"),
        nullable=False,
        default=ItemStatus.not_started,
    )
    assignee_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reporter_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Children are resolved through ItemTree, not an ORM collection
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Display-only rollup, recomputed on every aggregation pass, never persisted
    combined_effort = 0

    @property
    def carries_effort(self) -> bool:
        return self.type in EFFORT_TYPES

    def __repr__(self) -> str:
        return f"<Item id={self.id} type={self.type} project_id={self.project_id}>"
