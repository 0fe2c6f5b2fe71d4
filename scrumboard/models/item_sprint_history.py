"""
ItemSprintHistory ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrumboard.models.base import Base, TimestampMixin, UUIDMixin
from scrumboard.models.item import Item


class TaskBoardStatus(str, enum.Enum):
    to_do = "to_do"
    in_progress = "in_progress"
    for_review = "for_review"
    done = "done"


class ItemSprintHistory(Base, UUIDMixin, TimestampMixin):
    """
    Append-only ledger of item placements in sprints.

    A record is live while removed_at is NULL. Leaving a sprint stamps
    removed_at; a move also points superseded_by_id at the replacing record.
    """

    __tablename__ = "item_sprint_history"
    __table_args__ = (
        Index(
            "uq_item_sprint_history_live",
            "item_id",
            "sprint_id",
            unique=True,
            postgresql_where=text("removed_at IS NULL"),
            sqlite_where=text("removed_at IS NULL"),
        ),
    )

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sprint_id: Mapped[UUID] = mapped_column(
        ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[TaskBoardStatus] = mapped_column(
        Enum(TaskBoardStatus, name="task_board_status"),
        nullable=False,
        default=TaskBoardStatus.to_do,
    )
    removed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    superseded_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("item_sprint_history.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    item: Mapped[Item] = relationship("Item", lazy="joined", innerjoin=True)

    @property
    def is_live(self) -> bool:
        return self.removed_at is None

    def __repr__(self) -> str:
        return (
            f"<ItemSprintHistory id={self.id} item_id={self.item_id} "
            f"sprint_id={self.sprint_id} status={self.status} live={self.is_live}>"
        )
