"""
Sprint ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from scrumboard.models.base import Base, TimestampMixin, UUIDMixin


class SprintStatus(str, enum.Enum):
    ready = "ready"
    active = "active"
    finished = "finished"


class Sprint(Base, UUIDMixin, TimestampMixin):
    """Represents a time-boxed sprint within a project."""

    __tablename__ = "sprints"
    __table_args__ = (
        UniqueConstraint("project_id", "number", name="uq_sprints_project_number"),
        # At most one planning and one running sprint per project
        Index(
            "uq_sprints_project_ready",
            "project_id",
            unique=True,
            postgresql_where=text("status = 'ready'"),
            sqlite_where=text("status = 'ready'"),
        ),
        Index(
            "uq_sprints_project_active",
            "project_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[SprintStatus] = mapped_column(
        Enum(SprintStatus, name="sprint_status"),
        nullable=False,
        default=SprintStatus.ready,
    )
    goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Derived on read by the metrics pass, never persisted
    total_effort = 0
    velocity = 0
    days_remaining = 0

    def __repr__(self) -> str:
        return f"<Sprint id={self.id} number={self.number} status={self.status}>"
