"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from scrumboard.models.base import Base, TimestampMixin, UUIDMixin
from scrumboard.models.user import User, UserRole
from scrumboard.models.project import Project
from scrumboard.models.item import EFFORT_TYPES, Item, ItemPriority, ItemStatus, ItemType
from scrumboard.models.sprint import Sprint, SprintStatus
from scrumboard.models.item_sprint_history import ItemSprintHistory, TaskBoardStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "UserRole",
    "Project",
    "EFFORT_TYPES",
    "Item",
    "ItemPriority",
    "ItemStatus",
    "ItemType",
    "Sprint",
    "SprintStatus",
    "ItemSprintHistory",
    "TaskBoardStatus",
]
