"""
User ORM model.

Users are owned by the authentication collaborator; the tracker only
references them as item assignees and reporters.
"""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from scrumboard.models.base import Base, TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    master_admin = "master_admin"
    admin = "admin"
    product_owner = "product_owner"
    developer = "developer"


class User(Base, UUIDMixin, TimestampMixin):
    """Represents a person who can be assigned work."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.developer,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
