"""
Startup bootstrap.

Seeds the master admin account the first time the service starts against
an empty users table.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.config import settings
from scrumboard.core.security import hash_password
from scrumboard.models.user import User, UserRole

logger = logging.getLogger(__name__)


async def ensure_master_admin(db: AsyncSession) -> User | None:
    """
    Create the master admin if no account with that email exists.

    Returns the existing or newly created user, or None when no master
    admin password is configured.
    """
    email = settings.MASTER_ADMIN_EMAIL.lower()
    result = await db.execute(select(User).where(User.email == email))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    if not settings.MASTER_ADMIN_PASSWORD:
        logger.warning("MASTER_ADMIN_PASSWORD is not set; skipping master admin creation")
        return None

    user = User(
        email=email,
        password_hash=hash_password(settings.MASTER_ADMIN_PASSWORD),
        display_name=settings.MASTER_ADMIN_NAME,
        role=UserRole.master_admin,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info("Created master admin %s", email)
    return user
