"""
Project business logic.

Handles project creation and lookup. Every new project starts with a
READY sprint ready to be planned.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.config import settings
from scrumboard.models.project import Project
from scrumboard.schemas.project import ProjectCreateRequest
from scrumboard.services.sprint_service import SprintService

logger = logging.getLogger(__name__)


class ProjectService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_projects(self) -> list[Project]:
        result = await self.db.execute(select(Project).order_by(Project.created_at))
        return list(result.scalars().all())

    async def create_project(
        self, data: ProjectCreateRequest, creator_id: UUID | None = None
    ) -> Project:
        project = Project(
            title=data.title,
            description=data.description,
            sprint_duration=data.sprint_duration or settings.DEFAULT_SPRINT_DURATION_DAYS,
            created_by=creator_id,
        )
        self.db.add(project)
        await self.db.flush()

        await SprintService(self.db).create_sprint(project.id)
        logger.info("Created project %s (%s)", project.id, project.title)
        return project

    async def get_project(self, project_id: UUID) -> Project | None:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()
