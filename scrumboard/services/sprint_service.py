"""
Sprint business logic.

Handles the sprint lifecycle (READY -> ACTIVE -> FINISHED) and fills in
the derived effort, velocity and days-remaining figures before sprints are
handed to callers. Absent sprints are reported as None, never raised.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.core.clock import calculate_days_remaining, calculate_end_date, utcnow
from scrumboard.core.config import settings
from scrumboard.core.exceptions import (
    ActiveSprintExistsError,
    InvalidSprintStatusError,
    SprintHasZeroEffortError,
)
from scrumboard.models.item import ItemStatus
from scrumboard.models.item_sprint_history import ItemSprintHistory
from scrumboard.models.project import Project
from scrumboard.models.sprint import Sprint, SprintStatus
from scrumboard.services.hierarchy import ItemTree
from scrumboard.services.item_service import ItemService
from scrumboard.services.metrics import (
    calculate_total_effort,
    calculate_velocity,
    has_effort_items,
)

logger = logging.getLogger(__name__)


class SprintService:
    """Handles all sprint operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.items = ItemService(db)

    # -----------------------------------------------------------------------
    # Create Sprint
    # -----------------------------------------------------------------------

    async def create_sprint(self, project_id: UUID) -> Sprint:
        """
        Return the project's planning sprint, creating one if needed.

        New sprints start READY and take the next number in the project.
        """
        existing = await self._first_by_project_and_status(project_id, SprintStatus.ready)
        if existing is not None:
            return existing

        last_number = (
            await self.db.execute(
                select(func.max(Sprint.number)).where(Sprint.project_id == project_id)
            )
        ).scalar()
        sprint = Sprint(
            project_id=project_id,
            number=(last_number or 0) + 1,
            status=SprintStatus.ready,
        )
        self.db.add(sprint)
        await self.db.flush()

        logger.info("Created sprint %s (#%d) for project %s", sprint.id, sprint.number, project_id)
        return sprint

    # -----------------------------------------------------------------------
    # Get Sprint
    # -----------------------------------------------------------------------

    async def get_sprint(self, sprint_id: UUID) -> Sprint | None:
        result = await self.db.execute(select(Sprint).where(Sprint.id == sprint_id))
        return result.scalar_one_or_none()

    async def find_sprint_in_project(self, project_id: UUID, sprint_id: UUID) -> Sprint | None:
        """Load a sprint of a project with its derived figures filled in."""
        result = await self.db.execute(
            select(Sprint).where(Sprint.id == sprint_id, Sprint.project_id == project_id)
        )
        sprint = result.scalar_one_or_none()
        if sprint is None:
            return None
        await self._populate(sprint)
        return sprint

    # -----------------------------------------------------------------------
    # Current sprint
    # -----------------------------------------------------------------------

    async def find_active_sprint_in_project(self, project_id: UUID) -> Sprint | None:
        """
        The sprint a project is currently working with.

        A READY sprint wins (total effort filled in); otherwise the ACTIVE
        sprint with total effort, days remaining and velocity; otherwise None.
        """
        ready = await self._first_by_project_and_status(project_id, SprintStatus.ready)
        if ready is not None:
            await self.calculate_total_effort(ready)
            return ready

        active = await self._first_by_project_and_status(project_id, SprintStatus.active)
        if active is not None:
            await self._populate(active)
            return active

        return None

    # -----------------------------------------------------------------------
    # Start Sprint
    # -----------------------------------------------------------------------

    async def start_sprint(
        self,
        sprint_id: UUID,
        goal: str | None,
        duration: int | None = None,
    ) -> Sprint | None:
        """
        Start a READY sprint.

        Every guard runs before anything is written: the sprint must be
        READY, no other sprint of the project may be ACTIVE, and the derived
        total effort must be above zero. The project's sprint_duration sets
        the end date; an explicit duration is only compared and logged.
        """
        sprint = await self._get_sprint_for_update(sprint_id)
        if sprint is None:
            return None

        if sprint.status != SprintStatus.ready:
            raise InvalidSprintStatusError("Only ready sprints can be started")

        active = await self._first_by_project_and_status(sprint.project_id, SprintStatus.active)
        if active is not None and active.id != sprint.id:
            raise ActiveSprintExistsError()

        associations = await self._live_associations(sprint.id)
        tree = await self.items.load_tree(sprint.project_id)
        calculate_total_effort(sprint, associations, tree)
        if sprint.total_effort == 0:
            logger.info("Refusing to start sprint %s with zero effort", sprint.id)
            raise SprintHasZeroEffortError()

        project = await self._get_project(sprint.project_id)
        sprint_duration = project.sprint_duration if project else settings.DEFAULT_SPRINT_DURATION_DAYS
        if duration is not None and duration != sprint_duration:
            logger.warning(
                "Ignoring requested duration %d for sprint %s; project duration is %d days",
                duration, sprint.id, sprint_duration,
            )

        now = utcnow()
        sprint.status = SprintStatus.active
        sprint.start_date = now
        sprint.end_date = calculate_end_date(now, sprint_duration)
        sprint.goal = (goal or "").strip() or settings.DEFAULT_SPRINT_GOAL
        sprint.duration = sprint_duration

        for association in associations:
            if association.item.carries_effort:
                self.items.set_status_to_item_and_children(
                    association.item, ItemStatus.active, tree
                )

        await self.db.flush()
        sprint.days_remaining = calculate_days_remaining(now, sprint.end_date)
        calculate_velocity(sprint, associations)

        logger.info(
            "Started sprint %s: effort=%d, ends %s",
            sprint.id, sprint.total_effort, sprint.end_date.isoformat(),
        )
        return sprint

    # -----------------------------------------------------------------------
    # Finish Sprint
    # -----------------------------------------------------------------------

    async def finish_sprint(self, sprint_id: UUID) -> Sprint | None:
        """
        Finish an ACTIVE sprint. Finishing an already finished sprint is a
        no-op. Effort and velocity are not recomputed here.
        """
        sprint = await self._get_sprint_for_update(sprint_id)
        if sprint is None:
            return None

        if sprint.status == SprintStatus.finished:
            logger.info("Sprint %s is already finished", sprint.id)
            return sprint
        if sprint.status != SprintStatus.active:
            raise InvalidSprintStatusError("Only active sprints can be finished")

        sprint.status = SprintStatus.finished
        sprint.end_date = utcnow()
        await self.db.flush()

        logger.info("Finished sprint %s", sprint.id)
        return sprint

    # -----------------------------------------------------------------------
    # Sprint history
    # -----------------------------------------------------------------------

    async def find_sprints_by_project_and_status(
        self, project_id: UUID, status: SprintStatus
    ) -> list[Sprint]:
        """
        Sprints of a project in `status`, newest first, with effort and
        velocity filled in. Sprints without any TASK/BUG record are left
        out before any figures are computed.
        """
        result = await self.db.execute(
            select(Sprint)
            .where(Sprint.project_id == project_id, Sprint.status == status)
            .order_by(Sprint.number.desc())
        )
        sprints = list(result.scalars().all())
        if not sprints:
            return []

        associations = await self._live_associations_by_sprint([s.id for s in sprints])
        tree: ItemTree | None = None
        listed: list[Sprint] = []
        for sprint in sprints:
            records = associations.get(sprint.id, [])
            if not has_effort_items(records):
                continue
            if tree is None:
                tree = await self.items.load_tree(project_id)
            calculate_total_effort(sprint, records, tree)
            calculate_velocity(sprint, records)
            listed.append(sprint)
        return listed

    # -----------------------------------------------------------------------
    # Derived figures
    # -----------------------------------------------------------------------

    async def calculate_total_effort(self, sprint: Sprint) -> int:
        associations = await self._live_associations(sprint.id)
        tree = await self.items.load_tree(sprint.project_id)
        return calculate_total_effort(sprint, associations, tree)

    async def calculate_velocity(self, sprint: Sprint) -> int:
        associations = await self._live_associations(sprint.id)
        return calculate_velocity(sprint, associations)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _populate(self, sprint: Sprint) -> None:
        associations = await self._live_associations(sprint.id)
        tree = await self.items.load_tree(sprint.project_id)
        calculate_total_effort(sprint, associations, tree)
        calculate_velocity(sprint, associations)
        if sprint.status == SprintStatus.active:
            sprint.days_remaining = calculate_days_remaining(utcnow(), sprint.end_date)
        else:
            sprint.days_remaining = 0

    async def _first_by_project_and_status(
        self, project_id: UUID, status: SprintStatus
    ) -> Sprint | None:
        result = await self.db.execute(
            select(Sprint)
            .where(Sprint.project_id == project_id, Sprint.status == status)
            .order_by(Sprint.number)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _get_sprint_for_update(self, sprint_id: UUID) -> Sprint | None:
        result = await self.db.execute(
            select(Sprint).where(Sprint.id == sprint_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _get_project(self, project_id: UUID) -> Project | None:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def _live_associations(self, sprint_id: UUID) -> list[ItemSprintHistory]:
        result = await self.db.execute(
            select(ItemSprintHistory)
            .where(
                ItemSprintHistory.sprint_id == sprint_id,
                ItemSprintHistory.removed_at.is_(None),
            )
            .order_by(ItemSprintHistory.created_at)
        )
        return list(result.scalars().all())

    async def _live_associations_by_sprint(
        self, sprint_ids: list[UUID]
    ) -> dict[UUID, list[ItemSprintHistory]]:
        result = await self.db.execute(
            select(ItemSprintHistory).where(
                ItemSprintHistory.sprint_id.in_(sprint_ids),
                ItemSprintHistory.removed_at.is_(None),
            )
        )
        by_sprint: dict[UUID, list[ItemSprintHistory]] = defaultdict(list)
        for record in result.scalars().all():
            by_sprint[record.sprint_id].append(record)
        return by_sprint
