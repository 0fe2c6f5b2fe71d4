"""Tests for item placement in sprints and the task board."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select, update

from scrumboard.core.clock import utcnow
from scrumboard.core.exceptions import CrossProjectError, InvalidParentError, SprintFinishedError
from scrumboard.models.item import ItemType
from scrumboard.models.item_sprint_history import ItemSprintHistory, TaskBoardStatus
from scrumboard.models.sprint import Sprint, SprintStatus
from scrumboard.schemas.project import ProjectCreateRequest
from scrumboard.services.ledger_service import LedgerService
from scrumboard.services.project_service import ProjectService


async def _live_count(db, item_id) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(ItemSprintHistory)
        .where(ItemSprintHistory.item_id == item_id, ItemSprintHistory.removed_at.is_(None))
    )
    return result.scalar_one()


async def _start_and_open_next(sprints, ledger, project, sprint, make_item):
    """Start `sprint` with a filler task and return the next READY sprint."""
    filler = await make_item(ItemType.task, effort=1, title="filler")
    await ledger.move_item_to_sprint(filler.id, sprint.id)
    await sprints.start_sprint(sprint.id, "go")
    return await sprints.create_sprint(project.id)


class TestMoveItem:
    async def test_move_creates_to_do_record(self, db, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=3)

        record = await ledger.move_item_to_sprint(task.id, sprint.id)

        assert record.item_id == task.id
        assert record.sprint_id == sprint.id
        assert record.status == TaskBoardStatus.to_do
        assert record.is_live
        assert await _live_count(db, task.id) == 1

    async def test_move_carries_subtree(self, db, ledger, sprint, make_item):
        story = await make_item(ItemType.story)
        task = await make_item(ItemType.task, effort=3, parent=story)
        bug = await make_item(ItemType.bug, effort=5, parent=story)

        await ledger.move_item_to_sprint(story.id, sprint.id)

        for item in (story, task, bug):
            assert await _live_count(db, item.id) == 1
        board = await ledger.task_board(sprint.id)
        assert {r.item_id for r in board[TaskBoardStatus.to_do]} == {task.id, bug.id}

    async def test_move_to_same_sprint_is_noop(self, db, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=3)
        await ledger.move_item_to_sprint(task.id, sprint.id)

        assert await ledger.move_item_to_sprint(task.id, sprint.id) is None
        assert len(await ledger.item_history(task.id)) == 1

    async def test_move_between_open_sprints_supersedes(
        self, db, sprints, ledger, project, sprint, make_item
    ):
        task = await make_item(ItemType.task, effort=3)
        first = await ledger.move_item_to_sprint(task.id, sprint.id)
        following = await _start_and_open_next(sprints, ledger, project, sprint, make_item)

        second = await ledger.move_item_to_sprint(task.id, following.id)

        assert second.sprint_id == following.id
        assert first.removed_at is not None
        assert first.superseded_by_id == second.id
        assert await _live_count(db, task.id) == 1

    async def test_move_missing_item_or_sprint(self, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=1)
        assert await ledger.move_item_to_sprint(uuid4(), sprint.id) is None
        assert await ledger.move_item_to_sprint(task.id, uuid4()) is None

    async def test_move_into_other_project_rejected(self, db, sprints, ledger, make_item):
        other = await ProjectService(db).create_project(ProjectCreateRequest(title="Other"))
        target = await sprints.find_active_sprint_in_project(other.id)
        task = await make_item(ItemType.task, effort=1)

        with pytest.raises(CrossProjectError):
            await ledger.move_item_to_sprint(task.id, target.id)
        assert await _live_count(db, task.id) == 0

    async def test_move_into_finished_sprint_rejected(
        self, sprints, ledger, sprint, make_item
    ):
        task = await make_item(ItemType.task, effort=2)
        await ledger.move_item_to_sprint(task.id, sprint.id)
        await sprints.start_sprint(sprint.id, "go")
        await sprints.finish_sprint(sprint.id)

        late = await make_item(ItemType.task, effort=1)
        with pytest.raises(SprintFinishedError):
            await ledger.move_item_to_sprint(late.id, sprint.id)

    async def test_move_keeps_finished_sprint_record(
        self, db, sprints, ledger, project, sprint, make_item
    ):
        task = await make_item(ItemType.task, effort=2)
        finished_record = await ledger.move_item_to_sprint(task.id, sprint.id)
        await sprints.start_sprint(sprint.id, "go")
        await sprints.finish_sprint(sprint.id)
        following = await sprints.create_sprint(project.id)

        await ledger.move_item_to_sprint(task.id, following.id)

        assert finished_record.removed_at is None
        assert finished_record.superseded_by_id is None
        assert await _live_count(db, task.id) == 2


class TestMoveWithParent:
    async def test_reparent_follows_parent_sprint(
        self, db, sprints, ledger, project, sprint, make_item
    ):
        story = await make_item(ItemType.story)
        await make_item(ItemType.task, effort=2, parent=story)
        await ledger.move_item_to_sprint(story.id, sprint.id)
        following = await _start_and_open_next(sprints, ledger, project, sprint, make_item)
        task = await make_item(ItemType.task, effort=4)

        record = await ledger.move_item_to_sprint(task.id, following.id, parent_id=story.id)

        assert task.parent_id == story.id
        assert record.sprint_id == sprint.id

    async def test_reparent_to_unscheduled_parent_uses_requested_sprint(
        self, ledger, sprint, make_item
    ):
        story = await make_item(ItemType.story)
        task = await make_item(ItemType.task, effort=4)

        record = await ledger.move_item_to_sprint(task.id, sprint.id, parent_id=story.id)

        assert task.parent_id == story.id
        assert record.sprint_id == sprint.id

    async def test_reparent_in_place_returns_existing_record(self, ledger, sprint, make_item):
        story = await make_item(ItemType.story)
        task = await make_item(ItemType.task, effort=2)
        first = await ledger.move_item_to_sprint(task.id, sprint.id)

        record = await ledger.move_item_to_sprint(task.id, sprint.id, parent_id=story.id)

        assert task.parent_id == story.id
        assert record.id == first.id
        assert len(await ledger.item_history(task.id)) == 1

    async def test_invalid_parent_rejected(self, ledger, sprint, make_item):
        other_task = await make_item(ItemType.task)
        task = await make_item(ItemType.task, effort=4)
        with pytest.raises(InvalidParentError):
            await ledger.move_item_to_sprint(task.id, sprint.id, parent_id=other_task.id)


class TestRemoveItem:
    async def test_remove_returns_subtree_to_backlog(self, db, ledger, sprint, make_item):
        story = await make_item(ItemType.story)
        task = await make_item(ItemType.task, effort=3, parent=story)
        await ledger.move_item_to_sprint(story.id, sprint.id)

        removed = await ledger.remove_item_from_sprint(story.id, sprint.id)

        assert removed.item_id == story.id
        assert removed.removed_at is not None
        assert await _live_count(db, story.id) == 0
        assert await _live_count(db, task.id) == 0
        assert len(await ledger.item_history(task.id)) == 1

    async def test_remove_unscheduled_item_is_noop(self, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=1)
        assert await ledger.remove_item_from_sprint(task.id, sprint.id) is None
        assert await ledger.remove_item_from_sprint(uuid4(), sprint.id) is None

    async def test_remove_with_reparent(self, ledger, sprint, make_item):
        story = await make_item(ItemType.story)
        task = await make_item(ItemType.task, effort=1)
        await ledger.move_item_to_sprint(task.id, sprint.id)

        removed = await ledger.remove_item_from_sprint(task.id, sprint.id, parent_id=story.id)

        assert removed is not None
        assert task.parent_id == story.id

    async def test_remove_from_finished_sprint_rejected(
        self, sprints, ledger, sprint, make_item
    ):
        task = await make_item(ItemType.task, effort=1)
        await ledger.move_item_to_sprint(task.id, sprint.id)
        await sprints.start_sprint(sprint.id, "go")
        await sprints.finish_sprint(sprint.id)

        with pytest.raises(SprintFinishedError):
            await ledger.remove_item_from_sprint(task.id, sprint.id)


class TestBoardStatus:
    async def test_any_column_to_any_column(self, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=1)
        record = await ledger.move_item_to_sprint(task.id, sprint.id)

        for status in (
            TaskBoardStatus.done,
            TaskBoardStatus.to_do,
            TaskBoardStatus.for_review,
            TaskBoardStatus.in_progress,
        ):
            updated = await ledger.update_association_status(record.id, status)
            assert updated.status == status

    async def test_removed_record_is_noop(self, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=1)
        record = await ledger.move_item_to_sprint(task.id, sprint.id)
        await ledger.remove_item_from_sprint(task.id, sprint.id)

        assert await ledger.update_association_status(record.id, TaskBoardStatus.done) is None
        assert record.status == TaskBoardStatus.to_do

    async def test_missing_record_is_noop(self, ledger):
        assert await ledger.update_association_status(uuid4(), TaskBoardStatus.done) is None

    async def test_finished_sprint_rejected(self, sprints, ledger, sprint, make_item):
        task = await make_item(ItemType.task, effort=1)
        record = await ledger.move_item_to_sprint(task.id, sprint.id)
        await sprints.start_sprint(sprint.id, "go")
        await sprints.finish_sprint(sprint.id)

        with pytest.raises(SprintFinishedError):
            await ledger.update_association_status(record.id, TaskBoardStatus.done)


class TestBoardQueries:
    async def test_filter_by_status_and_type(self, ledger, sprint, make_item):
        story = await make_item(ItemType.story)
        task = await make_item(ItemType.task, effort=2, parent=story)
        bug = await make_item(ItemType.bug, effort=1, parent=story)
        await ledger.move_item_to_sprint(story.id, sprint.id)
        board = await ledger.task_board(sprint.id)
        bug_record = next(r for r in board[TaskBoardStatus.to_do] if r.item_id == bug.id)
        await ledger.update_association_status(bug_record.id, TaskBoardStatus.in_progress)

        to_do = await ledger.find_all_associations_by_status(sprint.id, TaskBoardStatus.to_do)
        assert [r.item_id for r in to_do] == [task.id]

        stories = await ledger.find_all_associations_by_status(
            sprint.id, TaskBoardStatus.to_do, ItemType.story
        )
        assert [r.item_id for r in stories] == [story.id]

        bugs = await ledger.find_all_associations_by_status(
            sprint.id, TaskBoardStatus.in_progress, ItemType.bug
        )
        assert [r.item_id for r in bugs] == [bug.id]

        assert await ledger.find_all_associations_by_status(
            sprint.id, TaskBoardStatus.done
        ) == []

    async def test_board_has_every_column(self, ledger, sprint):
        board = await ledger.task_board(sprint.id)
        assert set(board) == set(TaskBoardStatus)
        assert all(records == [] for records in board.values())


class _RecordingLock:
    def __init__(self, redis: "_RecordingRedis", key: str) -> None:
        self.redis = redis
        self.key = key

    async def __aenter__(self):
        self.redis.log.append(("acquire", self.key))
        if self.redis.on_acquire is not None:
            await self.redis.on_acquire()
        return self

    async def __aexit__(self, *exc):
        self.redis.log.append(("release", self.key))
        return False


class _RecordingRedis:
    """Stands in for a redis client; only records lock usage."""

    def __init__(self, on_acquire=None) -> None:
        self.log: list[tuple[str, str]] = []
        self.on_acquire = on_acquire

    def lock(self, name: str, timeout: float, blocking_timeout: float) -> _RecordingLock:
        return _RecordingLock(self, name)

    def acquired(self) -> list[str]:
        return [key for action, key in self.log if action == "acquire"]

    def released(self) -> list[str]:
        return [key for action, key in self.log if action == "release"]


class TestSprintLock:
    async def test_writes_hold_the_sprint_lock(self, db, sprint, make_item):
        redis = _RecordingRedis()
        ledger = LedgerService(db, redis=redis)
        task = await make_item(ItemType.task, effort=1)

        await ledger.move_item_to_sprint(task.id, sprint.id)
        await ledger.remove_item_from_sprint(task.id, sprint.id)

        key = f"ledger:sprint:{sprint.id}"
        assert redis.log == [
            ("acquire", key),
            ("release", key),
            ("acquire", key),
            ("release", key),
        ]

    async def test_move_locks_source_and_target_in_id_order(
        self, db, sprints, project, sprint, make_item
    ):
        redis = _RecordingRedis()
        ledger = LedgerService(db, redis=redis)
        task = await make_item(ItemType.task, effort=2)
        first = await ledger.move_item_to_sprint(task.id, sprint.id)
        await sprints.start_sprint(sprint.id, "go")
        following = await sprints.create_sprint(project.id)
        redis.log.clear()

        await ledger.move_item_to_sprint(task.id, following.id)

        expected = [
            f"ledger:sprint:{sprint_id}" for sprint_id in sorted((sprint.id, following.id))
        ]
        assert redis.acquired() == expected
        assert sorted(redis.released()) == sorted(expected)
        assert first.removed_at is not None

    async def test_board_status_holds_the_sprint_lock(self, db, sprint, make_item):
        redis = _RecordingRedis()
        ledger = LedgerService(db, redis=redis)
        task = await make_item(ItemType.task, effort=1)
        record = await ledger.move_item_to_sprint(task.id, sprint.id)
        redis.log.clear()

        await ledger.update_association_status(record.id, TaskBoardStatus.done)

        key = f"ledger:sprint:{sprint.id}"
        assert redis.log == [("acquire", key), ("release", key)]

    async def test_sprint_finished_while_waiting_for_lock(self, db, sprint, make_item):
        async def finish_elsewhere():
            await db.execute(
                update(Sprint)
                .where(Sprint.id == sprint.id)
                .values(status=SprintStatus.finished)
                .execution_options(synchronize_session=False)
            )

        ledger = LedgerService(db, redis=_RecordingRedis(on_acquire=finish_elsewhere))
        task = await make_item(ItemType.task, effort=1)

        with pytest.raises(SprintFinishedError):
            await ledger.move_item_to_sprint(task.id, sprint.id)
        assert await _live_count(db, task.id) == 0

    async def test_record_removed_while_waiting_for_lock(self, db, sprint, make_item):
        task = await make_item(ItemType.task, effort=1)
        record = await LedgerService(db).move_item_to_sprint(task.id, sprint.id)

        async def remove_elsewhere():
            await db.execute(
                update(ItemSprintHistory)
                .where(ItemSprintHistory.id == record.id)
                .values(removed_at=utcnow())
                .execution_options(synchronize_session=False)
            )

        ledger = LedgerService(db, redis=_RecordingRedis(on_acquire=remove_elsewhere))

        assert await ledger.update_association_status(record.id, TaskBoardStatus.done) is None
        assert record.status == TaskBoardStatus.to_do
