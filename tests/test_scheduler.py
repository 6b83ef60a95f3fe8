"""Tests for the monitoring task scheduler."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from shopzap.errors import InvalidInputError, PersistenceError, TaskNotFoundError
from shopzap.models import MonitoringTask
from shopzap.worker.scheduler import MonitorScheduler, build_trigger, crontab_weekdays
from tests.fakes import MemoryStore

URL = "https://www.amazon.in/dp/X"
SATURDAY = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
SUNDAY = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
MONDAY = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_task(task_id="t1", schedule="*/5 * * * *", selector=None):
    return MonitoringTask(task_id=task_id, url=URL, schedule=schedule, selector=selector)


@pytest.fixture
def run_task():
    return AsyncMock()


@pytest.fixture
def scheduler(run_task, store):
    return MonitorScheduler(run_task, store, timezone="UTC")


class TestBuildTrigger:
    """Test schedule expression parsing."""

    def test_five_field_crontab(self):
        trigger = build_trigger("*/5 * * * *", "UTC")
        fields = {field.name: str(field) for field in trigger.fields}
        assert fields["minute"] == "*/5"
        assert fields["second"] == "0"

    def test_six_field_with_seconds(self):
        trigger = build_trigger("*/30 * * * * *", "UTC")
        fields = {field.name: str(field) for field in trigger.fields}
        assert fields["second"] == "*/30"

    @pytest.mark.parametrize(
        "expression,now,expected",
        [
            ("0 9 * * 1", SUNDAY, date(2026, 10, 19)),
            ("0 9 * * 0", MONDAY, date(2026, 10, 25)),
            ("0 9 * * 7", MONDAY, date(2026, 10, 25)),
            ("0 9 * * 1-5", SATURDAY, date(2026, 10, 19)),
            ("0 9 * * 0-2", SATURDAY, date(2026, 10, 18)),
            ("0 9 * * 6,7", MONDAY, date(2026, 10, 24)),
            ("0 9 * * */2", MONDAY, date(2026, 10, 20)),
            ("0 0 9 * * 5", MONDAY, date(2026, 10, 23)),
            ("0 9 * * sun", MONDAY, date(2026, 10, 25)),
        ],
    )
    def test_weekdays_use_crontab_numbering(self, expression, now, expected):
        fire_time = build_trigger(expression, "UTC").get_next_fire_time(None, now)

        assert fire_time.date() == expected
        assert fire_time.hour == 9

    def test_weekday_lists_are_rewritten(self):
        assert crontab_weekdays("0,7") == "sun"
        assert crontab_weekdays("1-3") == "mon,tue,wed"
        assert crontab_weekdays("*") == "*"
        assert crontab_weekdays("mon-fri") == "mon-fri"

    @pytest.mark.parametrize("expression", ["0 9 * * 8", "0 9 * * 5-2", "0 9 * * 1/0"])
    def test_invalid_weekdays(self, expression):
        with pytest.raises(InvalidInputError):
            build_trigger(expression, "UTC")

    @pytest.mark.parametrize("expression", ["", "not a cron", "99 * * * *", "* * * * * * *", None])
    def test_invalid_expressions(self, expression):
        with pytest.raises(InvalidInputError, match="Invalid cron frequency format"):
            build_trigger(expression, "UTC")


class TestRegister:
    """Test trigger registration."""

    def test_duplicate_register_creates_one_job(self, scheduler):
        task = make_task()

        assert scheduler.register(task) is True
        assert scheduler.register(task) is False

        assert len(scheduler.scheduler.get_jobs()) == 1
        assert scheduler.active_count == 1

    def test_restore_is_idempotent(self, scheduler):
        tasks = [make_task("a"), make_task("b")]

        assert scheduler.restore_all(tasks) == 2
        assert scheduler.restore_all(tasks) == 0

        assert sorted(job.id for job in scheduler.scheduler.get_jobs()) == ["a", "b"]

    def test_restore_skips_invalid_schedules(self, scheduler):
        created = scheduler.restore_all([make_task("good"), make_task("bad", schedule="every minute")])

        assert created == 1
        assert scheduler.is_active("good")
        assert not scheduler.is_active("bad")


class TestAddAndCancel:
    """Test the persisted task lifecycle."""

    @pytest.mark.asyncio
    async def test_add_persists_task(self, scheduler, store):
        await scheduler.add_task(make_task(selector="#price"))

        assert store.task_saves == 1
        assert store.tasks[0].task_id == "t1"
        assert store.tasks[0].selector == "#price"
        assert scheduler.is_active("t1")

    @pytest.mark.asyncio
    async def test_invalid_schedule_changes_nothing(self, scheduler, store):
        with pytest.raises(InvalidInputError):
            await scheduler.add_task(make_task(schedule="tomorrow"))

        assert store.task_saves == 0
        assert scheduler.list_tasks() == []
        assert scheduler.scheduler.get_jobs() == []

    @pytest.mark.asyncio
    async def test_cancel_unknown_changes_nothing(self, scheduler, store):
        await scheduler.add_task(make_task())

        with pytest.raises(TaskNotFoundError):
            await scheduler.cancel("missing")

        assert store.task_saves == 1
        assert scheduler.is_active("t1")

    @pytest.mark.asyncio
    async def test_cancel_removes_job_and_definition(self, scheduler, store):
        await scheduler.add_task(make_task())

        cancelled = await scheduler.cancel("t1")

        assert cancelled.task_id == "t1"
        assert scheduler.list_tasks() == []
        assert scheduler.scheduler.get_jobs() == []
        assert store.tasks == []
        with pytest.raises(TaskNotFoundError):
            await scheduler.cancel("t1")

    @pytest.mark.asyncio
    async def test_save_failure_leaves_task_live(self, scheduler, store):
        store.fail_writes = True

        with pytest.raises(PersistenceError):
            await scheduler.add_task(make_task())

        assert scheduler.is_active("t1")

    @pytest.mark.asyncio
    async def test_restart_restores_persisted_tasks(self, run_task, store):
        first = MonitorScheduler(run_task, store, timezone="UTC")
        await first.add_task(make_task("a"))
        await first.add_task(make_task("b", schedule="0 */2 * * * *"))
        await first.cancel("a")

        restarted = MonitorScheduler(run_task, MemoryStore(tasks=store.tasks), timezone="UTC")
        restored = restarted.restore_all(await restarted.store.load_tasks())

        assert restored == 1
        assert [task.task_id for task in restarted.list_tasks()] == ["b"]
        assert restarted.get_task("b").schedule == "0 */2 * * * *"


class TestFire:
    """Test what happens when a trigger fires."""

    @pytest.mark.asyncio
    async def test_fire_runs_task(self, scheduler, run_task):
        task = make_task()
        scheduler.register(task)

        await scheduler._fire("t1")

        run_task.assert_awaited_once_with(task)

    @pytest.mark.asyncio
    async def test_failed_run_keeps_schedule(self, scheduler, run_task):
        run_task.side_effect = RuntimeError("browser crashed")
        scheduler.register(make_task())

        await scheduler._fire("t1")
        await scheduler._fire("t1")

        assert run_task.await_count == 2
        assert scheduler.is_active("t1")

    @pytest.mark.asyncio
    async def test_fire_after_cancel_is_noop(self, scheduler, run_task):
        await scheduler.add_task(make_task())
        await scheduler.cancel("t1")

        await scheduler._fire("t1")

        run_task.assert_not_awaited()
