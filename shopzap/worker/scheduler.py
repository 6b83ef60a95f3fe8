"""APScheduler-backed lifecycle of recurring monitoring tasks."""

import logging
from typing import Awaitable, Callable, Iterable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from shopzap import metrics
from shopzap.config import settings
from shopzap.errors import InvalidInputError, TaskNotFoundError
from shopzap.logging_config import get_logger
from shopzap.models import MonitoringTask

logger = logging.getLogger(__name__)

INVALID_SCHEDULE_MESSAGE = "Invalid cron frequency format."

# Crontab numbering: 0 and 7 are Sunday. APScheduler numbers from 0 = Monday.
CRON_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")


def _weekday_numbers(base: str, step: int) -> list[int]:
    if base == "*":
        return list(range(0, 7, step))
    first, _, last = base.partition("-")
    start = int(first)
    end = int(last) if last else (6 if step > 1 else start)
    if not 0 <= start <= end <= 7:
        raise ValueError(f"Invalid day of week: {base}")
    return list(range(start, end + 1, step))


def crontab_weekdays(field: str) -> str:
    """
    Rewrite numeric crontab weekdays as APScheduler day names.

    Handles single values, ranges, lists and steps, e.g. "1-5" -> "mon,tue,wed,thu,fri"
    and "0,7" -> "sun". Named days and a bare "*" pass through unchanged.
    """
    if field == "*":
        return field

    days: list[str] = []
    for part in field.split(","):
        base, _, step_text = part.partition("/")
        if not (base == "*" or base.replace("-", "").isdigit()):
            days.append(part)
            continue
        step = int(step_text) if step_text else 1
        if step < 1:
            raise ValueError(f"Invalid step: {part}")
        for number in _weekday_numbers(base, step):
            name = CRON_WEEKDAYS[number]
            if name not in days:
                days.append(name)
    return ",".join(days)


def build_trigger(expression: str, timezone: str | None = None) -> CronTrigger:
    """
    Build a cron trigger from a 5-field crontab or a 6-field (leading seconds) expression.

    Weekdays follow crontab numbering (0 or 7 = Sunday).

    Raises:
        InvalidInputError: Malformed expression
    """
    timezone = timezone or settings.scheduler_timezone
    parts = (expression or "").split()
    try:
        if len(parts) == 5:
            parts = ["0"] + parts
        if len(parts) == 6:
            second, minute, hour, day, month, day_of_week = parts
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=crontab_weekdays(day_of_week),
                timezone=timezone,
            )
    except (ValueError, TypeError) as e:
        raise InvalidInputError(INVALID_SCHEDULE_MESSAGE) from e
    raise InvalidInputError(INVALID_SCHEDULE_MESSAGE)


class MonitorScheduler:
    """
    Owns every monitoring task and its trigger.

    A task id maps to at most one live APScheduler job. Definitions are
    written through to the store on add and cancel; triggers are runtime only
    and are rebuilt with restore_all() at startup.
    """

    def __init__(
        self,
        run_task: Callable[[MonitoringTask], Awaitable[object]],
        store,
        timezone: str | None = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.run_task = run_task
        self.store = store
        self.timezone = timezone or settings.scheduler_timezone
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.timezone)
        self._tasks: dict[str, MonitoringTask] = {}
        self._jobs: dict[str, object] = {}

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info(f"Scheduler started with {len(self._jobs)} tasks")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def list_tasks(self) -> list[MonitoringTask]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> MonitoringTask:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def is_active(self, task_id: str) -> bool:
        return task_id in self._jobs

    @property
    def active_count(self) -> int:
        return len(self._jobs)

    def register(self, task: MonitoringTask) -> bool:
        """
        Create the trigger for a task.

        Returns:
            True if a trigger was created, False if one already existed

        Raises:
            InvalidInputError: Malformed schedule expression
        """
        if task.task_id in self._jobs:
            logger.info(f"Task {task.task_id} already scheduled.")
            return False

        trigger = build_trigger(task.schedule, self.timezone)
        job = self.scheduler.add_job(
            self._fire,
            trigger,
            args=[task.task_id],
            id=task.task_id,
            name=f"Monitor {task.url}",
            max_instances=1,  # Prevent overlapping fires of the same task
            coalesce=True,
            misfire_grace_time=settings.scheduler_misfire_grace_seconds,
            replace_existing=True,
        )
        self._tasks[task.task_id] = task
        self._jobs[task.task_id] = job
        metrics.scheduled_tasks.set(len(self._jobs))
        logger.info(f"Task {task.task_id} scheduled to run with frequency: {task.schedule}")
        return True

    async def add_task(self, task: MonitoringTask) -> MonitoringTask:
        """
        Validate, schedule and persist a new task.

        Raises:
            InvalidInputError: Malformed schedule (nothing is stored or scheduled)
            PersistenceError: The task is live but could not be saved
        """
        build_trigger(task.schedule, self.timezone)
        self.register(task)
        await self.store.save_tasks(self.list_tasks())
        return task

    async def cancel(self, task_id: str) -> MonitoringTask:
        """
        Stop a task's trigger and delete its definition.

        Raises:
            TaskNotFoundError: Unknown task id (no state is changed)
            PersistenceError: The removal could not be saved
        """
        task = self.get_task(task_id)

        self._jobs.pop(task_id, None)
        try:
            self.scheduler.remove_job(task_id)
        except JobLookupError:
            pass  # Already stopped
        del self._tasks[task_id]
        metrics.scheduled_tasks.set(len(self._jobs))
        logger.info(f"Stopped cron job for task {task_id}")

        await self.store.save_tasks(self.list_tasks())
        return task

    def restore_all(self, tasks: Iterable[MonitoringTask]) -> int:
        """Register persisted tasks at startup. Returns the number of triggers created."""
        created = 0
        for task in tasks:
            try:
                if self.register(task):
                    created += 1
            except InvalidInputError:
                logger.error(f"Skipping persisted task {task.task_id}: invalid schedule '{task.schedule}'")
        logger.info(f"Restored {created} scheduled tasks")
        return created

    async def _fire(self, task_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            # Cancelled after this fire was queued
            return

        task_logger = get_logger(__name__, task_id=task_id, url=task.url)
        task_logger.info(f"Running scheduled task {task_id} for URL: {task.url}")
        try:
            await self.run_task(task)
        except Exception as e:
            metrics.record_scheduled_run("failed")
            task_logger.error(f"Scheduled task {task_id} failed: {type(e).__name__}: {e}")
            return
        metrics.record_scheduled_run("success")
