"""Task store: the five-per-day cap, ordering, completion, rollover and repeats."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from core.dates import days_ago, end_of_day, same_day, start_of_day, tomorrow
from core.errors import CapacityExceeded, NotFound, PersistenceFailure
from core.hooks import NullSignals, Signals
from core.models import Priority, ReminderOffset, Task
from core.reminders import ReminderScheduler
from core.storage import Store
from core.workspace import Settings, now_local

logger = logging.getLogger(__name__)

MAX_TASKS_PER_DAY = 5


def anchor_deadline(deadline: datetime | None, day: datetime) -> datetime | None:
    """Keep a deadline inside its task's bucket day.

    A deadline on another calendar day keeps its wall-clock time but is
    moved onto *day*. Naive deadlines are read in *day*'s timezone.
    """
    if deadline is None:
        return None
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=day.tzinfo)
    elif day.tzinfo is not None:
        deadline = deadline.astimezone(day.tzinfo)
    if same_day(deadline, day):
        return deadline
    return start_of_day(day) + timedelta(
        hours=deadline.hour, minutes=deadline.minute, seconds=deadline.second
    )


def _context(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "text": task.text,
        "priority": task.priority.value,
        "date": task.date.date().isoformat() if task.date else None,
        "isCompleted": task.is_completed,
    }


class TaskStore:
    """Per-day task partitions on top of a Store."""

    def __init__(
        self,
        store: Store,
        settings: Settings | None = None,
        reminders: ReminderScheduler | None = None,
        signals: Signals | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock or (lambda: now_local(self.settings))
        self.reminders = reminders or ReminderScheduler(clock=self._clock)
        self.signals = signals or NullSignals()

    def now(self) -> datetime:
        return self._clock()

    # ── Queries ───────────────────────────────────────────────

    def list_for_day(self, day: datetime | None = None) -> list[Task]:
        """Tasks bucketed to the day, ascending by sort order."""
        start = start_of_day(day or self.now())
        end = end_of_day(start)
        try:
            return self.store.fetch_tasks(
                where=lambda t: t.date is not None and start <= t.date <= end,
                order_by=lambda t: t.sort_order,
            )
        except PersistenceFailure as e:
            logger.warning("Listing tasks for %s failed: %s", start.date(), e)
            return []

    def can_add(self, day: datetime | None = None) -> bool:
        return len(self.list_for_day(day)) < MAX_TASKS_PER_DAY

    def require_capacity(self, day: datetime | None = None) -> None:
        """Raise CapacityExceeded when the day is already full."""
        day = start_of_day(day or self.now())
        if not self.can_add(day):
            raise CapacityExceeded(day.date().isoformat(), MAX_TASKS_PER_DAY)

    def get(self, task_id: str) -> Task:
        try:
            found = self.store.fetch_tasks(where=lambda t: t.id == task_id)
        except PersistenceFailure as e:
            logger.warning("Looking up task %s failed: %s", task_id, e)
            found = []
        if not found:
            raise NotFound("Task", task_id)
        return found[0]

    def completed_count(self, day: datetime | None = None) -> int:
        return sum(1 for t in self.list_for_day(day) if t.is_completed)

    def total_count(self, day: datetime | None = None) -> int:
        return len(self.list_for_day(day))

    def next_open_task(self, day: datetime | None = None) -> Task | None:
        """Most important open task of the day; ties go to the earlier sort order."""
        open_tasks = [t for t in self.list_for_day(day) if not t.is_completed]
        return min(open_tasks, key=lambda t: (t.priority.sort_value, t.sort_order), default=None)

    def archive(self, days: int = 30) -> list[tuple[datetime, list[Task]]]:
        """Past days (1..days ago) that have tasks, newest first."""
        today = self.now()
        out = []
        for n in range(1, days + 1):
            day = days_ago(n, today)
            tasks = self.list_for_day(day)
            if tasks:
                out.append((day, tasks))
        return out

    # ── Mutations ─────────────────────────────────────────────

    def _write(self, tasks: list[Task]) -> bool:
        """Persist existing tasks. Raises NotFound for stale references."""
        try:
            missing = self.store.update_tasks(tasks)
        except PersistenceFailure as e:
            logger.warning("Saving %d task(s) failed: %s", len(tasks), e)
            return False
        if missing:
            raise NotFound("Task", missing[0])
        return True

    def add(
        self,
        text: str,
        priority: Priority | str = Priority.MEDIUM,
        date: datetime | None = None,
        deadline: datetime | None = None,
        reminder_offset: ReminderOffset | str | None = None,
        repeating: bool = False,
    ) -> Task | None:
        """Create a task on the day; None if the day is full or the write failed."""
        day = start_of_day(date or self.now())
        existing = self.list_for_day(day)
        if len(existing) >= MAX_TASKS_PER_DAY:
            logger.info("Day %s is full, not adding %r", day.date(), text)
            return None

        task = Task(
            text=text,
            priority=priority,
            date=day,
            sort_order=max((t.sort_order for t in existing), default=-1) + 1,
            created_at=self.now(),
            deadline=anchor_deadline(deadline, day),
            reminder_offset=reminder_offset,
            is_repeating=repeating,
        )
        try:
            self.store.insert_task(task)
        except PersistenceFailure as e:
            logger.warning("Adding task %r failed: %s", task.text, e)
            return None

        self.reminders.schedule_for(task)
        self.signals.emit("on_task_add", _context(task))
        return task

    def toggle_completion(self, task: Task) -> Task:
        if task.is_completed:
            task.mark_incomplete()
        else:
            task.mark_completed(self.now())
        if not self._write([task]):
            return task

        if task.is_completed:
            self.reminders.cancel_for(task)
            self.signals.emit("on_task_complete", _context(task))
        else:
            self.reminders.schedule_for(task)
        return task

    def update(
        self,
        task: Task,
        text: str,
        priority: Priority | str,
        deadline: datetime | None = None,
        reminder_offset: ReminderOffset | str | None = None,
        repeating: bool = False,
    ) -> Task:
        """Edit a task; the reminder is rebuilt only if deadline or offset changed."""
        offset = ReminderOffset(reminder_offset) if reminder_offset is not None else None
        if task.date is not None:
            deadline = anchor_deadline(deadline, task.date)
        reminder_changed = task.deadline != deadline or task.reminder_offset != offset

        task.text = text
        task.priority = priority
        task.is_repeating = repeating
        task.deadline = deadline
        task.reminder_offset = offset
        if not self._write([task]):
            return task

        if reminder_changed:
            self.reminders.cancel_for(task)
            self.reminders.schedule_for(task)
        return task

    def delete(self, task: Task) -> bool:
        try:
            removed = self.store.remove_task(task.id)
        except PersistenceFailure as e:
            logger.warning("Deleting task %s failed: %s", task.id, e)
            return False
        if not removed:
            raise NotFound("Task", task.id)
        self.reminders.cancel_for(task)
        self.signals.emit("on_task_delete", _context(task))
        return True

    def move_to_tomorrow(self, task: Task) -> bool:
        """Roll a task over to tomorrow as a clean open task; False if tomorrow is full."""
        target = tomorrow(self.now())
        target_tasks = self.list_for_day(target)
        if len(target_tasks) >= MAX_TASKS_PER_DAY:
            logger.info("Tomorrow (%s) is full, not moving %s", target.date(), task.id)
            return False

        self.reminders.cancel_for(task)
        task.date = target
        task.sort_order = max((t.sort_order for t in target_tasks), default=-1) + 1
        task.mark_incomplete()
        task.deadline = None
        task.reminder_offset = None
        task.is_repeating = False
        return self._write([task])

    def reorder(self, ordered_tasks: list[Task]) -> bool:
        """Sort order follows the position in *ordered_tasks*."""
        for index, task in enumerate(ordered_tasks):
            task.sort_order = index
        if not ordered_tasks:
            return True
        return self._write(ordered_tasks)

    def propagate_repeating(
        self,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> list[Task]:
        """Copy repeating tasks forward a day (yesterday -> today by default).

        Tasks whose exact text already exists on the target day are skipped;
        once the target day is full the rest are dropped. Safe to run on
        every day-open.
        """
        to_day = start_of_day(to_date or self.now())
        from_day = start_of_day(from_date) if from_date else days_ago(1, to_day)
        existing_texts = {t.text for t in self.list_for_day(to_day)}

        created = []
        for source in self.list_for_day(from_day):
            if not source.is_repeating or source.text in existing_texts:
                continue
            if not self.can_add(to_day):
                break
            task = self.add(source.text, source.priority, date=to_day, repeating=True)
            if task is None:
                break
            created.append(task)
        if created:
            logger.info("Carried %d repeating task(s) into %s", len(created), to_day.date())
        return created
