"""Deadline reminders for ZenPlaner.

ReminderScheduler derives the fire time (deadline minus offset) and hands
it to a delivery collaborator. Delivery is fire-and-forget: failures are
logged and never reach the task operation that asked for them.

ReminderQueue is the bundled delivery: a JSON file of pending reminders
keyed by task id, read by whatever actually notifies the user.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Protocol

from core.fileio import read_json, write_json_atomic
from core.models import ReminderOffset, Task
from core.workspace import Settings, now_local, reminders_path, workspace_root

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Zen Planer"


class ReminderDelivery(Protocol):
    def schedule(self, task_id: str, fire_at: datetime, title: str, body: str) -> None:
        """Schedule or replace the reminder for task_id."""
        ...

    def cancel(self, task_id: str) -> None:
        ...

    def cancel_all(self) -> None:
        ...


class NotificationPermission(Protocol):
    def request_notification_permission(self) -> bool:
        ...


def fire_time(deadline: datetime, offset: ReminderOffset) -> datetime:
    return deadline - timedelta(seconds=offset.seconds)


# ── Scheduler ─────────────────────────────────────────────────


class ReminderScheduler:
    """Turns task deadlines into delivery calls."""

    def __init__(
        self,
        delivery: ReminderDelivery | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.delivery = delivery if delivery is not None else NullReminders()
        self._clock = clock or now_local

    def schedule_for(self, task: Task) -> datetime | None:
        """Schedule the task's reminder; returns the fire time or None if skipped."""
        if task.deadline is None or task.reminder_offset is None:
            return None
        fire_at = fire_time(task.deadline, task.reminder_offset)
        if fire_at <= self._clock():
            logger.debug("Reminder for %s at %s is in the past, skipping", task.id, fire_at.isoformat())
            return None
        try:
            self.delivery.schedule(task.id, fire_at, REMINDER_TITLE, task.text)
        except Exception:
            logger.warning("Scheduling reminder for %s failed", task.id, exc_info=True)
            return None
        return fire_at

    def cancel_for(self, task: Task) -> None:
        try:
            self.delivery.cancel(task.id)
        except Exception:
            logger.warning("Cancelling reminder for %s failed", task.id, exc_info=True)

    def cancel_all(self) -> None:
        try:
            self.delivery.cancel_all()
        except Exception:
            logger.warning("Cancelling all reminders failed", exc_info=True)


# ── Deliveries ────────────────────────────────────────────────


class NullReminders:
    def schedule(self, task_id: str, fire_at: datetime, title: str, body: str) -> None:
        pass

    def cancel(self, task_id: str) -> None:
        pass

    def cancel_all(self) -> None:
        pass


class ReminderQueue:
    """Pending reminders in planner/reminders.json, one entry per task id."""

    def __init__(self, root: Path | None = None) -> None:
        self.path = reminders_path(root if root is not None else workspace_root())

    def _load(self) -> dict[str, Any]:
        return read_json(self.path).get("pending") or {}

    def _save(self, pending: dict[str, Any]) -> None:
        write_json_atomic(self.path, {"pending": pending})

    def schedule(self, task_id: str, fire_at: datetime, title: str, body: str) -> None:
        pending = self._load()
        pending[task_id] = {"fireAt": fire_at.isoformat(), "title": title, "body": body}
        self._save(pending)

    def cancel(self, task_id: str) -> None:
        pending = self._load()
        if pending.pop(task_id, None) is not None:
            self._save(pending)

    def cancel_all(self) -> None:
        self._save({})

    def pending(self) -> dict[str, dict[str, Any]]:
        return self._load()

    def pop_due(self, now: datetime) -> list[dict[str, Any]]:
        """Remove and return reminders whose fire time has passed."""
        pending = self._load()
        due = []
        dropped = False
        for task_id, entry in list(pending.items()):
            try:
                fire_at = datetime.fromisoformat(entry["fireAt"])
            except (KeyError, TypeError, ValueError):
                logger.warning("Dropping malformed reminder entry for %s", task_id)
                pending.pop(task_id)
                dropped = True
                continue
            if fire_at <= now:
                due.append({"taskId": task_id, **pending.pop(task_id)})
        if due or dropped:
            self._save(pending)
        due.sort(key=lambda e: e["fireAt"])
        return due


# ── Permission ────────────────────────────────────────────────


class SettingsPermission:
    """Answers the permission question from the notifications preference."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def request_notification_permission(self) -> bool:
        return self.settings.notifications_enabled
