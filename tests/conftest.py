"""Shared test fixtures for ZenPlaner tests."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from core.models import Task
from core.planner import Planner
from core.storage import MemoryStore
from core.workspace import Settings


# Wednesday, mid-morning
NOW = datetime(2026, 2, 11, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move around."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingReminders:
    """Reminder delivery that remembers every call."""

    def __init__(self) -> None:
        self.scheduled: dict[str, datetime] = {}
        self.calls: list[tuple] = []

    def schedule(self, task_id: str, fire_at: datetime, title: str, body: str) -> None:
        self.calls.append(("schedule", task_id, fire_at, title, body))
        self.scheduled[task_id] = fire_at

    def cancel(self, task_id: str) -> None:
        self.calls.append(("cancel", task_id))
        self.scheduled.pop(task_id, None)

    def cancel_all(self) -> None:
        self.calls.append(("cancel_all",))
        self.scheduled.clear()


class RecordingSignals:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def emit(self, event: str, context: dict) -> None:
        self.events.append((event, context))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with standard structure."""
    root = tmp_path / "workspace"
    (root / "planner").mkdir(parents=True)

    settings = {
        "timezone": "UTC",
        "reflection_hour": 20,
        "quotes_enabled": True,
        "haptics_enabled": True,
        "notifications_enabled": True,
        "theme": "forest",
        "appearance": "system",
    }
    (root / "planner" / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    # Set env var
    os.environ["PLANNER_ROOT"] = str(root)
    yield root
    # Cleanup
    if "PLANNER_ROOT" in os.environ:
        del os.environ["PLANNER_ROOT"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def reminders() -> RecordingReminders:
    return RecordingReminders()


@pytest.fixture
def signals() -> RecordingSignals:
    return RecordingSignals()


@pytest.fixture
def planner(workspace, clock, reminders, signals) -> Planner:
    """Planner over the workspace files with recording collaborators."""
    return Planner.open(workspace, delivery=reminders, signals=signals, clock=clock)


@pytest.fixture
def memory_planner(tmp_path, clock, reminders, signals) -> Planner:
    """Planner over an in-process store."""
    return Planner.open(
        tmp_path,
        settings=Settings(),
        store=MemoryStore(),
        delivery=reminders,
        signals=signals,
        clock=clock,
    )


def day(offset: int = 0) -> datetime:
    """Start of the day *offset* days from NOW."""
    return datetime(2026, 2, 11, tzinfo=timezone.utc) + timedelta(days=offset)


def texts(tasks: list[Task]) -> list[str]:
    return [t.text for t in tasks]
