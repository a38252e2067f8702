"""Wiring: one Planner per workspace, holding the services and their collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Callable

from core.hooks import HookSignals, Signals
from core.models import DailyReflection, Mood, Task
from core.quotes import Quote, load_quotes, quote_of_the_day
from core.reflections import ReflectionService
from core.reminders import ReminderDelivery, ReminderQueue, ReminderScheduler
from core.statistics import StatisticsEngine
from core.storage import FileStore, Store
from core.tasks import TaskStore
from core.workspace import Settings, load_settings, now_local, workspace_root


@dataclass
class Planner:
    root: Path
    settings: Settings
    store: Store
    reminders: ReminderScheduler
    signals: Signals
    tasks: TaskStore
    reflections: ReflectionService
    statistics: StatisticsEngine

    @classmethod
    def open(
        cls,
        root: Path | None = None,
        *,
        settings: Settings | None = None,
        store: Store | None = None,
        delivery: ReminderDelivery | None = None,
        signals: Signals | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> Planner:
        """Build a planner for the workspace; any collaborator can be swapped in."""
        if root is None:
            root = workspace_root()
        if settings is None:
            settings = load_settings(root)
        if clock is None:
            clock = partial(now_local, settings)
        if store is None:
            store = FileStore(root)
        if signals is None:
            signals = HookSignals(root, enabled=settings.haptics_enabled)
        reminders = ReminderScheduler(delivery if delivery is not None else ReminderQueue(root), clock=clock)
        return cls(
            root=root,
            settings=settings,
            store=store,
            reminders=reminders,
            signals=signals,
            tasks=TaskStore(store, settings, reminders, signals, clock),
            reflections=ReflectionService(store, settings, signals, clock),
            statistics=StatisticsEngine(store, settings, clock),
        )

    def now(self) -> datetime:
        return self.tasks.now()

    def start_day(self) -> list[Task]:
        """Run on day-open: carry yesterday's repeating tasks into today."""
        return self.tasks.propagate_repeating()

    def reflect(
        self,
        mood: Mood | str,
        went_well: str | None = None,
        shift_consciously: str | None = None,
        date: datetime | None = None,
    ) -> DailyReflection | None:
        """Save the day's reflection with a snapshot of its task counts."""
        tasks = self.tasks.list_for_day(date)
        return self.reflections.save(
            completed_count=sum(1 for t in tasks if t.is_completed),
            total_count=len(tasks),
            mood=mood,
            went_well=went_well,
            shift_consciously=shift_consciously,
            date=date,
        )

    def wipe(self) -> bool:
        """Delete all data together with every pending reminder."""
        self.reminders.cancel_all()
        deleted = self.statistics.delete_all_data()
        if deleted:
            self.signals.emit("on_data_wiped", {"at": self.now().isoformat(timespec="seconds")})
        return deleted

    def quote(self) -> Quote | None:
        if not self.settings.quotes_enabled:
            return None
        return quote_of_the_day(self.now(), load_quotes(self.root))
