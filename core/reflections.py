"""End-of-day reflections: one per day, replace-on-save, and the reflection streak."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from core.dates import count_streak, day_key, days_ago, end_of_day, is_after_time, start_of_day
from core.errors import NotFound, PersistenceFailure
from core.hooks import NullSignals, Signals
from core.models import DailyReflection, Mood
from core.storage import Store
from core.workspace import Settings, now_local

logger = logging.getLogger(__name__)


class ReflectionService:
    def __init__(
        self,
        store: Store,
        settings: Settings | None = None,
        signals: Signals | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock or (lambda: now_local(self.settings))
        self.signals = signals or NullSignals()

    def now(self) -> datetime:
        return self._clock()

    def _fetch(self, where=None, reverse: bool = False) -> list[DailyReflection]:
        try:
            return self.store.fetch_reflections(
                where=where, order_by=lambda r: r.date, reverse=reverse
            )
        except PersistenceFailure as e:
            logger.warning("Reading reflections failed: %s", e)
            return []

    # ── Queries ───────────────────────────────────────────────

    def get(self, day: datetime | None = None) -> DailyReflection | None:
        start = start_of_day(day or self.now())
        end = end_of_day(start)
        found = self._fetch(where=lambda r: r.date is not None and start <= r.date <= end)
        return found[0] if found else None

    def is_today_complete(self) -> bool:
        return self.get(self.now()) is not None

    def should_prompt(self, reflection_hour: int | None = None) -> bool:
        """True once the reflection hour has passed and today is still unreflected."""
        if self.is_today_complete():
            return False
        hour = self.settings.reflection_hour if reflection_hour is None else reflection_hour
        return is_after_time(hour, now=self.now())

    def list_recent(self, days: int) -> list[DailyReflection]:
        """Reflections from the last *days* days, newest first."""
        start = days_ago(days, self.now())
        return self._fetch(where=lambda r: r.date is not None and r.date >= start, reverse=True)

    def current_streak(self) -> int:
        """Consecutive reflected days ending today, or yesterday if today is still open."""
        now = self.now()
        reflected = {day_key(r.date, now.tzinfo) for r in self._fetch() if r.date is not None}
        return count_streak(reflected, now)

    # ── Mutations ─────────────────────────────────────────────

    def save(
        self,
        completed_count: int,
        total_count: int,
        mood: Mood | str = Mood.NEUTRAL,
        went_well: str | None = None,
        shift_consciously: str | None = None,
        date: datetime | None = None,
    ) -> DailyReflection | None:
        """Store the day's reflection, replacing any earlier one for that day."""
        day = start_of_day(date or self.now())
        reflection = DailyReflection(
            date=day,
            completed_count=completed_count,
            total_count=total_count,
            mood=mood,
            went_well=went_well,
            shift_consciously=shift_consciously,
            created_at=self.now(),
        )
        try:
            self.store.replace_reflection(day, reflection)
        except PersistenceFailure as e:
            logger.warning("Saving reflection for %s failed: %s", day.date(), e)
            return None

        self.signals.emit("on_reflection_saved", {
            "date": day.date().isoformat(),
            "mood": reflection.mood.value,
            "completedCount": completed_count,
            "totalCount": total_count,
        })
        return reflection

    def delete(self, reflection: DailyReflection) -> bool:
        try:
            removed = self.store.remove_reflection(reflection.id)
        except PersistenceFailure as e:
            logger.warning("Deleting reflection %s failed: %s", reflection.id, e)
            return False
        if not removed:
            raise NotFound("Reflection", reflection.id)
        return True
