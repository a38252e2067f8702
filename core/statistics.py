"""Statistics engine for ZenPlaner.

Aggregates tasks and reflections into per-day statistics (week view,
month heatmap), mood history, the task streak, and the JSON / Markdown
exports.

A day's counts come from its reflection when one exists and are
computed live from the day's tasks otherwise; mood is only known for
reflected days. Reads degrade to empty results when storage fails.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Callable

from core.dates import (
    WEEKDAY_SHORT,
    count_streak,
    day_key,
    days_ago,
    days_of_month,
    days_of_week,
    end_of_day,
    format_day_long,
    format_month_year,
    same_day,
    start_of_day,
    weekday_index,
)
from core.errors import PersistenceFailure
from core.models import DailyReflection, DayStatistic, Heatmap, Mood, StatisticsSummary, Task
from core.storage import Store
from core.workspace import Settings, now_local

logger = logging.getLogger(__name__)

EXPORT_TITLE = "# Zen Planer Export"


def _iso_utc(value: datetime | None) -> str | None:
    """ISO-8601 in UTC with a Z suffix, e.g. 2025-02-07T23:00:00Z."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class StatisticsEngine:
    def __init__(
        self,
        store: Store,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock or (lambda: now_local(self.settings))

    def now(self) -> datetime:
        return self._clock()

    # ── Reads ─────────────────────────────────────────────────

    def _tasks(self, where=None, reverse: bool = False) -> list[Task]:
        try:
            return self.store.fetch_tasks(where=where, order_by=lambda t: t.date, reverse=reverse)
        except PersistenceFailure as e:
            logger.warning("Reading tasks failed: %s", e)
            return []

    def _reflections(self, where=None, reverse: bool = False) -> list[DailyReflection]:
        try:
            return self.store.fetch_reflections(where=where, order_by=lambda r: r.date, reverse=reverse)
        except PersistenceFailure as e:
            logger.warning("Reading reflections failed: %s", e)
            return []

    def _day_statistics(self, days: list[datetime]) -> list[DayStatistic]:
        if not days:
            return []
        start, end = days[0], end_of_day(days[-1])
        tz = days[0].tzinfo

        def in_range(record) -> bool:
            return record.date is not None and start <= record.date <= end

        tasks_by_day: dict[date, list[Task]] = defaultdict(list)
        for t in self._tasks(where=in_range):
            tasks_by_day[day_key(t.date, tz)].append(t)
        reflection_by_day: dict[date, DailyReflection] = {}
        for r in self._reflections(where=in_range):
            reflection_by_day.setdefault(day_key(r.date, tz), r)

        out = []
        for day in days:
            reflection = reflection_by_day.get(day.date())
            tasks = tasks_by_day.get(day.date(), [])
            if reflection is not None:
                out.append(DayStatistic(
                    date=day,
                    completed_count=reflection.completed_count,
                    total_count=reflection.total_count,
                    mood=reflection.mood,
                ))
            else:
                out.append(DayStatistic(
                    date=day,
                    completed_count=sum(1 for t in tasks if t.is_completed),
                    total_count=len(tasks),
                ))
        return out

    def week_statistics(self, day: datetime | None = None) -> list[DayStatistic]:
        return self._day_statistics(days_of_week(day or self.now()))

    def month_statistics(self, day: datetime | None = None) -> list[DayStatistic]:
        return self._day_statistics(days_of_month(day or self.now()))

    def heatmap(self, day: datetime | None = None) -> Heatmap:
        """Month grid: blank cells before the 1st, then one cell per day."""
        stats = self.month_statistics(day)
        return Heatmap(
            month_label=format_month_year(start_of_day(day or self.now())),
            weekday_labels=list(WEEKDAY_SHORT),
            leading_empty_days=weekday_index(stats[0].date) - 1 if stats else 0,
            days=stats,
        )

    def mood_history(self, days: int = 30) -> list[tuple[datetime, Mood]]:
        """(date, mood) pairs of the last *days* days, oldest first."""
        start = days_ago(days, self.now())
        reflections = self._reflections(where=lambda r: r.date is not None and r.date >= start)
        return [(r.date, r.mood) for r in reflections]

    def current_streak(self) -> int:
        """Consecutive days with at least one task, ending today or yesterday."""
        now = self.now()
        active = {day_key(t.date, now.tzinfo) for t in self._tasks() if t.date is not None}
        return count_streak(active, now)

    def summary(self, day: datetime | None = None) -> StatisticsSummary:
        """Week completion rate, 30-day mood average and both streaks."""
        now = self.now()
        week = self.week_statistics(day)
        done = sum(s.completed_count for s in week)
        total = sum(s.total_count for s in week)
        moods = self.mood_history(30)

        active = {day_key(t.date, now.tzinfo) for t in self._tasks() if t.date is not None}
        reflected = {day_key(r.date, now.tzinfo) for r in self._reflections() if r.date is not None}
        return StatisticsSummary(
            week_completion_rate=done / total if total else 0.0,
            average_mood_score=sum(m.score for _, m in moods) / len(moods) if moods else None,
            task_streak=count_streak(active, now),
            reflection_streak=count_streak(reflected, now),
            days_tracked=len(active | reflected),
        )

    # ── Export ────────────────────────────────────────────────

    def export_as_json(self) -> str:
        """Tasks (newest day first) followed by reflections (newest first)."""
        entries: list[dict] = []
        for task in self._tasks(reverse=True):
            entries.append({
                "type": "task",
                "text": task.text,
                "priority": task.priority.value,
                "isCompleted": task.is_completed,
                "date": _iso_utc(task.date),
                "createdAt": _iso_utc(task.created_at),
            })
        for ref in self._reflections(reverse=True):
            entry = {
                "type": "reflection",
                "date": _iso_utc(ref.date),
                "completedCount": ref.completed_count,
                "totalCount": ref.total_count,
                "mood": ref.mood.value,
            }
            if ref.went_well is not None:
                entry["wentWell"] = ref.went_well
            if ref.shift_consciously is not None:
                entry["shiftConsciously"] = ref.shift_consciously
            entries.append(entry)
        return json.dumps(entries, indent=2, ensure_ascii=False)

    def export_as_markdown(self) -> str:
        """One section per task day, newest first, with that day's reflection."""
        tz = self.now().tzinfo
        tasks_by_day: dict[datetime, list[Task]] = defaultdict(list)
        for task in self._tasks(reverse=True):
            if task.date is None:
                continue
            local = task.date.astimezone(tz) if tz is not None and task.date.tzinfo else task.date
            tasks_by_day[start_of_day(local)].append(task)
        reflections = self._reflections(reverse=True)

        lines = [EXPORT_TITLE, ""]
        for day in sorted(tasks_by_day, reverse=True):
            lines += [f"## {format_day_long(day)}", ""]
            for task in sorted(tasks_by_day[day], key=lambda t: t.sort_order):
                check = "[x]" if task.is_completed else "[ ]"
                lines.append(f"- {check} {task.text} ({task.priority.display_name})")

            reflection = next((r for r in reflections if r.date and same_day(day, r.date)), None)
            if reflection is not None:
                lines.append("")
                lines.append(f"**Stimmung:** {reflection.mood.emoji} {reflection.mood.display_name}")
                lines.append(f"**Erledigt:** {reflection.completed_count}/{reflection.total_count}")
                if reflection.went_well:
                    lines.append(f"**Was lief gut:** {reflection.went_well}")
                if reflection.shift_consciously:
                    lines.append(f"**Bewusst verschoben:** {reflection.shift_consciously}")
            lines += ["", "---", ""]
        return "\n".join(lines) + "\n"

    # ── Wipe ──────────────────────────────────────────────────

    def delete_all_data(self) -> bool:
        """Remove every task and reflection. Reminders are the caller's job."""
        try:
            self.store.clear()
        except PersistenceFailure as e:
            logger.warning("Deleting all data failed: %s", e)
            return False
        logger.info("All tasks and reflections deleted")
        return True
