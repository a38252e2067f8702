"""Typed dataclasses and enums for the ZenPlaner data model.

All records use from_dict/to_dict for JSON/YAML serialization.
camelCase in files is mapped to snake_case in Python; timestamps are
stored as ISO-8601 strings. Unknown keys are ignored; missing keys use
defaults.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


MAX_TASK_TEXT = 100
MAX_REFLECTION_TEXT = 200


def new_id() -> str:
    return str(uuid.uuid4())


def _parse_dt(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _clip(value: str | None, limit: int) -> str | None:
    return value[:limit] if isinstance(value, str) else value


# ── Enums ─────────────────────────────────────────────────────


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def display_name(self) -> str:
        return _PRIORITY_TABLE[self][0]

    @property
    def sort_value(self) -> int:
        """Lower value means more important."""
        return _PRIORITY_TABLE[self][1]


_PRIORITY_TABLE = {
    Priority.HIGH: ("Hoch", 0),
    Priority.MEDIUM: ("Mittel", 1),
    Priority.LOW: ("Niedrig", 2),
}


class ReminderOffset(str, Enum):
    AT_TIME = "atTime"
    FIVE_MIN = "fiveMin"
    FIFTEEN_MIN = "fifteenMin"
    THIRTY_MIN = "thirtyMin"
    ONE_HOUR = "oneHour"
    TWO_HOURS = "twoHours"

    @property
    def seconds(self) -> int:
        return _OFFSET_TABLE[self][0]

    @property
    def display_name(self) -> str:
        return _OFFSET_TABLE[self][1]


_OFFSET_TABLE = {
    ReminderOffset.AT_TIME: (0, "Zum Zeitpunkt"),
    ReminderOffset.FIVE_MIN: (300, "5 Min vorher"),
    ReminderOffset.FIFTEEN_MIN: (900, "15 Min vorher"),
    ReminderOffset.THIRTY_MIN: (1800, "30 Min vorher"),
    ReminderOffset.ONE_HOUR: (3600, "1 Std vorher"),
    ReminderOffset.TWO_HOURS: (7200, "2 Std vorher"),
}


class Mood(str, Enum):
    GREAT = "great"
    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"
    TERRIBLE = "terrible"

    @property
    def emoji(self) -> str:
        return _MOOD_TABLE[self][0]

    @property
    def display_name(self) -> str:
        return _MOOD_TABLE[self][1]

    @property
    def score(self) -> int:
        """5 = best mood, 1 = worst."""
        return _MOOD_TABLE[self][2]


_MOOD_TABLE = {
    Mood.GREAT: ("\U0001f60a", "Großartig", 5),
    Mood.GOOD: ("\U0001f60c", "Gut", 4),
    Mood.NEUTRAL: ("\U0001f610", "Neutral", 3),
    Mood.BAD: ("\U0001f614", "Schlecht", 2),
    Mood.TERRIBLE: ("\U0001f629", "Furchtbar", 1),
}


# ── Task ──────────────────────────────────────────────────────


@dataclass
class Task:
    text: str = ""
    priority: Priority = Priority.MEDIUM
    date: datetime | None = None  # bucket day start
    sort_order: int = 0
    id: str = field(default_factory=new_id)
    is_completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime | None = None
    deadline: datetime | None = None
    reminder_offset: ReminderOffset | None = None
    is_repeating: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "text":
            value = _clip(value, MAX_TASK_TEXT)
        elif name == "priority" and value is not None:
            value = Priority(value)
        elif name == "reminder_offset" and value is not None:
            value = ReminderOffset(value)
        super().__setattr__(name, value)

    def mark_completed(self, now: datetime) -> None:
        self.is_completed = True
        self.completed_at = now

    def mark_incomplete(self) -> None:
        self.is_completed = False
        self.completed_at = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        offset = d.get("reminderOffset")
        completed = bool(d.get("isCompleted", False))
        created_at = _parse_dt(d.get("createdAt"))
        completed_at = None
        if completed:
            completed_at = _parse_dt(d.get("completedAt")) or created_at or datetime.now(timezone.utc)
        return cls(
            id=str(d.get("id") or new_id()),
            text=str(d.get("text", "")),
            priority=Priority(d.get("priority", "medium")),
            date=_parse_dt(d.get("date")),
            sort_order=int(d.get("sortOrder", 0)),
            is_completed=completed,
            completed_at=completed_at,
            created_at=created_at,
            deadline=_parse_dt(d.get("deadline")),
            reminder_offset=ReminderOffset(offset) if offset else None,
            is_repeating=bool(d.get("isRepeating", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "priority": self.priority.value,
            "date": _iso(self.date),
            "sortOrder": self.sort_order,
            "isCompleted": self.is_completed,
            "createdAt": _iso(self.created_at),
        }
        if self.completed_at is not None:
            d["completedAt"] = _iso(self.completed_at)
        if self.deadline is not None:
            d["deadline"] = _iso(self.deadline)
        if self.reminder_offset is not None:
            d["reminderOffset"] = self.reminder_offset.value
        if self.is_repeating:
            d["isRepeating"] = True
        return d


# ── Reflection ────────────────────────────────────────────────


@dataclass
class DailyReflection:
    date: datetime | None = None  # bucket day start
    completed_count: int = 0
    total_count: int = 0
    mood: Mood = Mood.NEUTRAL
    went_well: str | None = None
    shift_consciously: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("went_well", "shift_consciously"):
            value = _clip(value, MAX_REFLECTION_TEXT)
        elif name == "mood":
            value = Mood(value)
        super().__setattr__(name, value)

    def completion_rate(self) -> float:
        if self.total_count <= 0:
            return 0.0
        return self.completed_count / self.total_count

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyReflection:
        return cls(
            id=str(d.get("id") or new_id()),
            date=_parse_dt(d.get("date")),
            completed_count=int(d.get("completedCount", 0)),
            total_count=int(d.get("totalCount", 0)),
            mood=Mood(d.get("mood", "neutral")),
            went_well=d.get("wentWell"),
            shift_consciously=d.get("shiftConsciously"),
            created_at=_parse_dt(d.get("createdAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "date": _iso(self.date),
            "completedCount": self.completed_count,
            "totalCount": self.total_count,
            "mood": self.mood.value,
            "createdAt": _iso(self.created_at),
        }
        if self.went_well is not None:
            d["wentWell"] = self.went_well
        if self.shift_consciously is not None:
            d["shiftConsciously"] = self.shift_consciously
        return d


# ── Statistics ────────────────────────────────────────────────


@dataclass
class DayStatistic:
    date: datetime
    completed_count: int = 0
    total_count: int = 0
    mood: Mood | None = None

    def completion_rate(self) -> float:
        if self.total_count <= 0:
            return 0.0
        return self.completed_count / self.total_count

    def heat(self) -> float | None:
        """Heatmap intensity; None for days without tasks."""
        if self.total_count <= 0:
            return None
        return 0.1 + self.completion_rate() * 0.6

    def to_dict(self) -> dict[str, Any]:
        heat = self.heat()
        return {
            "date": self.date.date().isoformat(),
            "completedCount": self.completed_count,
            "totalCount": self.total_count,
            "completionRate": round(self.completion_rate(), 3),
            "mood": self.mood.value if self.mood else None,
            "heat": round(heat, 3) if heat is not None else None,
        }


@dataclass
class Heatmap:
    month_label: str = ""
    weekday_labels: list[str] = field(default_factory=list)
    leading_empty_days: int = 0
    days: list[DayStatistic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthLabel": self.month_label,
            "weekdayLabels": self.weekday_labels,
            "leadingEmptyDays": self.leading_empty_days,
            "days": [d.to_dict() for d in self.days],
        }


@dataclass
class StatisticsSummary:
    week_completion_rate: float = 0.0
    average_mood_score: float | None = None
    task_streak: int = 0
    reflection_streak: int = 0
    days_tracked: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekCompletionRate": round(self.week_completion_rate, 3),
            "averageMoodScore": round(self.average_mood_score, 2) if self.average_mood_score is not None else None,
            "taskStreak": self.task_streak,
            "reflectionStreak": self.reflection_streak,
            "daysTracked": self.days_tracked,
        }
