"""Error types raised by the ZenPlaner core."""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner errors."""


class CapacityExceeded(PlannerError):
    """The target day already holds the maximum number of tasks."""

    def __init__(self, day: str, limit: int) -> None:
        super().__init__(f"Day {day} already has {limit} tasks")
        self.day = day
        self.limit = limit


class NotFound(PlannerError):
    """A task or reflection reference no longer exists in storage."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class PersistenceFailure(PlannerError):
    """Reading or writing the workspace files failed."""
