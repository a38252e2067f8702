"""Persistence for tasks and reflections.

Services talk to a Store: filter + sort queries and whole-record writes.
FileStore keeps planner/tasks.yaml and planner/reflections.json in the
workspace; MemoryStore keeps everything in-process.

Records handed out are copies. A change only reaches storage through an
explicit insert/update call.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Protocol, TypeVar

from core.dates import end_of_day
from core.errors import PersistenceFailure
from core.fileio import read_json, read_yaml, write_json_atomic, write_yaml_atomic
from core.models import DailyReflection, Task
from core.workspace import reflections_path, tasks_path, workspace_root

T = TypeVar("T", Task, DailyReflection)

Where = Callable[[Any], bool]
OrderBy = Callable[[Any], Any]


class Store(Protocol):
    def fetch_tasks(self, where: Where | None = None, order_by: OrderBy | None = None, reverse: bool = False) -> list[Task]:
        ...

    def insert_task(self, task: Task) -> None:
        ...

    def update_tasks(self, tasks: list[Task]) -> list[str]:
        """Write back existing tasks; returns the ids that were not found.

        Nothing is written unless every id is found.
        """
        ...

    def remove_task(self, task_id: str) -> bool:
        ...

    def fetch_reflections(
        self, where: Where | None = None, order_by: OrderBy | None = None, reverse: bool = False
    ) -> list[DailyReflection]:
        ...

    def insert_reflection(self, reflection: DailyReflection) -> None:
        ...

    def replace_reflection(self, day_start: datetime, reflection: DailyReflection) -> None:
        """Drop the reflections of that day and store *reflection*, in one write."""
        ...

    def remove_reflection(self, reflection_id: str) -> bool:
        ...

    def clear(self) -> None:
        ...


def _select(records: list[T], where: Where | None, order_by: OrderBy | None, reverse: bool) -> list[T]:
    out = [replace(r) for r in records if where is None or where(r)]
    if order_by is not None:
        out.sort(key=order_by, reverse=reverse)
    return out


def _merge(records: list[T], updates: list[T]) -> tuple[list[T], list[str]]:
    """Replace records by id; returns (merged, missing_ids)."""
    by_id = {u.id: u for u in updates}
    merged = []
    for r in records:
        if r.id in by_id:
            merged.append(replace(by_id.pop(r.id)))
        else:
            merged.append(r)
    return merged, list(by_id)


def _outside_day(day_start: datetime) -> Where:
    end = end_of_day(day_start)
    return lambda r: r.date is None or not day_start <= r.date <= end


# ── In-memory ─────────────────────────────────────────────────


class MemoryStore:
    """Process-local store; insertion order is the iteration order."""

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self._reflections: list[DailyReflection] = []

    def fetch_tasks(self, where=None, order_by=None, reverse=False) -> list[Task]:
        return _select(self._tasks, where, order_by, reverse)

    def insert_task(self, task: Task) -> None:
        self._tasks.append(replace(task))

    def update_tasks(self, tasks: list[Task]) -> list[str]:
        merged, missing = _merge(self._tasks, tasks)
        if not missing:
            self._tasks = merged
        return missing

    def remove_task(self, task_id: str) -> bool:
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        return len(self._tasks) != before

    def fetch_reflections(self, where=None, order_by=None, reverse=False) -> list[DailyReflection]:
        return _select(self._reflections, where, order_by, reverse)

    def insert_reflection(self, reflection: DailyReflection) -> None:
        self._reflections.append(replace(reflection))

    def replace_reflection(self, day_start: datetime, reflection: DailyReflection) -> None:
        keep = _outside_day(day_start)
        self._reflections = [r for r in self._reflections if keep(r)] + [replace(reflection)]

    def remove_reflection(self, reflection_id: str) -> bool:
        before = len(self._reflections)
        self._reflections = [r for r in self._reflections if r.id != reflection_id]
        return len(self._reflections) != before

    def clear(self) -> None:
        self._tasks = []
        self._reflections = []


# ── Workspace files ───────────────────────────────────────────


class FileStore:
    """Store backed by the workspace's planner/ directory.

    Each call reads the file fresh and each write replaces it atomically,
    so a returned call means the change is on disk.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = root if root is not None else workspace_root()

    # tasks.yaml

    def _load_tasks(self) -> list[Task]:
        data = read_yaml(tasks_path(self.root))
        try:
            return [Task.from_dict(t) for t in (data.get("tasks") or [])]
        except (TypeError, ValueError, AttributeError) as e:
            raise PersistenceFailure(f"Invalid task record: {e}") from e

    def _save_tasks(self, tasks: list[Task]) -> None:
        write_yaml_atomic(tasks_path(self.root), {"tasks": [t.to_dict() for t in tasks]})

    def fetch_tasks(self, where=None, order_by=None, reverse=False) -> list[Task]:
        return _select(self._load_tasks(), where, order_by, reverse)

    def insert_task(self, task: Task) -> None:
        tasks = self._load_tasks()
        tasks.append(task)
        self._save_tasks(tasks)

    def update_tasks(self, tasks: list[Task]) -> list[str]:
        merged, missing = _merge(self._load_tasks(), tasks)
        if not missing:
            self._save_tasks(merged)
        return missing

    def remove_task(self, task_id: str) -> bool:
        tasks = self._load_tasks()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            return False
        self._save_tasks(remaining)
        return True

    # reflections.json

    def _load_reflections(self) -> list[DailyReflection]:
        data = read_json(reflections_path(self.root))
        try:
            return [DailyReflection.from_dict(r) for r in (data.get("reflections") or [])]
        except (TypeError, ValueError, AttributeError) as e:
            raise PersistenceFailure(f"Invalid reflection record: {e}") from e

    def _save_reflections(self, reflections: list[DailyReflection]) -> None:
        write_json_atomic(reflections_path(self.root), {"reflections": [r.to_dict() for r in reflections]})

    def fetch_reflections(self, where=None, order_by=None, reverse=False) -> list[DailyReflection]:
        return _select(self._load_reflections(), where, order_by, reverse)

    def insert_reflection(self, reflection: DailyReflection) -> None:
        reflections = self._load_reflections()
        reflections.append(reflection)
        self._save_reflections(reflections)

    def replace_reflection(self, day_start: datetime, reflection: DailyReflection) -> None:
        keep = _outside_day(day_start)
        reflections = [r for r in self._load_reflections() if keep(r)]
        reflections.append(reflection)
        self._save_reflections(reflections)

    def remove_reflection(self, reflection_id: str) -> bool:
        reflections = self._load_reflections()
        remaining = [r for r in reflections if r.id != reflection_id]
        if len(remaining) == len(reflections):
            return False
        self._save_reflections(remaining)
        return True

    def clear(self) -> None:
        self._save_tasks([])
        self._save_reflections([])
