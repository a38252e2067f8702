"""Tests for core/tasks.py — daily cap, ordering, completion, rollover, repeats."""

from datetime import datetime, timezone

import pytest

from core.errors import CapacityExceeded, NotFound, PersistenceFailure
from core.models import Priority, ReminderOffset, Task
from core.reminders import ReminderScheduler
from core.storage import MemoryStore
from core.tasks import MAX_TASKS_PER_DAY, TaskStore, anchor_deadline

from conftest import NOW, FakeClock, RecordingReminders, RecordingSignals, day, texts


@pytest.fixture(params=["file", "memory"])
def tasks(request, planner, memory_planner) -> TaskStore:
    return planner.tasks if request.param == "file" else memory_planner.tasks


def _fill(store: TaskStore, n: int, date=None) -> list[Task]:
    return [store.add(f"Aufgabe {i}", date=date) for i in range(n)]


# ── Add & capacity ────────────────────────────────────────────


def test_add_assigns_day_and_sort_order(tasks):
    a = tasks.add("Meditieren", Priority.HIGH)
    b = tasks.add("Lesen")
    assert a.date == day(0)
    assert a.created_at == NOW
    assert (a.sort_order, b.sort_order) == (0, 1)
    assert texts(tasks.list_for_day()) == ["Meditieren", "Lesen"]


def test_add_truncates_text(tasks):
    task = tasks.add("x" * 120)
    assert len(task.text) == 100
    assert len(tasks.list_for_day()[0].text) == 100


def test_add_respects_cap(tasks):
    _fill(tasks, MAX_TASKS_PER_DAY)
    assert tasks.can_add() is False
    before = texts(tasks.list_for_day())
    assert tasks.add("Sechste") is None
    assert texts(tasks.list_for_day()) == before
    assert len(before) == 5


def test_cap_is_per_day(tasks):
    _fill(tasks, MAX_TASKS_PER_DAY)
    assert tasks.add("Morgen", date=day(1)) is not None
    assert tasks.total_count(day(1)) == 1


def test_require_capacity(tasks):
    tasks.require_capacity()
    _fill(tasks, MAX_TASKS_PER_DAY)
    with pytest.raises(CapacityExceeded) as exc:
        tasks.require_capacity()
    assert exc.value.day == "2026-02-11"
    assert exc.value.limit == 5


def test_add_emits_signal_and_schedules_reminder(planner, reminders, signals):
    deadline = NOW.replace(hour=18)
    task = planner.tasks.add("Anrufen", deadline=deadline, reminder_offset=ReminderOffset.ONE_HOUR)
    assert reminders.scheduled[task.id] == NOW.replace(hour=17)
    assert signals.names() == ["on_task_add"]
    assert signals.events[0][1]["text"] == "Anrufen"


def test_add_full_day_has_no_side_effects(planner, signals):
    _fill(planner.tasks, MAX_TASKS_PER_DAY)
    signals.events.clear()
    planner.tasks.add("Sechste")
    assert signals.events == []


def test_anchor_deadline_moves_onto_bucket_day():
    bucket = datetime(2026, 2, 12, tzinfo=timezone.utc)
    deadline = datetime(2026, 2, 11, 18, 30, tzinfo=timezone.utc)
    assert anchor_deadline(deadline, bucket) == datetime(2026, 2, 12, 18, 30, tzinfo=timezone.utc)
    assert anchor_deadline(None, bucket) is None
    assert anchor_deadline(datetime(2026, 2, 12, 9, 0), bucket) == datetime(2026, 2, 12, 9, 0, tzinfo=timezone.utc)


# ── Queries ───────────────────────────────────────────────────


def test_counts(tasks):
    a, _, _ = _fill(tasks, 3)
    tasks.toggle_completion(a)
    assert tasks.completed_count() == 1
    assert tasks.total_count() == 3


def test_get_unknown_raises(tasks):
    with pytest.raises(NotFound):
        tasks.get("nope")


def test_next_open_task(tasks):
    a = tasks.add("A", Priority.HIGH)
    b = tasks.add("B", Priority.LOW)
    assert tasks.next_open_task().id == a.id
    tasks.toggle_completion(a)
    assert tasks.next_open_task().id == b.id
    tasks.toggle_completion(b)
    assert tasks.next_open_task() is None


def test_next_open_task_ties_use_sort_order(tasks):
    tasks.add("low", Priority.LOW)
    first = tasks.add("first", Priority.MEDIUM)
    tasks.add("second", Priority.MEDIUM)
    assert tasks.next_open_task().id == first.id


def test_archive(tasks):
    tasks.add("heute")
    tasks.add("gestern", date=day(-1))
    tasks.add("vor drei Tagen", date=day(-3))
    tasks.add("zu alt", date=day(-40))
    archive = tasks.archive(30)
    assert [d for d, _ in archive] == [day(-1), day(-3)]
    assert texts(archive[0][1]) == ["gestern"]


# ── Toggle ────────────────────────────────────────────────────


def test_double_toggle_restores(tasks):
    task = tasks.add("Meditieren")
    tasks.toggle_completion(task)
    stored = tasks.get(task.id)
    assert stored.is_completed and stored.completed_at == NOW

    tasks.toggle_completion(task)
    stored = tasks.get(task.id)
    assert not stored.is_completed
    assert stored.completed_at is None


def test_toggle_cancels_and_reschedules_reminder(planner, reminders, signals):
    task = planner.tasks.add("Anrufen", deadline=NOW.replace(hour=18), reminder_offset="atTime")
    planner.tasks.toggle_completion(task)
    assert task.id not in reminders.scheduled
    assert "on_task_complete" in signals.names()

    planner.tasks.toggle_completion(task)
    assert reminders.scheduled[task.id] == NOW.replace(hour=18)


def test_toggle_stale_task_raises(tasks):
    with pytest.raises(NotFound):
        tasks.toggle_completion(Task(text="ghost", date=day(0)))


# ── Update ────────────────────────────────────────────────────


def test_update_changes_fields(tasks):
    task = tasks.add("Lesen")
    tasks.update(task, "Buch lesen", Priority.HIGH, repeating=True)
    stored = tasks.get(task.id)
    assert stored.text == "Buch lesen"
    assert stored.priority is Priority.HIGH
    assert stored.is_repeating


def test_update_reschedules_only_on_reminder_change(planner, reminders):
    task = planner.tasks.add("Anrufen", deadline=NOW.replace(hour=18), reminder_offset="atTime")
    calls = len(reminders.calls)
    planner.tasks.update(task, "Mama anrufen", Priority.HIGH, deadline=NOW.replace(hour=18), reminder_offset="atTime")
    assert len(reminders.calls) == calls

    planner.tasks.update(task, "Mama anrufen", Priority.HIGH, deadline=NOW.replace(hour=18), reminder_offset="oneHour")
    assert reminders.calls[-2] == ("cancel", task.id)
    assert reminders.scheduled[task.id] == NOW.replace(hour=17)


def test_update_removing_deadline_cancels(planner, reminders):
    task = planner.tasks.add("Anrufen", deadline=NOW.replace(hour=18), reminder_offset="atTime")
    planner.tasks.update(task, "Anrufen", Priority.MEDIUM)
    assert task.id not in reminders.scheduled


# ── Delete ────────────────────────────────────────────────────


def test_delete(planner, reminders, signals):
    task = planner.tasks.add("Weg", deadline=NOW.replace(hour=18), reminder_offset="atTime")
    assert planner.tasks.delete(task) is True
    assert planner.tasks.list_for_day() == []
    assert task.id not in reminders.scheduled
    assert signals.names()[-1] == "on_task_delete"
    with pytest.raises(NotFound):
        planner.tasks.delete(task)


# ── Move to tomorrow ──────────────────────────────────────────


def test_move_to_tomorrow_resets_task(planner, reminders):
    store = planner.tasks
    store.add("Morgen 1", date=day(1))
    store.add("Morgen 2", date=day(1))
    task = store.add(
        "Steuer", Priority.HIGH, deadline=NOW.replace(hour=18), reminder_offset="atTime", repeating=True
    )
    store.toggle_completion(task)

    assert store.move_to_tomorrow(task) is True
    moved = store.get(task.id)
    assert moved.date == day(1)
    assert moved.sort_order == 2
    assert not moved.is_completed and moved.completed_at is None
    assert moved.deadline is None and moved.reminder_offset is None
    assert not moved.is_repeating
    assert moved.priority is Priority.HIGH
    assert task.id not in reminders.scheduled
    assert store.list_for_day() == []


def test_move_to_tomorrow_full(tasks):
    _fill(tasks, MAX_TASKS_PER_DAY, date=day(1))
    task = tasks.add("Heute")
    assert tasks.move_to_tomorrow(task) is False
    assert tasks.get(task.id).date == day(0)
    assert tasks.total_count(day(1)) == 5


def test_move_uses_tomorrow_from_now(tasks):
    task = tasks.add("Altlast", date=day(-3))
    assert tasks.move_to_tomorrow(task)
    assert tasks.get(task.id).date == day(1)


# ── Reorder ───────────────────────────────────────────────────


def test_reorder(tasks):
    t1, t2, t3 = _fill(tasks, 3)
    assert tasks.reorder([t3, t1, t2]) is True
    assert [t.id for t in tasks.list_for_day()] == [t3.id, t1.id, t2.id]
    assert [t.sort_order for t in tasks.list_for_day()] == [0, 1, 2]


def test_reorder_empty(tasks):
    assert tasks.reorder([]) is True


def test_reorder_with_stale_task_changes_nothing(tasks):
    t1, t2, t3 = _fill(tasks, 3)
    tasks.delete(t2)
    with pytest.raises(NotFound):
        tasks.reorder([t3, t2, t1])
    assert [t.id for t in tasks.list_for_day()] == [t1.id, t3.id]
    assert [t.sort_order for t in tasks.list_for_day()] == [0, 2]


# ── Repeating ─────────────────────────────────────────────────


def test_propagate_repeating(tasks):
    tasks.add("Meditieren", Priority.HIGH, date=day(-1), repeating=True)
    tasks.add("Einmalig", date=day(-1))
    created = tasks.propagate_repeating()
    assert texts(created) == ["Meditieren"]
    today = tasks.list_for_day()
    assert texts(today) == ["Meditieren"]
    assert today[0].is_repeating
    assert today[0].priority is Priority.HIGH


def test_propagate_repeating_is_idempotent(tasks):
    tasks.add("Meditieren", date=day(-1), repeating=True)
    tasks.propagate_repeating()
    assert tasks.propagate_repeating() == []
    assert texts(tasks.list_for_day()) == ["Meditieren"]


def test_propagate_repeating_stops_at_cap(tasks):
    _fill(tasks, 4)
    tasks.add("R1", date=day(-1), repeating=True)
    tasks.add("R2", date=day(-1), repeating=True)
    created = tasks.propagate_repeating()
    assert texts(created) == ["R1"]
    assert tasks.total_count() == 5


def test_propagate_between_explicit_days(tasks):
    tasks.add("Sport", date=day(2), repeating=True)
    created = tasks.propagate_repeating(from_date=day(2), to_date=day(5))
    assert texts(created) == ["Sport"]
    assert created[0].date == day(5)


# ── Storage failures ──────────────────────────────────────────


class FailingStore(MemoryStore):
    """Memory store whose writes fail once `broken` is set."""

    broken = False

    def _check(self):
        if self.broken:
            raise PersistenceFailure("disk full")

    def fetch_tasks(self, where=None, order_by=None, reverse=False):
        if self.broken == "all":
            raise PersistenceFailure("disk gone")
        return super().fetch_tasks(where, order_by, reverse)

    def insert_task(self, task):
        self._check()
        super().insert_task(task)

    def update_tasks(self, tasks):
        self._check()
        return super().update_tasks(tasks)

    def remove_task(self, task_id):
        self._check()
        return super().remove_task(task_id)


@pytest.fixture
def failing():
    store = FailingStore()
    reminders = RecordingReminders()
    signals = RecordingSignals()
    clock = FakeClock()
    service = TaskStore(store, reminders=ReminderScheduler(reminders, clock), signals=signals, clock=clock)
    return store, service, reminders, signals


def test_failed_add_returns_none_without_side_effects(failing, caplog):
    store, service, reminders, signals = failing
    store.broken = True
    assert service.add("a", deadline=NOW.replace(hour=18), reminder_offset="atTime") is None
    assert reminders.calls == []
    assert signals.events == []
    assert "Adding task" in caplog.text


def test_failed_writes_degrade(failing):
    store, service, _, signals = failing
    task = service.add("a")
    signals.events.clear()
    store.broken = True
    assert service.delete(task) is False
    assert service.move_to_tomorrow(task) is False
    assert service.reorder([task]) is False
    service.toggle_completion(task)
    assert signals.events == []


def test_failed_reads_give_empty_day(failing):
    store, service, _, _ = failing
    service.add("a")
    store.broken = "all"
    assert service.list_for_day() == []
    assert service.next_open_task() is None
