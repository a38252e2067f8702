"""Tests for core/reflections.py — one reflection per day, prompt, streak."""

import pytest

from core.errors import NotFound, PersistenceFailure
from core.models import DailyReflection, Mood
from core.reflections import ReflectionService
from core.storage import MemoryStore

from conftest import day


@pytest.fixture(params=["file", "memory"])
def reflections(request, planner, memory_planner):
    return planner.reflections if request.param == "file" else memory_planner.reflections


def test_save_and_get(reflections):
    saved = reflections.save(2, 3, Mood.GOOD, went_well="Spaziergang")
    assert saved.date == day(0)
    got = reflections.get()
    assert got.id == saved.id
    assert got.mood is Mood.GOOD
    assert got.went_well == "Spaziergang"
    assert reflections.is_today_complete()


def test_save_twice_replaces(reflections):
    reflections.save(1, 3, Mood.BAD, went_well="erst")
    reflections.save(3, 3, Mood.GREAT, went_well="dann")
    stored = reflections.store.fetch_reflections()
    assert len(stored) == 1
    assert stored[0].mood is Mood.GREAT
    assert stored[0].went_well == "dann"
    assert stored[0].completed_count == 3


def test_save_truncates_text(reflections):
    saved = reflections.save(0, 0, Mood.NEUTRAL, went_well="a" * 300, shift_consciously="b" * 300)
    assert len(saved.went_well) == 200
    assert len(reflections.get().shift_consciously) == 200


def test_save_for_other_day(reflections):
    reflections.save(1, 1, Mood.GOOD, date=day(-2))
    assert reflections.get(day(-2)) is not None
    assert reflections.get() is None
    assert not reflections.is_today_complete()


def test_save_emits_signal(planner, signals):
    planner.reflections.save(1, 2, "good")
    name, context = signals.events[-1]
    assert name == "on_reflection_saved"
    assert context == {"date": "2026-02-11", "mood": "good", "completedCount": 1, "totalCount": 2}


def test_should_prompt(reflections, clock):
    assert reflections.should_prompt() is False  # 10:00
    clock.now = clock.now.replace(hour=20)
    assert reflections.should_prompt() is True
    assert reflections.should_prompt(reflection_hour=21) is False
    reflections.save(1, 1, Mood.GOOD)
    assert reflections.should_prompt() is False


def test_list_recent(reflections):
    for offset in (0, -2, -6, -8):
        reflections.save(1, 1, Mood.GOOD, date=day(offset))
    recent = reflections.list_recent(7)
    assert [r.date for r in recent] == [day(0), day(-2), day(-6)]


def test_streak_skips_open_today(reflections):
    for offset in (-1, -2, -3):
        reflections.save(1, 1, Mood.GOOD, date=day(offset))
    reflections.save(1, 1, Mood.GOOD, date=day(-5))
    assert reflections.current_streak() == 3


def test_streak_counts_today(reflections):
    for offset in (0, -1):
        reflections.save(1, 1, Mood.GOOD, date=day(offset))
    assert reflections.current_streak() == 2


def test_streak_zero(reflections):
    assert reflections.current_streak() == 0
    reflections.save(1, 1, Mood.GOOD, date=day(-2))
    assert reflections.current_streak() == 0


def test_delete(reflections):
    saved = reflections.save(1, 1, Mood.GOOD)
    assert reflections.delete(saved) is True
    assert reflections.get() is None
    with pytest.raises(NotFound):
        reflections.delete(saved)


def test_delete_unknown(reflections):
    with pytest.raises(NotFound):
        reflections.delete(DailyReflection(date=day(0)))


def test_unreadable_reflections_degrade(workspace, planner):
    (workspace / "planner" / "reflections.json").write_text("{broken", encoding="utf-8")
    assert planner.reflections.get() is None
    assert planner.reflections.list_recent(7) == []
    assert planner.reflections.current_streak() == 0
    assert planner.reflections.save(1, 1, Mood.GOOD) is None


class FailingInsertStore(MemoryStore):
    broken = False

    def insert_reflection(self, reflection):
        if self.broken:
            raise PersistenceFailure("disk full")
        super().insert_reflection(reflection)

    def replace_reflection(self, day_start, reflection):
        if self.broken:
            raise PersistenceFailure("disk full")
        super().replace_reflection(day_start, reflection)


def test_failed_replace_keeps_earlier_reflection(clock, caplog):
    store = FailingInsertStore()
    service = ReflectionService(store, clock=clock)
    first = service.save(1, 2, Mood.GOOD)
    store.broken = True
    assert service.save(2, 2, Mood.GREAT) is None
    kept = service.get(day(0))
    assert kept.id == first.id
    assert kept.mood is Mood.GOOD
    assert "Saving reflection" in caplog.text
