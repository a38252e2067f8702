"""Tests for cli/zenplaner.py — the Textual app driven through a pilot."""

import asyncio

from textual.widgets import DataTable

from cli.zenplaner import ZenPlanerApp

from conftest import texts


def _run(app: ZenPlanerApp, *keys: str, before=None) -> None:
    async def scenario():
        async with app.run_test() as pilot:
            if before is not None:
                before()
            await pilot.press(*keys)
            await pilot.pause()
            assert app.is_running

    asyncio.run(scenario())


def test_toggle_from_table(memory_planner):
    task = memory_planner.tasks.add("Meditieren")
    app = ZenPlanerApp(memory_planner)
    _run(app, "space")
    assert memory_planner.tasks.get(task.id).is_completed


def test_toggle_task_removed_elsewhere_reloads(memory_planner):
    memory_planner.tasks.add("Meditieren")
    app = ZenPlanerApp(memory_planner)
    _run(app, "space", before=memory_planner.store.clear)
    assert app._tasks == []
    assert app.query_one("#tasks-table", DataTable).row_count == 0


def test_delete_task_removed_elsewhere_reloads(memory_planner):
    memory_planner.tasks.add("Weg")
    app = ZenPlanerApp(memory_planner)
    _run(app, "delete", before=memory_planner.store.clear)
    assert app._tasks == []


def test_move_task_removed_elsewhere_reloads(memory_planner):
    memory_planner.tasks.add("Später")
    app = ZenPlanerApp(memory_planner)
    _run(app, "t", before=memory_planner.store.clear)
    assert app._tasks == []


def test_reorder_with_task_removed_elsewhere_keeps_order(memory_planner):
    a = memory_planner.tasks.add("a")
    b = memory_planner.tasks.add("b")
    memory_planner.tasks.add("c")
    app = ZenPlanerApp(memory_planner)
    _run(app, "ctrl+down", before=lambda: memory_planner.store.remove_task(b.id))
    assert texts(memory_planner.tasks.list_for_day()) == ["a", "c"]
    assert memory_planner.tasks.get(a.id).sort_order == 0
    assert texts(app._tasks) == ["a", "c"]
