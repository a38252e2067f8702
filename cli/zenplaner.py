#!/usr/bin/env python3
"""ZenPlaner TUI: today's five tasks, the focus task and the evening reflection."""

from __future__ import annotations

import sys

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from core import (
    MAX_TASKS_PER_DAY,
    Mood,
    NotFound,
    Planner,
    Priority,
    Task,
    configure_logging,
    format_day_long,
    format_day_short,
    weekday_short,
    workspace_root,
)

MOODS = list(Mood)
PRIORITIES = list(Priority)


# ── Stylesheet ─────────────────────────────────────────────────

CSS = """
Screen {
    background: $surface;
}

#main-layout {
    height: 1fr;
}

#left-pane {
    width: 3fr;
    min-width: 40;
    border-right: tall $primary-background-darken-2;
    padding: 0 1;
}

#right-pane {
    width: 2fr;
    min-width: 30;
    padding: 0 1;
}

.section-title {
    text-style: bold;
    color: $text;
    margin: 1 0 0 0;
    padding: 0 1;
}

#quote {
    height: auto;
    padding: 0 1;
    color: $text-muted;
    text-style: italic;
}

#focus-task {
    height: auto;
    padding: 0 1;
    color: $warning;
    text-style: bold;
}

#tasks-table {
    height: auto;
    max-height: 9;
}

#task-input {
    margin: 1 0 0 0;
}

#week-table {
    height: auto;
    max-height: 11;
}

#streaks {
    height: auto;
    padding: 0 1;
    margin: 1 0 0 0;
}

#reflection-section {
    height: auto;
    padding: 0 1;
}

#mood {
    height: 1;
    padding: 0 1;
}
"""


# ── Main app ───────────────────────────────────────────────────


class ZenPlanerApp(App):
    """ZenPlaner — a calm daily planner in the terminal."""

    TITLE = "Zen Planer"
    CSS = CSS
    AUTO_FOCUS = "#tasks-table"

    BINDINGS = [
        Binding("a", "add_task", "Add"),
        Binding("space", "toggle_task", "Done"),
        Binding("t", "move_task", "Tomorrow"),
        Binding("delete", "delete_task", "Delete"),
        Binding("ctrl+up", "move_up", "Up", show=False),
        Binding("ctrl+down", "move_down", "Down", show=False),
        Binding("p", "cycle_priority", "Priority"),
        Binding("r", "focus_reflection", "Reflect"),
        Binding("m", "cycle_mood", "Mood"),
        Binding("ctrl+s", "save_reflection", "Save Reflection"),
        Binding("escape", "blur_focus", "Back"),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(self, planner: Planner | None = None) -> None:
        super().__init__()
        self.planner = planner or Planner.open()
        self._tasks: list[Task] = []
        self._priority = Priority.MEDIUM
        self._mood = Mood.NEUTRAL

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Single-key bindings are off while typing."""
        if isinstance(self.focused, Input) and action not in {"save_reflection", "blur_focus"}:
            return False
        return True

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            VerticalScroll(
                Label("", id="today-title", classes="section-title"),
                Static(id="quote"),
                Static(id="focus-task"),
                DataTable(id="tasks-table", cursor_type="row"),
                Input(placeholder="Neue Aufgabe…", id="task-input", max_length=100),
                id="left-pane",
            ),
            Vertical(
                Label("Woche", classes="section-title"),
                DataTable(id="week-table", cursor_type="none"),
                Static(id="streaks"),
                Vertical(
                    Label("Reflexion", classes="section-title"),
                    Static(id="mood"),
                    Input(placeholder="Was lief gut?", id="went-well", max_length=200),
                    Input(placeholder="Bewusst verschoben…", id="shift-consciously", max_length=200),
                    id="reflection-section",
                ),
                id="right-pane",
            ),
            id="main-layout",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#tasks-table", DataTable).add_columns("", "Aufgabe", "Priorität", "Frist")
        self.query_one("#week-table", DataTable).add_columns("Tag", "Erledigt", "Stimmung")
        created = self.planner.start_day()
        if created:
            self.notify(f"{len(created)} wiederkehrende Aufgabe(n) übernommen", title="Neuer Tag")
        self._load_data()
        if self.planner.reflections.should_prompt():
            self.notify("Zeit für deine Tagesreflexion (r)", title="Reflexion")

    # ── Rendering ──────────────────────────────────────────────

    def _load_data(self) -> None:
        """Re-read today's tasks, the week and the streaks."""
        now = self.planner.now()
        self._tasks = self.planner.tasks.list_for_day(now)

        done = sum(1 for t in self._tasks if t.is_completed)
        self.query_one("#today-title", Label).update(
            f"{format_day_long(now)}  ({done}/{len(self._tasks)}, max {MAX_TASKS_PER_DAY})"
        )

        quote = self.planner.quote()
        self.query_one("#quote", Static).update(quote.formatted() if quote else "")

        focus = self.planner.tasks.next_open_task(now)
        self.query_one("#focus-task", Static).update(f"Fokus: {focus.text}" if focus else "")

        table = self.query_one("#tasks-table", DataTable)
        cursor = table.cursor_row
        table.clear()
        for task in self._tasks:
            table.add_row(
                "✓" if task.is_completed else "○",
                task.text,
                task.priority.display_name,
                task.deadline.strftime("%H:%M") if task.deadline else "",
                key=task.id,
            )
        if self._tasks:
            table.move_cursor(row=min(cursor, len(self._tasks) - 1))

        week = self.query_one("#week-table", DataTable)
        week.clear()
        for stat in self.planner.statistics.week_statistics(now):
            week.add_row(
                f"{weekday_short(stat.date)} {format_day_short(stat.date)}",
                f"{stat.completed_count}/{stat.total_count}" if stat.total_count else "–",
                stat.mood.emoji if stat.mood else "",
            )

        summary = self.planner.statistics.summary(now)
        self.query_one("#streaks", Static).update(
            f"🔥 Aufgaben: {summary.task_streak} Tage\n"
            f"🌙 Reflexionen: {summary.reflection_streak} Tage\n"
            f"Woche: {round(summary.week_completion_rate * 100)} %"
        )
        self.sub_title = f"🔥 {summary.task_streak}"

        reflection = self.planner.reflections.get(now)
        if reflection is not None:
            self._mood = reflection.mood
            self.query_one("#went-well", Input).value = reflection.went_well or ""
            self.query_one("#shift-consciously", Input).value = reflection.shift_consciously or ""
        self._update_mood_display()
        self._update_input_placeholder()

    def _update_mood_display(self) -> None:
        self.query_one("#mood", Static).update(f"Stimmung: {self._mood.emoji} {self._mood.display_name}  (m)")

    def _update_input_placeholder(self) -> None:
        field = self.query_one("#task-input", Input)
        if self.planner.tasks.can_add():
            field.placeholder = f"Neue Aufgabe… [{self._priority.display_name}]"
            field.disabled = False
        else:
            field.placeholder = f"Heute sind schon {MAX_TASKS_PER_DAY} Aufgaben geplant"
            field.disabled = True

    def _selected(self) -> Task | None:
        if not self._tasks:
            return None
        row = self.query_one("#tasks-table", DataTable).cursor_row
        if 0 <= row < len(self._tasks):
            return self._tasks[row]
        return None

    # ── Task actions ───────────────────────────────────────────

    def _task_gone(self) -> None:
        """The selected task was changed elsewhere; show the current state."""
        self.notify("Aufgabe existiert nicht mehr", title="Aktualisiert", severity="warning")
        self._load_data()

    def action_add_task(self) -> None:
        field = self.query_one("#task-input", Input)
        if field.disabled:
            self.notify(f"Maximal {MAX_TASKS_PER_DAY} Aufgaben pro Tag", severity="warning")
            return
        field.focus()

    @on(Input.Submitted, "#task-input")
    def _on_task_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        if not text:
            return
        task = self.planner.tasks.add(text, self._priority)
        if task is None:
            self.notify("Aufgabe konnte nicht gespeichert werden", severity="warning")
        event.input.value = ""
        self.set_focus(self.query_one("#tasks-table", DataTable))
        self._load_data()

    def action_toggle_task(self) -> None:
        task = self._selected()
        if task is None:
            return
        try:
            self.planner.tasks.toggle_completion(task)
        except NotFound:
            self._task_gone()
            return
        self._load_data()

    def action_move_task(self) -> None:
        task = self._selected()
        if task is None:
            return
        try:
            moved = self.planner.tasks.move_to_tomorrow(task)
        except NotFound:
            self._task_gone()
            return
        if moved:
            self.notify(f"„{task.text}“ auf morgen verschoben")
        else:
            self.notify("Morgen ist schon voll", severity="warning")
        self._load_data()

    def action_delete_task(self) -> None:
        task = self._selected()
        if task is None:
            return
        try:
            self.planner.tasks.delete(task)
        except NotFound:
            self._task_gone()
            return
        self._load_data()

    def _shift(self, step: int) -> None:
        task = self._selected()
        if task is None:
            return
        index = self._tasks.index(task)
        target = index + step
        if not 0 <= target < len(self._tasks):
            return
        ordered = list(self._tasks)
        ordered[index], ordered[target] = ordered[target], ordered[index]
        try:
            self.planner.tasks.reorder(ordered)
        except NotFound:
            self._task_gone()
            return
        self._load_data()
        self.query_one("#tasks-table", DataTable).move_cursor(row=target)

    def action_move_up(self) -> None:
        self._shift(-1)

    def action_move_down(self) -> None:
        self._shift(1)

    def action_cycle_priority(self) -> None:
        """Priority for the next added task."""
        self._priority = PRIORITIES[(PRIORITIES.index(self._priority) + 1) % len(PRIORITIES)]
        self._update_input_placeholder()

    # ── Reflection ─────────────────────────────────────────────

    def action_focus_reflection(self) -> None:
        self.query_one("#went-well", Input).focus()
        self.refresh_bindings()

    def action_cycle_mood(self) -> None:
        self._mood = MOODS[(MOODS.index(self._mood) + 1) % len(MOODS)]
        self._update_mood_display()

    def action_save_reflection(self) -> None:
        reflection = self.planner.reflect(
            self._mood,
            went_well=self.query_one("#went-well", Input).value.strip() or None,
            shift_consciously=self.query_one("#shift-consciously", Input).value.strip() or None,
        )
        if reflection is None:
            self.notify("Reflexion konnte nicht gespeichert werden", severity="error")
            return
        self.notify(
            f"{reflection.mood.emoji} {reflection.completed_count}/{reflection.total_count} erledigt",
            title="Reflexion gespeichert",
        )
        self.set_focus(None)
        self._load_data()

    # ── Navigation ─────────────────────────────────────────────

    def action_blur_focus(self) -> None:
        self.set_focus(self.query_one("#tasks-table", DataTable))
        self.refresh_bindings()

    @on(Input.Changed)
    def _on_input_changed(self, event: Input.Changed) -> None:
        self.refresh_bindings()

    def action_quit_app(self) -> None:
        self.exit()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    configure_logging()
    root = workspace_root()
    if not (root / "planner").exists():
        print(f"Workspace not found: {root}")
        print("Set PLANNER_ROOT or create the planner/ directory first.")
        sys.exit(1)

    app = ZenPlanerApp(Planner.open(root))
    app.run()


if __name__ == "__main__":
    main()
