#!/usr/bin/env python3
"""habitgrid TUI — interactive terminal habit tracker powered by Textual."""

from __future__ import annotations

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from habitgrid import (
    CacheChange,
    Habit,
    HabitTracker,
    Result,
    days_left_in_year,
    init_workspace,
    setup_logging,
    workspace_root,
)


CSS = """
Screen {
    layout: vertical;
}

#days-left {
    height: auto;
    padding: 0 2;
    color: $text-muted;
}

.section-title {
    text-style: bold;
    padding: 0 2;
    margin: 1 0 0 0;
}

#habit-input {
    margin: 0 2;
}

#habits-table {
    height: 1fr;
    margin: 1 2;
}

#status-line {
    height: auto;
    padding: 0 2;
    color: $text-muted;
}
"""

# Rich color names for each color tag
RICH_COLORS = {
    "red": "red",
    "orange": "orange1",
    "yellow": "yellow",
    "green": "green",
    "blue": "blue",
    "purple": "purple",
}


def grid_markup(habit: Habit, grid: list[bool]) -> str:
    color = RICH_COLORS.get(habit.color_tag.value, "green")
    return "".join(f"[{color}]●[/]" if done else "[dim]·[/]" for done in grid)


# ── Main app ───────────────────────────────────────────────────


class HabitGridApp(App):
    """habitgrid — habits, streaks and a completion calendar."""

    TITLE = "habitgrid"
    CSS = CSS

    BINDINGS = [
        Binding("a", "new_habit", "Add"),
        Binding("m", "mark_today", "Mark today"),
        Binding("e", "rename_habit", "Rename"),
        Binding("x", "delete_habit", "Delete"),
        Binding("shift+up", "move_up", "Move up"),
        Binding("shift+down", "move_down", "Move down"),
        Binding("r", "refresh", "Refresh"),
        Binding("escape", "cancel_input", "Cancel"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, tracker: HabitTracker) -> None:
        super().__init__()
        self.tracker = tracker
        self._rename_target: Habit | None = None
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="days-left")
        yield Label("New habit", classes="section-title", id="input-title")
        yield Input(placeholder="habit name…", id="habit-input")
        yield DataTable(id="habits-table", cursor_type="row")
        yield Static(id="status-line")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#habits-table", DataTable)
        table.add_columns("Habit", "Streak", "Longest", "Total", "Calendar")
        self._unsubscribe = self.tracker.subscribe(self._on_cache_change)
        self._update_days_left()
        table.focus()
        self.load_habits()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()

    # ── Rendering ──────────────────────────────────────────────

    def _on_cache_change(self, change: CacheChange) -> None:
        if change.collection == "state":
            self._update_status()
        else:
            self._render_table()

    def _update_days_left(self) -> None:
        left = days_left_in_year(self.tracker.today())
        self.query_one("#days-left", Static).update(f"{left} days left in the year")

    def _update_status(self) -> None:
        text = f"Sync: {self.tracker.state.value}"
        if self.tracker.last_error is not None:
            text += f" ({self.tracker.last_error})"
        self.query_one("#status-line", Static).update(text)

    def _render_table(self) -> None:
        table = self.query_one("#habits-table", DataTable)
        cursor = table.cursor_row
        table.clear()
        today = self.tracker.today()
        for stats in self.tracker.stats(today):
            habit = stats.habit
            table.add_row(
                habit.name,
                str(stats.current_streak),
                str(stats.longest_streak),
                str(stats.total_days),
                grid_markup(habit, self.tracker.calendar_grid(habit, today=today)),
                key=habit.id,
            )
        if self.tracker.habits:
            table.move_cursor(row=min(cursor, len(self.tracker.habits) - 1))

    def _selected(self) -> tuple[int, Habit] | None:
        table = self.query_one("#habits-table", DataTable)
        index = table.cursor_row
        habits = self.tracker.habits
        if 0 <= index < len(habits):
            return index, habits[index]
        return None

    def _report(self, action: str, result: Result) -> None:
        if not result.ok:
            self.notify(f"{action} failed: {result.error}", severity="error")

    # ── Workers ────────────────────────────────────────────────

    @work(exclusive=True, group="sync")
    async def load_habits(self) -> None:
        result = await self.tracker.refresh()
        self._report("Refresh", result)
        self._update_status()

    @work(group="ops")
    async def _add(self, name: str) -> None:
        self._report("Add", await self.tracker.add_habit(name))

    @work(group="ops")
    async def _mark(self, habit: Habit) -> None:
        result = await self.tracker.mark(habit)
        self._report("Mark", result)
        if result.ok:
            self.notify(f"{habit.name}: streak {self.tracker.current_streak(habit)}")

    @work(group="ops")
    async def _rename(self, habit: Habit, name: str) -> None:
        self._report("Rename", await self.tracker.update_habit(habit, name))

    @work(group="ops")
    async def _delete(self, habit: Habit) -> None:
        result = await self.tracker.delete_habit(habit)
        self._report("Delete", result)
        if result.ok and result.value.orphaned:
            self.notify(
                f"{habit.name} deleted; some completion records could not be removed",
                severity="warning",
            )

    # ── Input ──────────────────────────────────────────────────

    @on(Input.Submitted, "#habit-input")
    def _on_submit(self, event: Input.Submitted) -> None:
        name = event.value.strip()
        if name:
            if self._rename_target is not None:
                self._rename(self._rename_target, name)
            else:
                self._add(name)
        self.action_cancel_input()

    # ── Actions ────────────────────────────────────────────────

    def action_new_habit(self) -> None:
        self._rename_target = None
        self.query_one("#input-title", Label).update("New habit")
        self.query_one("#habit-input", Input).focus()

    def action_rename_habit(self) -> None:
        selected = self._selected()
        if selected is None:
            return
        _, habit = selected
        self._rename_target = habit
        self.query_one("#input-title", Label).update(f"Rename “{habit.name}”")
        field = self.query_one("#habit-input", Input)
        field.value = habit.name
        field.focus()

    def action_cancel_input(self) -> None:
        self._rename_target = None
        self.query_one("#input-title", Label).update("New habit")
        self.query_one("#habit-input", Input).value = ""
        self.query_one("#habits-table", DataTable).focus()

    def action_mark_today(self) -> None:
        selected = self._selected()
        if selected is not None:
            self._mark(selected[1])

    def action_delete_habit(self) -> None:
        selected = self._selected()
        if selected is not None:
            self._delete(selected[1])

    def _move(self, offset: int) -> None:
        selected = self._selected()
        if selected is None:
            return
        index, _ = selected
        if self.tracker.move_habit(index, index + offset):
            self.query_one("#habits-table", DataTable).move_cursor(row=index + offset)

    def action_move_up(self) -> None:
        self._move(-1)

    def action_move_down(self) -> None:
        self._move(1)

    def action_refresh(self) -> None:
        self._update_days_left()
        self.load_habits()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    settings = init_workspace(root)
    setup_logging(settings.log_level, root / "habitgrid.log")
    app = HabitGridApp(HabitTracker.from_settings(settings))
    app.run()


if __name__ == "__main__":
    main()
