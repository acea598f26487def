#!/usr/bin/env python3
"""habitrank TUI: daily check-ins, score and rank in the terminal, powered by Textual."""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message
from textual.reactive import reactive
from textual.timer import Timer
from textual.widgets import Checkbox, DataTable, Footer, Header, Input, Label, Static, TextArea

from habitrank import (
    DayLog,
    DayLogStore,
    FileStore,
    Task,
    TaskRegistry,
    add_days,
    chart_points,
    compute_score,
    history_rows,
    init_workspace,
    load_settings,
    log_dir,
    month_key,
    recent_days,
    store_path,
    summarize_history,
    today_str,
    workspace_root,
)
from habitrank.logging_setup import setup_logging

logger = logging.getLogger("habitrank.cli")

NOTE_SAVE_DELAY = 0.4
SPARK_LEVELS = "▁▂▃▄▅▆▇█"

CSS = """
#main-layout {
    height: 1fr;
}

#today-pane {
    width: 1fr;
    min-width: 30;
    padding: 0 1;
}

.section-title {
    text-style: bold;
    color: $text;
    margin: 1 0 0 0;
    padding: 0 1;
}

#day-label {
    color: $text-muted;
    padding: 0 1;
}

#score-card {
    height: auto;
    padding: 1 2;
    border: tall $primary-background-darken-2;
}

.task-row Checkbox {
    width: auto;
    height: auto;
}

.task-done {
    opacity: 50%;
}

#note-area {
    height: 6;
    min-height: 4;
}

.overlay-screen {
    padding: 1 2;
}

#tasks-table, #history-table {
    height: 1fr;
}

#task-form {
    height: auto;
}

#task-title {
    width: 2fr;
}

#task-points {
    width: 16;
}

#task-errors {
    color: $error;
    padding: 0 1;
}

#history-info {
    height: auto;
    padding: 1 2;
    margin: 0 0 1 0;
    border: tall $primary-background-darken-2;
}
"""


def _fmt_updated(ts: int | None) -> str:
    if not ts:
        return ""
    return datetime.fromtimestamp(ts / 1000).strftime("%m/%d %H:%M")


def _score_text(tasks: list[Task], log: DayLog, future: bool) -> str:
    if future:
        return "Future day\nChecks open on the day itself; note and exclusion can be set now."
    score = compute_score(tasks, log)
    head = f"{score.raw_score:.1f}"
    if score.show_rank and score.rank:
        head = f"{score.rank.value}  {head}"
    return f"{head}\nCore tasks left: {score.core_incomplete_count}"


def _month_days(month: str, today: str) -> list[str]:
    """Days of *month* up to and including *today*."""
    days = []
    day = f"{month}-01"
    while month_key(day) == month and day <= today:
        days.append(day)
        day = add_days(day, 1)
    return days


def _sparkline(points: list[tuple[str, int | None]]) -> str:
    # excluded days are gaps in the line
    top = max([100, *(s for _, s in points if s is not None)])
    steps = len(SPARK_LEVELS) - 1
    return "".join(
        "·" if s is None else SPARK_LEVELS[min(steps, max(0, s) * steps // top)]
        for _, s in points
    )


# ── Screens ────────────────────────────────────────────────────


class TasksScreen(Vertical):
    """Task list in stored order with an inline add/edit form."""

    BINDINGS = [
        Binding("a", "new_task", "Add"),
        Binding("e", "edit_task", "Edit"),
        Binding("space", "toggle_task", "Pause/resume"),
        Binding("left_square_bracket", "move_task(-1)", "Up", key_display="["),
        Binding("right_square_bracket", "move_task(1)", "Down", key_display="]"),
        Binding("delete", "remove_task", "Remove", key_display="del"),
    ]

    class Changed(Message):
        """The stored task list was changed from this screen."""

    def __init__(self, registry: TaskRegistry, **kwargs) -> None:
        super().__init__(**kwargs)
        self._registry = registry
        self._tasks: list[Task] = []
        self._editing: str | None = None

    def compose(self) -> ComposeResult:
        yield Label("Tasks", classes="section-title")
        yield DataTable(id="tasks-table", cursor_type="row")
        yield Label("New task", id="task-form-label", classes="section-title")
        yield Horizontal(
            Input(placeholder="Title", id="task-title"),
            Input(placeholder="Points 1-10", id="task-points", type="integer"),
            Checkbox("Core", id="task-core"),
            id="task-form",
        )
        yield Static(id="task-errors")

    def on_mount(self) -> None:
        table: DataTable = self.query_one("#tasks-table", DataTable)
        table.add_columns("Title", "Kind", "Points", "Active")
        self._show(self._registry.load_tasks())
        table.focus()

    def _show(self, tasks: list[Task], keep: str | None = None) -> None:
        self._tasks = tasks
        table: DataTable = self.query_one("#tasks-table", DataTable)
        table.clear()
        for t in tasks:
            table.add_row(
                t.title,
                "core" if t.is_core else "bonus",
                "-" if t.is_core else f"+{t.points}",
                "yes" if t.is_active else "paused",
                key=t.id,
            )
        for i, t in enumerate(tasks):
            if t.id == keep:
                table.move_cursor(row=i)

    def _selected(self) -> Task | None:
        row = self.query_one("#tasks-table", DataTable).cursor_row
        if 0 <= row < len(self._tasks):
            return self._tasks[row]
        return None

    def _report(self, errors: list[str]) -> None:
        self.query_one("#task-errors", Static).update("\n".join(errors))
        if errors:
            self.app.notify("\n".join(errors), severity="error")

    def _apply(self, tasks: list[Task], errors: list[str], keep: str | None = None) -> bool:
        self._report(errors)
        if errors:
            return False
        self._show(tasks, keep)
        self.post_message(self.Changed())
        return True

    def _fill_form(self, label: str, title: str = "", points: str = "", core: bool = False) -> None:
        self.query_one("#task-form-label", Label).update(label)
        self.query_one("#task-title", Input).value = title
        self.query_one("#task-points", Input).value = points
        self.query_one("#task-core", Checkbox).value = core
        self.query_one("#task-points", Input).disabled = core

    # ── Actions ──────────────────────────────────────────────

    def action_new_task(self) -> None:
        self._editing = None
        self._fill_form("New task")
        self.query_one("#task-title", Input).focus()

    def action_edit_task(self) -> None:
        task = self._selected()
        if task is None:
            return
        self._editing = task.id
        points = "" if task.is_core else str(task.points)
        self._fill_form(f"Edit: {task.title}", task.title, points, task.is_core)
        self.query_one("#task-title", Input).focus()

    def action_toggle_task(self) -> None:
        task = self._selected()
        if task is not None:
            self._apply(*self._registry.toggle(task.id), keep=task.id)

    def action_move_task(self, direction: int) -> None:
        task = self._selected()
        if task is not None:
            self._apply(self._registry.move(task.id, direction), [], keep=task.id)

    def action_remove_task(self) -> None:
        task = self._selected()
        if task is None:
            return
        if self._editing == task.id:
            self._editing = None
            self._fill_form("New task")
        self._apply(self._registry.remove(task.id), [])
        self.app.notify(f"Removed {task.title}")

    # ── Form ─────────────────────────────────────────────────

    @on(Checkbox.Changed, "#task-core")
    def _on_core_changed(self, event: Checkbox.Changed) -> None:
        event.stop()
        self.query_one("#task-points", Input).disabled = event.value

    @on(Input.Submitted)
    def _on_submit(self, event: Input.Submitted) -> None:
        event.stop()
        title = self.query_one("#task-title", Input).value
        core = self.query_one("#task-core", Checkbox).value
        try:
            points = int(self.query_one("#task-points", Input).value)
        except ValueError:
            points = 1

        if self._editing is None:
            tasks, errors = self._registry.add(title, points, is_core=core)
            keep = tasks[0].id if tasks and not errors else None
        else:
            keep = self._editing
            tasks, errors = self._registry.edit(keep, title=title, points=points, is_core=core)
        if self._apply(tasks, errors, keep):
            self._editing = None
            self._fill_form("New task")
            self.query_one("#tasks-table", DataTable).focus()


class HistoryScreen(Vertical):
    """Averages, a score sparkline and per-day rows for a window or a month."""

    def __init__(
        self,
        tasks: list[Task],
        logs: dict[str, DayLog],
        today: str,
        window: int,
        include_excluded: bool,
        month: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._tasks = tasks
        self._logs = logs
        self._today = today
        self._window = window
        self._include_excluded = include_excluded
        self._month = month

    def compose(self) -> ComposeResult:
        yield Label("History", classes="section-title")
        yield Static(id="history-info")
        yield DataTable(id="history-table")

    def on_mount(self) -> None:
        if self._month:
            since = None
            days = _month_days(self._month, self._today)
            heading = f"{self._month} (m for next month)"
        else:
            days = recent_days(self._window, self._today)
            since = days[0]
            heading = f"Last {self._window} days (w to switch, m for months)"

        summary = summarize_history(
            self._tasks, self._logs, self._today, since=since,
            include_excluded=self._include_excluded,
        )
        chart = chart_points(self._tasks, self._logs, days, self._include_excluded)
        info = [
            heading + ("  incl. excluded days" if self._include_excluded else ""),
            f"Average score: {summary.avg:.1f} over {summary.count} days",
            f"Days with core tasks missed: {summary.core_miss_days}",
            f"Excluded days: {summary.excluded_days}  Future entries: {summary.future_days}",
            f"Trend: {_sparkline(chart)}",
        ]
        self.query_one("#history-info", Static).update("\n".join(info))

        table: DataTable = self.query_one("#history-table", DataTable)
        table.add_columns("Date", "Score", "Rank", "Note", "Updated")
        rows = history_rows(
            self._tasks, self._logs, self._today, since=since,
            include_excluded=self._include_excluded,
        )
        for r in rows:
            table.add_row(
                r.date + (" (excluded)" if r.exclude_from_stats else ""),
                str(r.raw_score),
                r.rank.value if r.show_rank and r.rank else "",
                r.note.splitlines()[0] if r.note else "",
                _fmt_updated(r.updated_at),
            )


# ── Main app ───────────────────────────────────────────────────


class HabitRankApp(App):
    """habitrank daily habit tracker."""

    TITLE = "habitrank"
    CSS = CSS
    AUTO_FOCUS = None

    BINDINGS = [
        Binding("p", "prev_day", "Prev day"),
        Binding("n", "next_day", "Next day"),
        Binding("g", "go_today", "Today"),
        Binding("t", "show_tasks", "Tasks"),
        Binding("y", "show_history", "History"),
        Binding("w", "toggle_window", "7/30"),
        Binding("x", "toggle_excluded", "Incl. excluded"),
        Binding("m", "cycle_month", "Month"),
        Binding("escape", "blur_focus", "Back"),
        Binding("q", "quit_app", "Quit"),
    ]

    current_view: reactive[str] = reactive("today")

    def __init__(self, root: Path) -> None:
        super().__init__()
        self._root = root
        storage = FileStore(store_path(root))
        self.registry = TaskRegistry(storage)
        self.daylogs = DayLogStore(storage)
        self.today = today_str(root)
        self.selected_day = self.today
        self._tasks: list[Task] = []
        self._log = DayLog.empty(self.today)
        self._loading = False
        self._note_timer: Timer | None = None
        self._window = 7
        self._include_excluded = False
        self._history_month: str | None = None

    @property
    def is_future(self) -> bool:
        return self.selected_day > self.today

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            VerticalScroll(
                Label(id="day-label"),
                Static(id="score-card"),
                Label("Core tasks", classes="section-title"),
                Vertical(id="core-list"),
                Label("Bonus tasks", classes="section-title"),
                Vertical(id="bonus-list"),
                Label("Note", classes="section-title"),
                TextArea(id="note-area"),
                Checkbox("Exclude this day from averages", id="exclude-box"),
                id="today-pane",
                can_focus=False,
            ),
            id="main-layout",
        )
        yield Footer()

    def on_mount(self) -> None:
        self._load_day()

    def _load_day(self) -> None:
        """Load tasks and the selected day's log, then rebuild widgets."""
        self._loading = True
        try:
            self._tasks = self.registry.load_or_seed()
            self._log = self.daylogs.get_day_log(self.selected_day)
            self._rebuild_task_lists()
            self.query_one("#note-area", TextArea).load_text(self._log.note)
            self.query_one("#exclude-box", Checkbox).value = self._log.exclude_from_stats
            self._refresh_header()
        finally:
            self.call_after_refresh(self._end_loading)

    def _end_loading(self) -> None:
        self._loading = False

    def _rebuild_task_lists(self) -> None:
        for list_id, core in (("#core-list", True), ("#bonus-list", False)):
            container = self.query_one(list_id, Vertical)
            container.remove_children()
            for t in self._tasks:
                if not t.is_active or t.is_core != core:
                    continue
                label = t.title if core else f"{t.title} (+{t.points})"
                cb = Checkbox(label, value=self._log.is_checked(t.id), name=t.id)
                cb.disabled = self.is_future
                row = Horizontal(cb, classes="task-row")
                if self._log.is_checked(t.id):
                    row.add_class("task-done")
                container.mount(row)

    def _refresh_header(self) -> None:
        if self.selected_day == self.today:
            when = "today"
        elif self.is_future:
            when = "future"
        else:
            when = "past"
        self.query_one("#day-label", Label).update(f"{self.selected_day} ({when})")
        self.query_one("#score-card", Static).update(
            _score_text(self._tasks, self._log, self.is_future)
        )
        self.sub_title = self.selected_day

    def _persist(self) -> None:
        stored = self.daylogs.upsert_day_log(self._log)
        if stored is None:
            self._log = replace(self._log, created_at=None, updated_at=None)
        else:
            self._log = stored
        self._refresh_header()

    # ── Edits ─────────────────────────────────────────────────

    @on(Checkbox.Changed)
    def _on_checkbox(self, event: Checkbox.Changed) -> None:
        if self._loading:
            return
        if event.checkbox.id == "exclude-box":
            if event.value == self._log.exclude_from_stats:
                return
            self._log = replace(self._log, exclude_from_stats=event.value)
            self._persist()
            return
        task_id = event.checkbox.name
        if task_id is None or self.is_future or event.value == self._log.is_checked(task_id):
            return
        self._log = replace(self._log, checks={**self._log.checks, task_id: event.value})
        row = event.checkbox.parent
        if row is not None:
            row.set_class(event.value, "task-done")
        self._persist()

    @on(TextArea.Changed, "#note-area")
    def _on_note_change(self, event: TextArea.Changed) -> None:
        if self._loading or event.text_area.text == self._log.note:
            return
        self._log = replace(self._log, note=event.text_area.text)
        if self._note_timer is not None:
            self._note_timer.stop()
        self._note_timer = self.set_timer(NOTE_SAVE_DELAY, self._save_note)

    def _save_note(self) -> None:
        self._note_timer = None
        self._persist()

    def _flush_note(self) -> None:
        if self._note_timer is not None:
            self._note_timer.stop()
            self._note_timer = None
            self._persist()

    @on(TasksScreen.Changed)
    def _on_tasks_changed(self) -> None:
        self._load_day()

    # ── Navigation ───────────────────────────────────────────

    def _go_to(self, day: str) -> None:
        self._flush_note()
        self.selected_day = day
        self._switch_to("today")
        self._load_day()

    def action_prev_day(self) -> None:
        self._go_to(add_days(self.selected_day, -1))

    def action_next_day(self) -> None:
        self._go_to(add_days(self.selected_day, 1))

    def action_go_today(self) -> None:
        self._go_to(self.today)

    def action_show_tasks(self) -> None:
        self._switch_to("today" if self.current_view == "tasks" else "tasks")

    def action_show_history(self) -> None:
        self._switch_to("today" if self.current_view == "history" else "history")

    def action_toggle_window(self) -> None:
        self._window = 30 if self._window == 7 else 7
        self._history_month = None
        if self.current_view == "history":
            self._switch_to("history")

    def action_cycle_month(self) -> None:
        """Step History through recent window, newest month, older months, and back."""
        options: list[str | None] = [None, *self.daylogs.list_available_months()]
        pos = options.index(self._history_month) if self._history_month in options else 0
        self._history_month = options[(pos + 1) % len(options)]
        self._switch_to("history")

    def action_toggle_excluded(self) -> None:
        self._include_excluded = not self._include_excluded
        if self.current_view == "history":
            self._switch_to("history")

    def action_blur_focus(self) -> None:
        if self.current_view != "today":
            self._switch_to("today")
        self.set_focus(None)

    def action_quit_app(self) -> None:
        self._flush_note()
        self.exit()

    def _switch_to(self, view: str) -> None:
        main = self.query_one("#main-layout", Horizontal)
        for old in self.query(".overlay-screen"):
            old.remove()

        pane = self.query_one("#today-pane")
        if view == "today":
            pane.display = True
            self.current_view = "today"
            return

        self._flush_note()
        pane.display = False
        if view == "tasks":
            main.mount(TasksScreen(self.registry, classes="overlay-screen"))
        elif view == "history":
            if self._history_month:
                logs = self.daylogs.load_day_log_map_for_month(self._history_month)
            else:
                logs = self.daylogs.load_day_log_map()
            main.mount(HistoryScreen(
                self.registry.load_tasks(),
                logs,
                self.today,
                self._window,
                self._include_excluded,
                self._history_month,
                classes="overlay-screen",
            ))
        self.current_view = view


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    try:
        init_workspace(root)
    except OSError as e:
        print(f"Cannot create workspace at {root}: {e}")
        print("Set HABITRANK_ROOT to a writable directory.")
        sys.exit(1)

    settings = load_settings(root)
    setup_logging(log_dir=log_dir(root), file_level=settings.log_level, console=False)
    logger.info("Starting habitrank root=%s", root)

    app = HabitRankApp(root)
    app.run()


if __name__ == "__main__":
    main()
