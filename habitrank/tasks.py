"""Task registry, editing operations and first-run seeding for habitrank."""

from __future__ import annotations

import logging
import secrets
from dataclasses import replace
from typing import Any

from habitrank.models import Task
from habitrank.normalize import (
    CORE_LIMIT_ERROR,
    can_enable_core_active,
    clamp_points,
    normalize_tasks,
    validate_title,
)
from habitrank.storage import Storage
from habitrank.workspace import now_ms

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"

EDITABLE_FIELDS = {"title", "points", "is_core", "is_active"}


def make_task_id() -> str:
    return f"t_{now_ms()}_{secrets.token_hex(6)}"


def parse_tasks(data: Any) -> list[Task]:
    """Turn a stored JSON value into tasks, dropping malformed entries."""
    if not isinstance(data, list):
        return []
    tasks = []
    for entry in data:
        try:
            tasks.append(Task.from_dict(entry))
        except ValueError as e:
            logger.warning("Dropping malformed task entry: %s", e)
    return tasks


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    for t in tasks:
        if t.id == task_id:
            return t
    return None


# ── Editing operations ───────────────────────────────────────
#
# Each returns (tasks, errors). When errors is non-empty the input list is
# returned untouched.


def create_task(
    tasks: list[Task],
    title: str,
    points: Any = 1,
    is_core: bool = False,
    is_active: bool = True,
) -> tuple[list[Task], list[str]]:
    """Prepend a new task with a fresh id."""
    errors = validate_title(title)
    if errors:
        return tasks, errors
    if is_core and is_active and not can_enable_core_active(tasks):
        return tasks, [CORE_LIMIT_ERROR]

    task = Task(
        id=make_task_id(),
        title=title.strip(),
        points=0 if is_core else clamp_points(points),
        is_core=is_core,
        is_active=is_active,
    )
    return [task, *tasks], []


def update_task(tasks: list[Task], task_id: str, **changes: Any) -> tuple[list[Task], list[str]]:
    """Edit title/points/is_core/is_active of one task."""
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        return tasks, [f"Unknown task fields: {', '.join(sorted(unknown))}"]
    current = find_task(tasks, task_id)
    if current is None:
        return tasks, [f"Task not found: {task_id}"]

    updated = replace(current, **changes)
    errors = validate_title(updated.title)
    if errors:
        return tasks, errors
    if updated.is_core and updated.is_active and not can_enable_core_active(tasks, exclude_id=task_id):
        return tasks, [CORE_LIMIT_ERROR]

    updated.title = updated.title.strip()
    updated.points = 0 if updated.is_core else clamp_points(updated.points)
    return [updated if t.id == task_id else t for t in tasks], []


def toggle_active(tasks: list[Task], task_id: str) -> tuple[list[Task], list[str]]:
    """Pause or resume a task. Resuming a core task respects the core cap."""
    current = find_task(tasks, task_id)
    if current is None:
        return tasks, [f"Task not found: {task_id}"]
    activating = not current.is_active
    if activating and current.is_core and not can_enable_core_active(tasks, exclude_id=task_id):
        return tasks, [CORE_LIMIT_ERROR]
    return [replace(t, is_active=not t.is_active) if t.id == task_id else t for t in tasks], []


def move_task(tasks: list[Task], task_id: str, direction: int) -> list[Task]:
    """Swap a task with its neighbour in the same group (core or bonus).

    *direction* is -1 (up) or +1 (down). Moving past the group edge is a no-op.
    """
    current = find_task(tasks, task_id)
    if current is None:
        return tasks
    group = [t for t in tasks if t.is_core == current.is_core]
    pos = next(i for i, t in enumerate(group) if t.id == task_id)
    target = pos + (1 if direction > 0 else -1)
    if target < 0 or target >= len(group):
        return tasks

    neighbour_id = group[target].id
    idx_a = next(i for i, t in enumerate(tasks) if t.id == task_id)
    idx_b = next(i for i, t in enumerate(tasks) if t.id == neighbour_id)
    out = list(tasks)
    out[idx_a], out[idx_b] = out[idx_b], out[idx_a]
    return out


def remove_task(tasks: list[Task], task_id: str) -> list[Task]:
    return [t for t in tasks if t.id != task_id]


def seed_tasks_if_empty(tasks: list[Task]) -> list[Task]:
    """Starter tasks for a first run; a non-empty list is returned as-is."""
    if tasks:
        return tasks
    stamp = now_ms()
    return [
        Task(id=f"t_{stamp}_1", title="Drink a glass of water", points=0, is_core=True),
        Task(id=f"t_{stamp}_2", title="Step outside (1 min)", points=0, is_core=True),
        Task(id=f"t_{stamp}_3", title="Read one page", points=0, is_core=True),
        Task(id=f"t_{stamp}_4", title="Stretch", points=10),
        Task(id=f"t_{stamp}_5", title="Tidy one thing", points=5),
    ]


# ── Registry ─────────────────────────────────────────────────


class TaskRegistry:
    """Persists the ordered task list under the ``tasks`` key."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def load_tasks(self) -> list[Task]:
        """Load and normalize tasks, writing corrections back if any were needed."""
        data = self.storage.read_json(TASKS_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Stored tasks are not a list; treating as empty")
            return []
        tasks, _ = normalize_tasks(parse_tasks(data))
        if [t.to_dict() for t in tasks] != data:
            logger.info("Repaired stored task list (%d tasks)", len(tasks))
            self.storage.write_json(TASKS_KEY, [t.to_dict() for t in tasks])
        return tasks

    def save_tasks(self, tasks: list[Task]) -> list[Task]:
        """Normalize and overwrite the full list. Returns what was stored."""
        normalized, changed = normalize_tasks(tasks)
        if changed:
            logger.info("Normalized task list before saving")
        self.storage.write_json(TASKS_KEY, [t.to_dict() for t in normalized])
        return normalized

    def load_or_seed(self) -> list[Task]:
        tasks = self.load_tasks()
        if not tasks:
            tasks = self.save_tasks(seed_tasks_if_empty(tasks))
        return tasks

    # Persisting wrappers: save only when the edit succeeded.

    def _apply(self, result: tuple[list[Task], list[str]]) -> tuple[list[Task], list[str]]:
        tasks, errors = result
        if errors:
            return tasks, errors
        return self.save_tasks(tasks), []

    def add(self, title: str, points: Any = 1, is_core: bool = False, is_active: bool = True) -> tuple[list[Task], list[str]]:
        return self._apply(create_task(self.load_tasks(), title, points, is_core, is_active))

    def edit(self, task_id: str, **changes: Any) -> tuple[list[Task], list[str]]:
        return self._apply(update_task(self.load_tasks(), task_id, **changes))

    def toggle(self, task_id: str) -> tuple[list[Task], list[str]]:
        return self._apply(toggle_active(self.load_tasks(), task_id))

    def move(self, task_id: str, direction: int) -> list[Task]:
        return self.save_tasks(move_task(self.load_tasks(), task_id, direction))

    def remove(self, task_id: str) -> list[Task]:
        return self.save_tasks(remove_task(self.load_tasks(), task_id))
