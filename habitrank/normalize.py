"""Normalization and validation rules for task lists.

Applied on every registry load and save:
- core tasks carry 0 points (they share the fixed 100-point pool)
- bonus tasks carry an integer 1-10
- at most MAX_ACTIVE_CORE tasks are active and core at once; later ones in
  stored order are demoted to bonus tasks
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any

from habitrank.models import Task

MAX_ACTIVE_CORE = 5
MIN_POINTS = 1
MAX_POINTS = 10

CORE_LIMIT_ERROR = (
    f"At most {MAX_ACTIVE_CORE} core tasks can be active. "
    "Demote or pause another core task first."
)
BLANK_TITLE_ERROR = "Task title must not be blank"


def clamp_points(value: Any) -> int:
    """Round half-up to an integer in [MIN_POINTS, MAX_POINTS]; junk becomes MIN_POINTS."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return MIN_POINTS
    if not math.isfinite(value):
        return MIN_POINTS
    v = math.floor(value + 0.5)
    return min(MAX_POINTS, max(MIN_POINTS, v))


def normalize_points(task: Task) -> int:
    if task.is_core:
        return 0
    return clamp_points(task.points)


def normalize_tasks(tasks: list[Task]) -> tuple[list[Task], bool]:
    """Return (normalized copy, whether anything changed)."""
    out = []
    changed = False
    core_active = 0
    for task in tasks:
        is_core = task.is_core
        if task.is_active and is_core:
            if core_active >= MAX_ACTIVE_CORE:
                is_core = False
            else:
                core_active += 1
        fixed = replace(task, is_core=is_core)
        fixed.points = normalize_points(fixed)
        if fixed != task or type(task.points) is not int:
            changed = True
        out.append(fixed)
    return out, changed


def active_core_count(tasks: list[Task], exclude_id: str | None = None) -> int:
    return sum(1 for t in tasks if t.is_active and t.is_core and t.id != exclude_id)


def can_enable_core_active(tasks: list[Task], exclude_id: str | None = None) -> bool:
    """True if one more active core task fits, not counting *exclude_id*."""
    return active_core_count(tasks, exclude_id) < MAX_ACTIVE_CORE


def validate_title(title: str) -> list[str]:
    if not (title or "").strip():
        return [BLANK_TITLE_ERROR]
    return []
