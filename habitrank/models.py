"""Typed dataclasses for the habitrank data model.

All persisted models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from habitrank.dates import is_day_key


# ── Tasks ─────────────────────────────────────────────────────


def _typed(d: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any) -> Any:
    value = d.get(key, default)
    if isinstance(value, bool) and kind is not bool:
        return default
    return value if isinstance(value, kind) else default


@dataclass
class Task:
    id: str = ""
    title: str = ""
    points: int = 1  # 0 for core tasks, 1-10 for bonus tasks once normalized
    is_core: bool = False
    is_active: bool = True

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        """Build a Task from its stored form.

        Raises ValueError if *d* is not an object with a non-empty string id.
        Fields of the wrong type fall back to their defaults; numeric points
        are taken as stored and clamped by normalization afterwards.
        """
        if not isinstance(d, dict):
            raise ValueError(f"Task entry must be an object, got {type(d).__name__}")
        task_id = d.get("id")
        if not isinstance(task_id, str) or not task_id:
            raise ValueError("Task entry is missing an id")
        return cls(
            id=task_id,
            title=_typed(d, "title", str, ""),
            points=_typed(d, "points", (int, float), 1),
            is_core=_typed(d, "isCore", bool, False),
            is_active=_typed(d, "isActive", bool, True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "points": self.points,
            "isCore": self.is_core,
            "isActive": self.is_active,
        }


# ── Day logs ──────────────────────────────────────────────────


def _optional_millis(d: dict[str, Any], key: str) -> int | None:
    value = d.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be epoch milliseconds")
    if not math.isfinite(value):
        raise ValueError(f"{key} is not a finite number")
    return int(value)


@dataclass
class DayLog:
    date: str
    checks: dict[str, bool] = field(default_factory=dict)
    note: str = ""
    exclude_from_stats: bool = False
    created_at: int | None = None
    updated_at: int | None = None

    @classmethod
    def empty(cls, day: str) -> DayLog:
        """The record shown for a day nothing has been written for."""
        return cls(date=day)

    def is_empty(self) -> bool:
        """No check set, blank note and counted in stats: nothing worth storing."""
        if self.exclude_from_stats:
            return False
        if self.note.strip():
            return False
        return not any(self.checks.values())

    def is_checked(self, task_id: str) -> bool:
        return bool(self.checks.get(task_id, False))

    @classmethod
    def from_dict(cls, day: str, d: dict[str, Any]) -> DayLog:
        """Parse one stored record keyed by *day*.

        The schema is strict: anything that does not match raises ValueError
        so the caller can treat the record as absent.
        """
        if not is_day_key(day):
            raise ValueError(f"Invalid day key: {day!r}")
        if not isinstance(d, dict):
            raise ValueError(f"Day log for {day} must be an object")
        checks = d.get("checks")
        if not isinstance(checks, dict):
            raise ValueError(f"Day log for {day} has no checks object")
        for task_id, value in checks.items():
            if not isinstance(task_id, str) or not isinstance(value, bool):
                raise ValueError(f"Day log for {day} has a malformed check entry")
        note = d.get("note")
        if note is not None and not isinstance(note, str):
            raise ValueError(f"Day log for {day} has a non-string note")
        exclude = d.get("excludeFromStats")
        if exclude is not None and not isinstance(exclude, bool):
            raise ValueError(f"Day log for {day} has a non-boolean excludeFromStats")
        return cls(
            date=day,
            checks=dict(checks),
            note=note or "",
            exclude_from_stats=bool(exclude),
            created_at=_optional_millis(d, "createdAt"),
            updated_at=_optional_millis(d, "updatedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "date": self.date,
            "checks": dict(self.checks),
            "note": self.note,
            "excludeFromStats": self.exclude_from_stats,
        }
        if self.created_at is not None:
            d["createdAt"] = self.created_at
        if self.updated_at is not None:
            d["updatedAt"] = self.updated_at
        return d


# ── Scoring ───────────────────────────────────────────────────


class Rank(str, Enum):
    A = "A"
    S = "S"
    SS = "SS"
    SSS = "SSS"


@dataclass
class ScoreResult:
    raw_score: float = 0.0
    core_total: int = 0
    core_done: int = 0
    core_incomplete_count: int = 0
    show_rank: bool = False
    rank: Rank | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rawScore": self.raw_score,
            "coreTotal": self.core_total,
            "coreDone": self.core_done,
            "coreIncompleteCount": self.core_incomplete_count,
            "showRank": self.show_rank,
            "rank": self.rank.value if self.rank else None,
        }


# ── History ───────────────────────────────────────────────────


@dataclass
class HistoryRow:
    date: str = ""
    raw_score: int = 0
    show_rank: bool = False
    rank: Rank | None = None
    note: str = ""
    updated_at: int | None = None
    exclude_from_stats: bool = False


@dataclass
class HistorySummary:
    avg: float = 0.0
    core_miss_days: int = 0
    count: int = 0
    excluded_days: int = 0
    future_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg": round(self.avg, 3),
            "coreMissDays": self.core_miss_days,
            "count": self.count,
            "excludedDays": self.excluded_days,
            "futureDays": self.future_days,
        }
