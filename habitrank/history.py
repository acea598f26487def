"""History views over stored day logs: rows, chart points and averages.

Future days never count. Days marked excludeFromStats are left out unless
``include_excluded`` is set.
"""

from __future__ import annotations

import math

from habitrank.dates import is_future_day
from habitrank.models import DayLog, HistoryRow, HistorySummary, Task
from habitrank.scoring import compute_score


def round_score(value: float) -> int:
    """Half-up rounding for display."""
    return math.floor(value + 0.5)


def _in_window(day: str, today: str, since: str | None) -> bool:
    if since is not None and day < since:
        return False
    return not is_future_day(day, today)


def history_rows(
    tasks: list[Task],
    logs: dict[str, DayLog],
    today: str,
    since: str | None = None,
    include_excluded: bool = False,
) -> list[HistoryRow]:
    """One row per stored day, newest first."""
    rows = []
    for day in sorted(logs, reverse=True):
        log = logs[day]
        if not _in_window(day, today, since):
            continue
        if log.exclude_from_stats and not include_excluded:
            continue
        score = compute_score(tasks, log)
        rows.append(HistoryRow(
            date=day,
            raw_score=round_score(score.raw_score),
            show_rank=score.show_rank,
            rank=score.rank,
            note=log.note,
            updated_at=log.updated_at,
            exclude_from_stats=log.exclude_from_stats,
        ))
    return rows


def chart_points(
    tasks: list[Task],
    logs: dict[str, DayLog],
    dates: list[str],
    include_excluded: bool = False,
) -> list[tuple[str, int | None]]:
    """(date, rounded score) for each date; excluded days map to None to break the line."""
    points: list[tuple[str, int | None]] = []
    for day in dates:
        log = logs.get(day) or DayLog.empty(day)
        if log.exclude_from_stats and not include_excluded:
            points.append((day, None))
            continue
        points.append((day, round_score(compute_score(tasks, log).raw_score)))
    return points


def summarize_history(
    tasks: list[Task],
    logs: dict[str, DayLog],
    today: str,
    since: str | None = None,
    include_excluded: bool = False,
) -> HistorySummary:
    """Average score and core-miss count over stored, non-future days."""
    days = sorted(d for d in logs if since is None or d >= since)
    future_days = sum(1 for d in days if is_future_day(d, today))
    excluded_days = sum(1 for d in days if logs[d].exclude_from_stats)

    stats_days = [d for d in days if not is_future_day(d, today)]
    if not include_excluded:
        stats_days = [d for d in stats_days if not logs[d].exclude_from_stats]

    summary = HistorySummary(excluded_days=excluded_days, future_days=future_days)
    if not stats_days:
        return summary

    total = 0.0
    for day in stats_days:
        score = compute_score(tasks, logs[day])
        total += score.raw_score
        if score.core_incomplete_count > 0:
            summary.core_miss_days += 1
    summary.count = len(stats_days)
    summary.avg = total / len(stats_days)
    return summary
