"""Daily score and rank computation for habitrank.

Scoring rules:
- N active core tasks share a fixed 100-point pool, 100/N each
- checked active bonus tasks add their points on top, uncapped
- the rank is shown only when every active core task is checked
"""

from __future__ import annotations

from habitrank.models import DayLog, Rank, ScoreResult, Task

CORE_POOL = 100

# Inclusive lower bounds, highest first.
RANK_THRESHOLDS: tuple[tuple[float, Rank], ...] = (
    (150, Rank.SSS),
    (120, Rank.SS),
    (101, Rank.S),
)


def rank_of(score: float) -> Rank:
    """Map a raw score to a rank. 100 is the plain all-core day, rank A."""
    for threshold, rank in RANK_THRESHOLDS:
        if score >= threshold:
            return rank
    return Rank.A


def _count_done(tasks: list[Task], log: DayLog) -> int:
    return sum(1 for t in tasks if log.is_checked(t.id))


def _sum_bonus_points(tasks: list[Task], log: DayLog) -> int:
    return sum(t.points for t in tasks if log.is_checked(t.id))


def compute_score(tasks: list[Task], log: DayLog) -> ScoreResult:
    """Score one day. Pure; never raises for well-formed inputs."""
    actives = [t for t in tasks if t.is_active]
    cores = [t for t in actives if t.is_core]
    bonuses = [t for t in actives if not t.is_core]

    core_total = len(cores)
    core_unit = CORE_POOL / core_total if core_total > 0 else 0.0

    core_done = _count_done(cores, log)
    core_incomplete = core_total - core_done
    bonus_score = _sum_bonus_points(bonuses, log)

    raw_score = core_done * core_unit + bonus_score
    show_rank = core_total > 0 and core_incomplete == 0

    return ScoreResult(
        raw_score=float(raw_score),
        core_total=core_total,
        core_done=core_done,
        core_incomplete_count=core_incomplete,
        show_rank=show_rank,
        rank=rank_of(raw_score) if show_rank else None,
    )
