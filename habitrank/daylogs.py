"""Per-day check-in records, sharded by month, for habitrank.

Storage layout:
    daylogs_v2_<YYYY-MM>   {date: DayLog} for one calendar month
    daylogs_v1             legacy {date: DayLog} for all history (migrated away)
    daylogs_v1_backup      verbatim copy of the legacy value, never deleted

The legacy value is migrated the first time a store touches the storage
handle. Entries already present in a month shard win over legacy entries.
Writes load the whole shard, change it and write the whole shard back; a
shard that ends up with no entries is removed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from habitrank.dates import is_day_key, is_month_key, month_key
from habitrank.models import DayLog
from habitrank.storage import Storage
from habitrank.workspace import now_ms

logger = logging.getLogger(__name__)

LEGACY_KEY = "daylogs_v1"
BACKUP_KEY = "daylogs_v1_backup"
SHARD_PREFIX = "daylogs_v2_"


def shard_key(month: str) -> str:
    return f"{SHARD_PREFIX}{month}"


def parse_day_log_map(data: Any, source: str) -> dict[str, DayLog]:
    """Parse a stored {date: record} object, dropping records that don't fit the schema."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected an object, got %s", source, type(data).__name__)
        return {}
    out = {}
    for day, entry in data.items():
        try:
            out[day] = DayLog.from_dict(day, entry)
        except ValueError as e:
            logger.warning("Dropping day log from %s: %s", source, e)
    return out


def is_empty_day_log(log: DayLog) -> bool:
    """True when *log* carries nothing worth storing; such logs are deleted, not written."""
    return log.is_empty()


def bucket_by_month(logs: dict[str, DayLog]) -> dict[str, dict[str, DayLog]]:
    buckets: dict[str, dict[str, DayLog]] = defaultdict(dict)
    for day, log in logs.items():
        buckets[month_key(day)][day] = log
    return dict(buckets)


class DayLogStore:
    """Reads and writes day logs through an injected storage handle."""

    def __init__(self, storage: Storage, clock: Callable[[], int] = now_ms) -> None:
        self.storage = storage
        self.clock = clock

    # ── Migration ────────────────────────────────────────────

    def migrate(self) -> int:
        """Move the legacy single-value history into month shards.

        Runs once per storage handle; later calls return 0 immediately.
        Returns the number of legacy records written into shards.
        """
        if self.storage.migration_done:
            return 0

        raw = self.storage.get_item(LEGACY_KEY)
        if raw is None:
            self.storage.migration_done = True
            return 0

        if not self.storage.has(BACKUP_KEY):
            self.storage.set_item(BACKUP_KEY, raw)
            logger.info("Backed up legacy day logs to %s", BACKUP_KEY)

        legacy = parse_day_log_map(self.storage.read_json(LEGACY_KEY), LEGACY_KEY)
        legacy = {day: log for day, log in legacy.items() if not is_empty_day_log(log)}

        written = 0
        for month, incoming in sorted(bucket_by_month(legacy).items()):
            existing = self._load_shard(month)
            merged = {**incoming, **existing}
            written += sum(1 for day in incoming if day not in existing)
            self._write_shard(month, merged)

        self.storage.remove_item(LEGACY_KEY)
        self.storage.migration_done = True
        logger.info("Migrated %d legacy day logs into month shards", written)
        return written

    # ── Shards ───────────────────────────────────────────────

    def _load_shard(self, month: str) -> dict[str, DayLog]:
        key = shard_key(month)
        logs = parse_day_log_map(self.storage.read_json(key), key)
        stray = [day for day in logs if not day.startswith(f"{month}-")]
        for day in stray:
            logger.warning("Dropping day log %s filed under %s", day, key)
            del logs[day]
        return logs

    def _write_shard(self, month: str, logs: dict[str, DayLog]) -> None:
        key = shard_key(month)
        if not logs:
            self.storage.remove_item(key)
            return
        self.storage.write_json(key, {day: logs[day].to_dict() for day in sorted(logs)})

    # ── Single-day API ───────────────────────────────────────

    def get_day_log(self, day: str) -> DayLog:
        """Stored record for *day*, or an empty default without timestamps."""
        if not is_day_key(day):
            logger.warning("get_day_log: invalid day %r", day)
            return DayLog.empty(day)
        self.migrate()
        stored = self._load_shard(month_key(day)).get(day)
        return stored if stored is not None else DayLog.empty(day)

    def upsert_day_log(self, log: DayLog) -> DayLog | None:
        """Write *log*, keeping the first createdAt and stamping updatedAt.

        An empty log is deleted instead of stored; returns None in that case,
        otherwise the record as stored.
        """
        if not is_day_key(log.date):
            logger.warning("upsert_day_log: invalid day %r, nothing written", log.date)
            return None
        month = month_key(log.date)
        self.migrate()
        if is_empty_day_log(log):
            self.delete_day_log(log.date)
            return None

        shard = self._load_shard(month)
        prev = shard.get(log.date)
        now = self.clock()
        if prev is not None and prev.created_at is not None:
            created = prev.created_at
        elif log.created_at is not None:
            created = log.created_at
        else:
            created = now

        stored = replace(log, checks=dict(log.checks), created_at=created, updated_at=now)
        shard[log.date] = stored
        self._write_shard(month, shard)
        return stored

    def delete_day_log(self, day: str) -> bool:
        """Remove the record for *day*. Returns False if there was none."""
        if not is_day_key(day):
            logger.warning("delete_day_log: invalid day %r", day)
            return False
        month = month_key(day)
        self.migrate()
        shard = self._load_shard(month)
        if day not in shard:
            return False
        del shard[day]
        self._write_shard(month, shard)
        return True

    # ── Month / full-history API ─────────────────────────────

    def list_available_months(self) -> list[str]:
        """All stored months, most recent first."""
        self.migrate()
        months = [
            key[len(SHARD_PREFIX):]
            for key in self.storage.keys()
            if key.startswith(SHARD_PREFIX) and is_month_key(key[len(SHARD_PREFIX):])
        ]
        return sorted(months, reverse=True)

    def load_day_log_map_for_month(self, month: str) -> dict[str, DayLog]:
        """Records stored for one ``YYYY-MM``; an invalid month yields {}."""
        if not is_month_key(month):
            logger.warning("load_day_log_map_for_month: invalid month %r", month)
            return {}
        self.migrate()
        return self._load_shard(month)

    def load_day_log_map(self) -> dict[str, DayLog]:
        """Every stored record across all months."""
        out: dict[str, DayLog] = {}
        for month in self.list_available_months():
            out.update(self._load_shard(month))
        return out

    def save_day_log_map(self, logs: dict[str, DayLog]) -> None:
        """Replace the full history with *logs*, re-bucketed by month.

        Records are written as given (no timestamp stamping); empty ones are
        skipped and months missing from *logs* are removed.
        """
        self.migrate()
        kept = {}
        for day, log in logs.items():
            if not is_day_key(day):
                logger.warning("save_day_log_map: skipping invalid day %r", day)
            elif not is_empty_day_log(log):
                kept[day] = replace(log, date=day)
        buckets = bucket_by_month(kept)
        for month in self.list_available_months():
            if month not in buckets:
                self.storage.remove_item(shard_key(month))
        for month, shard in buckets.items():
            self._write_shard(month, shard)
