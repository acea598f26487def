"""Tests for habitrank/daylogs.py: sharded day log persistence."""

import json

import pytest

from habitrank.daylogs import DayLogStore, is_empty_day_log, shard_key
from habitrank.models import DayLog
from habitrank.storage import FileStore


def _log(day: str, **kwargs) -> DayLog:
    kwargs.setdefault("checks", {"water": True})
    return DayLog(date=day, **kwargs)


def test_get_missing_returns_default(store):
    log = store.get_day_log("2024-03-01")
    assert log == DayLog(date="2024-03-01", checks={}, note="", exclude_from_stats=False)
    assert log.created_at is None
    assert log.updated_at is None


def test_get_invalid_day_returns_default(store, storage):
    log = store.get_day_log("2024-13-01")
    assert log == DayLog.empty("2024-13-01")
    assert storage.keys() == []


def test_writes_with_invalid_day_are_skipped(store, storage):
    assert store.upsert_day_log(_log("2024-02-30")) is None
    assert store.delete_day_log("not-a-day") is False
    store.save_day_log_map({"2024-03-01": _log("2024-03-01"), "junk": _log("junk")})
    assert storage.keys() == [shard_key("2024-03")]


def test_upsert_then_get(store):
    store.upsert_day_log(_log("2024-03-01", note="good day", exclude_from_stats=True))
    log = store.get_day_log("2024-03-01")
    assert log.checks == {"water": True}
    assert log.note == "good day"
    assert log.exclude_from_stats is True


def test_upsert_writes_month_shard(store, storage):
    store.upsert_day_log(_log("2024-03-01"))
    data = json.loads(storage.get_item(shard_key("2024-03")))
    assert list(data) == ["2024-03-01"]
    assert data["2024-03-01"]["checks"] == {"water": True}


def test_created_at_is_first_write_wins(store, clock):
    first = store.upsert_day_log(_log("2024-03-01"))
    created = first.created_at
    assert created == clock.now
    previous_updated = first.updated_at
    for i in range(5):
        clock.tick()
        store.upsert_day_log(_log("2024-03-01", note=f"edit {i}", created_at=123))
        log = store.get_day_log("2024-03-01")
        assert log.created_at == created
        assert log.updated_at > previous_updated
        previous_updated = log.updated_at


def test_updated_at_equal_under_frozen_clock(store):
    a = store.upsert_day_log(_log("2024-03-01"))
    b = store.upsert_day_log(_log("2024-03-01", note="again"))
    assert b.updated_at == a.updated_at


def test_first_write_keeps_supplied_created_at(store):
    stored = store.upsert_day_log(_log("2024-03-01", created_at=42))
    assert stored.created_at == 42


def test_empty_log_is_never_stored(store, storage):
    store.upsert_day_log(_log("2024-03-01", note="x"))
    result = store.upsert_day_log(DayLog(date="2024-03-01", checks={"water": False}, note="   "))
    assert result is None
    assert store.get_day_log("2024-03-01") == DayLog.empty("2024-03-01")
    assert storage.get_item(shard_key("2024-03")) is None


def test_excluded_day_with_nothing_else_is_kept(store):
    store.upsert_day_log(DayLog(date="2024-03-01", exclude_from_stats=True))
    assert store.get_day_log("2024-03-01").exclude_from_stats is True


def test_false_checks_are_kept(store):
    store.upsert_day_log(_log("2024-03-01", checks={"water": True, "walk": False}))
    assert store.get_day_log("2024-03-01").checks == {"water": True, "walk": False}


def test_delete(store):
    store.upsert_day_log(_log("2024-03-01"))
    store.upsert_day_log(_log("2024-03-02"))
    assert store.delete_day_log("2024-03-01") is True
    assert store.get_day_log("2024-03-01") == DayLog.empty("2024-03-01")
    assert store.get_day_log("2024-03-02").checks == {"water": True}


def test_delete_missing_is_noop(store, storage):
    assert store.delete_day_log("2024-03-01") is False
    assert storage.keys() == []


def test_delete_last_entry_removes_shard(store):
    store.upsert_day_log(_log("2024-03-01"))
    store.delete_day_log("2024-03-01")
    assert store.list_available_months() == []


def test_list_available_months_descending(store, storage):
    for day in ("2023-12-31", "2024-02-10", "2024-01-05", "2024-02-11"):
        store.upsert_day_log(_log(day))
    storage.set_item("daylogs_v2_garbage", "{}")
    storage.set_item("tasks", "[]")
    assert store.list_available_months() == ["2024-02", "2024-01", "2023-12"]


def test_load_day_log_map_for_month(store):
    store.upsert_day_log(_log("2024-01-05"))
    store.upsert_day_log(_log("2024-02-10"))
    month = store.load_day_log_map_for_month("2024-02")
    assert list(month) == ["2024-02-10"]
    assert store.load_day_log_map_for_month("2024-05") == {}


def test_load_day_log_map_for_invalid_month(store):
    assert store.load_day_log_map_for_month("2024-2") == {}


def test_load_day_log_map_merges_months(store):
    store.upsert_day_log(_log("2024-01-05"))
    store.upsert_day_log(_log("2024-02-10"))
    assert sorted(store.load_day_log_map()) == ["2024-01-05", "2024-02-10"]


def test_save_day_log_map_rebuckets(store, storage):
    store.save_day_log_map({
        "2024-01-05": _log("2024-01-05", updated_at=5),
        "2024-02-10": _log("2024-02-10"),
        "2024-02-11": DayLog(date="2024-02-11"),
    })
    assert store.list_available_months() == ["2024-02", "2024-01"]
    feb = json.loads(storage.get_item(shard_key("2024-02")))
    assert list(feb) == ["2024-02-10"]
    assert store.get_day_log("2024-01-05").updated_at == 5


def test_save_day_log_map_replaces_full_history(store):
    store.upsert_day_log(_log("2023-11-01"))
    store.save_day_log_map({"2024-02-10": _log("2024-02-10")})
    assert store.list_available_months() == ["2024-02"]


def test_corrupt_shard_reads_as_empty(store, storage):
    storage.set_item(shard_key("2024-03"), "not json at all")
    assert store.get_day_log("2024-03-01") == DayLog.empty("2024-03-01")
    assert store.load_day_log_map_for_month("2024-03") == {}


def test_malformed_records_are_treated_as_absent(store, storage):
    storage.write_json(shard_key("2024-03"), {
        "2024-03-01": {"checks": {"water": "yes"}},
        "2024-03-02": {"tasks": {"water": True}},
        "2024-03-03": {"checks": {"water": True}, "note": "ok"},
        "2024-04-01": {"checks": {"water": True}},
        "not-a-day": {"checks": {}},
    })
    logs = store.load_day_log_map_for_month("2024-03")
    assert list(logs) == ["2024-03-03"]
    assert logs["2024-03-03"].note == "ok"


def test_file_store_backend(file_storage, clock):
    store = DayLogStore(file_storage, clock=clock)
    store.upsert_day_log(_log("2024-03-01", note="on disk"))
    assert (file_storage.directory / "daylogs_v2_2024-03.json").exists()
    fresh = DayLogStore(FileStore(file_storage.directory), clock=clock)
    assert fresh.get_day_log("2024-03-01").note == "on disk"
    assert fresh.list_available_months() == ["2024-03"]


@pytest.mark.parametrize("stamp", ["1e400", "-1e400"])
def test_non_finite_timestamp_drops_only_that_record(store, storage, stamp):
    storage.set_item(
        shard_key("2024-03"),
        '{"2024-03-01": {"checks": {"a": true}, "createdAt": %s},'
        ' "2024-03-02": {"checks": {"a": true}}}' % stamp,
    )
    assert store.get_day_log("2024-03-01") == DayLog.empty("2024-03-01")
    assert list(store.load_day_log_map_for_month("2024-03")) == ["2024-03-02"]


def test_undecodable_shard_file_reads_as_empty(file_storage, clock):
    (file_storage.directory / "daylogs_v2_2024-03.json").write_bytes(b'{"2024-03-01": \xff}')
    store = DayLogStore(file_storage, clock=clock)
    assert store.get_day_log("2024-03-01") == DayLog.empty("2024-03-01")
    assert store.load_day_log_map() == {}
    stored = store.upsert_day_log(_log("2024-03-01"))
    assert store.get_day_log("2024-03-01") == stored


def test_is_empty_day_log():
    assert is_empty_day_log(DayLog.empty("2024-03-01")) is True
    assert is_empty_day_log(DayLog(date="2024-03-01", checks={"a": False}, note=" ")) is True
    assert is_empty_day_log(_log("2024-03-01")) is False
    assert is_empty_day_log(DayLog(date="2024-03-01", exclude_from_stats=True)) is False
