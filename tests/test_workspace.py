"""Tests for habitrank/workspace.py, habitrank/dates.py and habitrank/fileio.py."""

from datetime import date
from zoneinfo import ZoneInfo

import pytest

from habitrank.dates import add_days, is_day_key, is_future_day, is_month_key, month_key, recent_days
from habitrank.fileio import load_json, read_text, read_yaml, write_text_atomic, write_yaml_atomic
from habitrank.workspace import (
    Settings,
    get_user_timezone,
    init_workspace,
    load_settings,
    now_ms,
    settings_path,
    store_path,
    today_str,
    workspace_root,
)


def test_workspace_root_from_env(workspace):
    assert workspace_root() == workspace.resolve()


def test_load_settings(workspace):
    settings = load_settings(workspace)
    assert settings.timezone == "Asia/Tokyo"
    assert settings.log_level == "DEBUG"


def test_load_settings_missing(tmp_path):
    assert load_settings(tmp_path) == Settings()


def test_load_settings_invalid_yaml(tmp_path):
    (tmp_path / "settings.yaml").write_text("timezone: [unclosed", encoding="utf-8")
    assert load_settings(tmp_path) == Settings()


def test_get_user_timezone(workspace, tmp_path):
    assert get_user_timezone(workspace) == ZoneInfo("Asia/Tokyo")
    (tmp_path / "settings.yaml").write_text("timezone: Mars/Olympus\n", encoding="utf-8")
    assert get_user_timezone(tmp_path) == ZoneInfo("UTC")


def test_today_str_is_iso(workspace):
    assert is_day_key(today_str(workspace))


def test_init_workspace(tmp_path):
    root = init_workspace(tmp_path / "fresh")
    assert store_path(root).is_dir()
    assert read_yaml(settings_path(root)) == {"timezone": "UTC", "log_level": "INFO"}


def test_init_workspace_keeps_existing_settings(workspace):
    init_workspace(workspace)
    assert load_settings(workspace).timezone == "Asia/Tokyo"


def test_now_ms_is_millis():
    assert now_ms() > 1_600_000_000_000


def test_atomic_writes(tmp_path):
    write_text_atomic(tmp_path / "a" / "b.txt", "hello")
    assert (tmp_path / "a" / "b.txt").read_text(encoding="utf-8") == "hello"
    write_yaml_atomic(tmp_path / "c.yaml", {"x": 1})
    assert read_yaml(tmp_path / "c.yaml") == {"x": 1}
    assert [p.name for p in tmp_path.iterdir() if p.name.startswith(".tmp_")] == []


def test_read_text_missing_or_undecodable(tmp_path):
    assert read_text(tmp_path / "missing.json") is None
    (tmp_path / "bad.json").write_bytes(b"\x80abc")
    assert read_text(tmp_path / "bad.json") is None


def test_load_json_tolerates_garbage():
    assert load_json(None, "k") is None
    assert load_json(" ", "k") is None
    assert load_json("{oops", "k") is None
    assert load_json("[1e400]", "k") == [float("inf")]


def test_read_yaml_non_mapping(tmp_path):
    (tmp_path / "l.yaml").write_text("- a\n- b\n", encoding="utf-8")
    assert read_yaml(tmp_path / "l.yaml") == {}


# ── Dates ─────────────────────────────────────────────────────


def test_day_and_month_keys():
    assert is_day_key("2024-02-29") is True
    assert is_day_key("2023-02-29") is False
    assert is_day_key("2024-1-05") is False
    assert is_day_key(20240105) is False
    assert is_month_key("2024-12") is True
    assert is_month_key("2024-13") is False


def test_month_key():
    assert month_key("2024-01-15") == "2024-01"
    with pytest.raises(ValueError):
        month_key("garbage")


def test_add_days_crosses_months():
    assert add_days("2024-02-28", 2) == "2024-03-01"
    assert add_days("2024-01-01", -1) == "2023-12-31"


def test_is_future_day():
    assert is_future_day("2024-03-11", "2024-03-10") is True
    assert is_future_day("2024-03-10", "2024-03-10") is False


def test_recent_days():
    days = recent_days(7, "2024-03-03")
    assert days[0] == "2024-02-26"
    assert days[-1] == "2024-03-03"
    assert len(days) == 7
    assert days == sorted(days)
    assert date.fromisoformat(days[3])
