"""Shared test fixtures for habitrank tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from habitrank.daylogs import DayLogStore
from habitrank.models import Task
from habitrank.storage import FileStore, MemoryStore
from habitrank.tasks import TaskRegistry


class FrozenClock:
    """Epoch-millis clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def tick(self, ms: int = 1000) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def storage() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def file_storage(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path / "store")


@pytest.fixture
def store(storage: MemoryStore, clock: FrozenClock) -> DayLogStore:
    return DayLogStore(storage, clock=clock)


@pytest.fixture
def registry(storage: MemoryStore) -> TaskRegistry:
    return TaskRegistry(storage)


@pytest.fixture
def sample_tasks() -> list[Task]:
    """Three core tasks and two bonus tasks, all active, plus a paused one."""
    return [
        Task(id="water", title="Drink water", points=0, is_core=True),
        Task(id="walk", title="Walk outside", points=0, is_core=True),
        Task(id="read", title="Read a page", points=0, is_core=True),
        Task(id="stretch", title="Stretch", points=10),
        Task(id="tidy", title="Tidy one thing", points=5),
        Task(id="paused", title="Journal", points=7, is_active=False),
    ]


@pytest.fixture
def legacy_blob() -> str:
    data = {
        "2024-01-15": {
            "date": "2024-01-15",
            "checks": {"water": True, "walk": False},
            "note": "first day",
            "excludeFromStats": False,
            "createdAt": 1705300000000,
            "updatedAt": 1705310000000,
        },
        "2024-02-01": {
            "date": "2024-02-01",
            "checks": {"water": True},
            "note": "",
            "createdAt": 1706770000000,
            "updatedAt": 1706780000000,
        },
    }
    return json.dumps(data)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary workspace root with a settings file."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "settings.yaml").write_text("timezone: Asia/Tokyo\nlog_level: debug\n", encoding="utf-8")
    monkeypatch.setenv("HABITRANK_ROOT", str(root))
    return root
