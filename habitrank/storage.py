"""Key-value storage handles for habitrank.

Every persisted value is a JSON document stored as text under a string key.
The task registry and the day log store receive a handle explicitly; the
handle also carries the one-shot ``migration_done`` flag for day logs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from habitrank.fileio import dump_json, load_json, read_text, remove_file, write_text_atomic

logger = logging.getLogger(__name__)


class Storage:
    """Raw string key-value interface plus JSON helpers."""

    def __init__(self) -> None:
        self.migration_done = False

    def get_item(self, key: str) -> str | None:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError

    def has(self, key: str) -> bool:
        return self.get_item(key) is not None

    def read_json(self, key: str) -> Any:
        """Parse the value under *key*; missing, blank or invalid JSON -> None."""
        return load_json(self.get_item(key), key)

    def write_json(self, key: str, value: Any) -> None:
        self.set_item(key, dump_json(value))


class MemoryStore(Storage):
    """In-process dict store."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        super().__init__()
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def snapshot(self) -> dict[str, str]:
        """Copy of the full key space."""
        return dict(self._items)


class FileStore(Storage):
    """One ``<key>.json`` file per key inside *directory*."""

    SUFFIX = ".json"

    def __init__(self, directory: str | Path) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.debug("FileStore ready dir=%s", self.directory)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> str | None:
        """Raw text under *key*; None if missing or unreadable as UTF-8."""
        return read_text(self._path(key))

    def set_item(self, key: str, value: str) -> None:
        write_text_atomic(self._path(key), value)

    def remove_item(self, key: str) -> None:
        remove_file(self._path(key))

    def keys(self) -> list[str]:
        return sorted(
            p.name[: -len(self.SUFFIX)]
            for p in self.directory.glob(f"*{self.SUFFIX}")
            if not p.name.startswith(".")
        )
