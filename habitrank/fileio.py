"""File and JSON helpers behind habitrank's on-disk store and settings.

Store values are JSON text, one file per key. Reads never raise on bad
content: a file that is not UTF-8 or a value that is not JSON comes back as
absent and is logged. Writes go through a temp file and a rename so a shard
is either the old version or the new one.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


def read_text(path: Path) -> str | None:
    """Text of *path*; None if it is missing or not valid UTF-8."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as e:
        logger.warning("Ignoring %s: not valid UTF-8 (%s)", path.name, e.reason)
        return None


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file, returning empty dict if missing, empty or not a mapping."""
    text = read_text(path)
    if not text or not text.strip():
        return {}
    result = yaml.safe_load(text)
    return result if isinstance(result, dict) else {}


def load_json(raw: str | None, source: str) -> Any:
    """Decode a stored JSON value. Missing, blank or broken text -> None."""
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, RecursionError):
        logger.warning("Ignoring unparseable value under %r", source)
        return None


def dump_json(value: Any) -> str:
    """Encode a value for storage; non-ASCII text is kept as is."""
    return json.dumps(value, ensure_ascii=False)


def _atomic_write(path: Path, content: str, suffix: str = ".tmp") -> None:
    """Atomic write with file locking: temp file + flock + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        os.rename(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def write_text_atomic(path: Path, content: str) -> None:
    """Atomic write of one store value."""
    _atomic_write(path, content, suffix=path.suffix or ".tmp")


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    """Atomic YAML write."""
    content = yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    _atomic_write(path, content, suffix=".yaml")


def remove_file(path: Path) -> bool:
    """Delete a file if it exists. Returns True if something was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
