"""Local JSON file stores with file locking and atomic replacement."""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from scan_and_fill.storage.adapter import KeyValueStore

logger = logging.getLogger(__name__)


@contextmanager
def file_lock(path: Path, exclusive: bool) -> Iterator[None]:
    """Hold a flock on ``<path>.lock``; the data file itself gets replaced on write."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = path.with_name(path.name + ".lock")
    with open(lock_path, "a") as lock:
        fcntl.flock(lock, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield
        finally:
            fcntl.flock(lock, fcntl.LOCK_UN)


@contextmanager
def try_lock(path: Path) -> Iterator[bool]:
    """Non-blocking exclusive flock on ``path`` itself; yields False if someone else holds it.

    flock locks belong to the open file, so this excludes other processes and
    other handles in the same process alike.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a") as lock:
        try:
            fcntl.flock(lock, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            yield False
            return
        try:
            yield True
        finally:
            fcntl.flock(lock, fcntl.LOCK_UN)


def read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt JSON store %s", path)
            return default


def write_json_atomic(path: Path, data: Any) -> None:
    """Write to a temp file in the same directory, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def read_json_locked(path: Path, default: Any) -> Any:
    with file_lock(path, exclusive=False):
        return read_json(path, default)


def write_json_locked(path: Path, data: Any) -> None:
    with file_lock(path, exclusive=True):
        write_json_atomic(path, data)


class JsonFileStore(KeyValueStore):
    """All records in one JSON object: {key: record}."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, dict[str, Any]]:
        data = read_json(self.path, {})
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> dict[str, Any] | None:
        with file_lock(self.path, exclusive=False):
            return self._load().get(key)

    def put(self, key: str, record: dict[str, Any]) -> None:
        with file_lock(self.path, exclusive=True):
            records = self._load()
            records[key] = record
            write_json_atomic(self.path, records)

    def delete(self, key: str) -> bool:
        with file_lock(self.path, exclusive=True):
            records = self._load()
            if key not in records:
                return False
            del records[key]
            write_json_atomic(self.path, records)
            return True

    def clear(self) -> int:
        with file_lock(self.path, exclusive=True):
            count = len(self._load())
            self.path.unlink(missing_ok=True)
            return count

    def keys(self) -> list[str]:
        with file_lock(self.path, exclusive=False):
            return list(self._load())


class JsonDirectoryStore(KeyValueStore):
    """One ``<key>.json`` file per record; suits large values such as OCR text."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        return read_json_locked(path, None)

    def put(self, key: str, record: dict[str, Any]) -> None:
        write_json_locked(self._path(key), record)

    def delete(self, key: str) -> bool:
        path = self._path(key)
        with file_lock(path, exclusive=True):
            existed = path.exists()
            path.unlink(missing_ok=True)
        path.with_name(path.name + ".lock").unlink(missing_ok=True)
        return existed

    def clear(self) -> int:
        count = 0
        for key in self.keys():
            if self.delete(key):
                count += 1
        return count

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))
