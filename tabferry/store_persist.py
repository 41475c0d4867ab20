"""Persistent key-value store shared by every tab worker and process.

Design
- One small JSON document (default `~/.tabferry/store.json`).
- Atomic writes: write temp file then replace.
- Every read-modify-write holds an exclusive flock on a sibling `.lock` file,
  so two processes never interleave; otherwise last writer wins.
- Fail-soft loads: a corrupt file reads as empty.

Security posture
- Not encrypted; readable only by the owning user (0600).
"""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import sys
import threading
import time
from collections.abc import Generator
from pathlib import Path
from typing import Any, Protocol


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def put(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """Dict-backed store with the same contract as JsonFileStore."""

    def __init__(self, items: dict[str, Any] | None = None) -> None:
        self._items: dict[str, Any] = dict(items or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._items.get(key, default)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._items[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._items)


@contextlib.contextmanager
def _file_lock(path: Path) -> Generator[None, None, None]:
    """Exclusive inter-process lock; degrades to no lock where locking is unavailable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fp = open(path, "a+", encoding="utf-8")  # noqa: SIM115
    locked = False
    try:
        try:
            if sys.platform == "win32":
                import msvcrt  # type: ignore

                msvcrt.locking(fp.fileno(), msvcrt.LK_LOCK, 1)
            else:
                import fcntl

                fcntl.flock(fp.fileno(), fcntl.LOCK_EX)
            locked = True
        except OSError:
            locked = False
        yield
    finally:
        if locked:
            with contextlib.suppress(Exception):
                if sys.platform == "win32":
                    import msvcrt  # type: ignore

                    msvcrt.locking(fp.fileno(), msvcrt.LK_UNLCK, 1)
                else:
                    import fcntl

                    fcntl.flock(fp.fileno(), fcntl.LOCK_UN)
        with contextlib.suppress(Exception):
            fp.close()


class JsonFileStore:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        # flock is per open file description; threads of one process also need a mutex.
        self._mutex = threading.Lock()

    def _load(self) -> dict[str, Any]:
        p = self.path
        try:
            if not p.exists() or not p.is_file():
                return {}
            obj = json.loads(p.read_text(encoding="utf-8", errors="replace"))
        except Exception:
            return {}
        if not isinstance(obj, dict):
            return {}
        items = obj.get("items")
        if not isinstance(items, dict):
            return {}
        return {k: v for k, v in items.items() if isinstance(k, str) and k}

    def _save(self, items: dict[str, Any]) -> None:
        p = self.path
        p.parent.mkdir(parents=True, exist_ok=True)

        payload = {"version": 1, "updatedAt": int(time.time() * 1000), "items": items}
        text = json.dumps(payload, ensure_ascii=True, indent=2, sort_keys=True)

        tmp = p.with_suffix(p.suffix + ".tmp")
        bak = p.with_suffix(p.suffix + ".bak")
        with contextlib.suppress(OSError):
            if p.exists() and p.is_file():
                shutil.copyfile(p, bak)

        tmp.write_text(text, encoding="utf-8")
        with contextlib.suppress(OSError):
            os.chmod(tmp, 0o600)
        tmp.replace(p)
        with contextlib.suppress(OSError):
            os.chmod(p, 0o600)

    def get(self, key: str, default: Any = None) -> Any:
        with self._mutex, _file_lock(self._lock_path):
            return self._load().get(key, default)

    def put(self, key: str, value: Any) -> None:
        with self._mutex, _file_lock(self._lock_path):
            items = self._load()
            items[key] = value
            self._save(items)

    def delete(self, key: str) -> None:
        with self._mutex, _file_lock(self._lock_path):
            items = self._load()
            if key in items:
                del items[key]
                self._save(items)

    def keys(self) -> list[str]:
        with self._mutex, _file_lock(self._lock_path):
            return sorted(self._load())


__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore"]
