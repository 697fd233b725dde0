"""Durable key-value byte storage backing the client cache."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from ..errors import PersistenceError
from ..persistence import write_atomic


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:  # pragma: no cover - protocol definition
        ...

    def set(self, key: str, value: bytes) -> None:  # pragma: no cover - protocol definition
        ...

    def remove(self, key: str) -> None:  # pragma: no cover - protocol definition
        ...


def _safe_component(value: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]+", "_", value)
    return cleaned.strip("._") or "item"


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._items: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._items[key] = bytes(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class FileKeyValueStore:
    """One file per key under ``root``; writes replace the file atomically."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{_safe_component(key)}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Could not read cache entry {key!r}: {exc}") from exc

    def set(self, key: str, value: bytes) -> None:
        try:
            write_atomic(self._path(key), value)
        except OSError as exc:
            raise PersistenceError(f"Could not write cache entry {key!r}: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Could not remove cache entry {key!r}: {exc}") from exc


__all__ = ["FileKeyValueStore", "KeyValueStore", "MemoryKeyValueStore"]
