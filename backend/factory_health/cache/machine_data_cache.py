"""Client-held mirror of one user's machine data view."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict

from ..errors import PersistenceError
from .key_value import KeyValueStore
from .view import EMPTY_VIEW, CacheAction, CacheActionType, CacheView, reduce

logger = logging.getLogger(__name__)

CACHE_KEY = "machineData"


class MachineDataCache:
    """Applies view transitions and persists the result to local storage.

    Every operation holds the instance lock from transition through write, so
    a score merge never races a concurrent replace or reset.
    """

    def __init__(self, storage: KeyValueStore, key: str = CACHE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._view = EMPTY_VIEW
        self._lock = threading.RLock()

    @property
    def view(self) -> CacheView:
        with self._lock:
            return self._view

    def load(self) -> CacheView:
        with self._lock:
            self._view = reduce(self._view, CacheAction(CacheActionType.LOAD, self._read_persisted()))
            return self._view

    def replace(self, data: Dict[str, Any]) -> CacheView:
        with self._lock:
            self._view = reduce(self._view, CacheAction(CacheActionType.REPLACE, data))
            self._persist()
            return self._view

    def reset(self) -> CacheView:
        with self._lock:
            self._view = reduce(self._view, CacheAction(CacheActionType.RESET))
            try:
                self._storage.remove(self._key)
            except PersistenceError:
                logger.exception("Error removing %s from local storage", self._key)
                raise
            return self._view

    def set_scores(self, scores: Dict[str, Any]) -> CacheView:
        with self._lock:
            self._view = reduce(self._view, CacheAction(CacheActionType.SET_SCORES, scores))
            self._persist()
            return self._view

    def _read_persisted(self) -> Dict[str, Any] | None:
        try:
            raw = self._storage.get(self._key)
        except PersistenceError as exc:
            logger.warning("Ignoring unreadable %s in local storage: %s", self._key, exc)
            return None
        if raw is None:
            return None
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("Ignoring corrupt %s in local storage: %s", self._key, exc)
            return None
        if not isinstance(payload, dict):
            logger.warning("Ignoring %s in local storage; expected a JSON object", self._key)
            return None
        return payload

    def _persist(self) -> None:
        content = json.dumps(self._view.as_payload()).encode("utf-8")
        try:
            self._storage.set(self._key, content)
        except PersistenceError:
            logger.exception("Error writing %s to local storage", self._key)
            raise


__all__ = ["CACHE_KEY", "MachineDataCache"]
