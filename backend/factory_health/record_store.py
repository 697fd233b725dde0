"""Per-user bounded history of machine health submissions."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import PersistenceError, ScoringError
from .machine_health import calculate_machine_health
from .models import IDENTITY_FIELD, SCORE_FIELD, Record, ScoreResult, Submission, UserHistory
from .persistence import DocumentPort
from .telemetry import emit_event

logger = logging.getLogger(__name__)

# Eviction runs when a history already holds more than this many records, so a
# full history carries DEFAULT_HISTORY_LIMIT + 1 entries.
DEFAULT_HISTORY_LIMIT = 10

ScoreFunction = Callable[[Submission], Any]


def _normalize_username(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError("Username cannot be empty.")
    return normalized


def _find_record(history: UserHistory, machines: Any) -> Optional[int]:
    for index, record in enumerate(history):
        if record.get(IDENTITY_FIELD) == machines:
            return index
    return None


def _compact_history(records: UserHistory, history_limit: int) -> UserHistory:
    """Keep the newest record per identity key and at most ``history_limit + 1`` records."""
    compacted: UserHistory = []
    for record in records:
        index = _find_record(compacted, record.get(IDENTITY_FIELD))
        if index is not None:
            compacted.pop(index)
        compacted.append(record)
    return compacted[-(history_limit + 1):]


def _coerce_document(document: Mapping[str, Any], history_limit: int) -> Dict[str, UserHistory]:
    histories: Dict[str, UserHistory] = {}
    for username, entries in document.items():
        if not isinstance(entries, list):
            logger.warning("Skipping machine data for %s; expected a list of records", username)
            continue
        records = [entry for entry in entries if isinstance(entry, dict)]
        if len(records) != len(entries):
            logger.warning("Dropped %d malformed records for %s", len(entries) - len(records), username)
        try:
            key = _normalize_username(username)
        except ValueError:
            logger.warning("Skipping machine data stored under a blank username")
            continue
        if key in histories:
            logger.warning("Merging machine data stored under %s into %s", username, key)
        histories.setdefault(key, []).extend(records)

    for key, records in histories.items():
        compacted = _compact_history(records, history_limit)
        if len(compacted) != len(records):
            logger.warning("Dropped %d surplus records for %s", len(records) - len(compacted), key)
        histories[key] = compacted
    return histories


class RecordStore:
    """Owns every user's history and persists the whole mapping after each change.

    Mutations are staged on a copy of the mapping and only become visible once
    the document write succeeds, so a failed write leaves memory untouched.
    """

    def __init__(
        self,
        port: DocumentPort,
        score: ScoreFunction = calculate_machine_health,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        histories: Optional[Mapping[str, UserHistory]] = None,
    ) -> None:
        if history_limit < 0:
            raise ValueError("history_limit cannot be negative.")
        self._port = port
        self._score = score
        self._history_limit = history_limit
        self._histories: Dict[str, UserHistory] = copy.deepcopy(dict(histories or {}))
        self._lock = threading.RLock()

    @classmethod
    def load(
        cls,
        port: DocumentPort,
        score: ScoreFunction = calculate_machine_health,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> "RecordStore":
        try:
            document = port.read()
        except PersistenceError:
            logger.exception("Failed to load machine data; starting with an empty store")
            document = {}
        else:
            if document is None:
                document = {}
                try:
                    port.write(document)
                except PersistenceError:
                    logger.exception("Failed to initialise an empty machine data document")
        if history_limit < 0:
            raise ValueError("history_limit cannot be negative.")
        histories = _coerce_document(document, history_limit)
        logger.info("Loaded machine data for %d users", len(histories))
        return cls(port, score, history_limit=history_limit, histories=histories)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def submit(self, username: str, submission: Submission) -> ScoreResult:
        normalized = _normalize_username(username)
        result = self._evaluate(submission)
        if not result.ok:
            logger.info("Rejected machine data for %s: %s", normalized, result.error)
            emit_event("machine_health_rejected", username=normalized, error=result.error)
            return result

        record: Record = {**copy.deepcopy(dict(submission)), SCORE_FIELD: result.as_payload()}
        evicted: Optional[Record] = None
        with self._lock:
            staged = dict(self._histories)
            history = list(staged.get(normalized, []))
            index = _find_record(history, record.get(IDENTITY_FIELD))
            if index is not None:
                history[index] = {**history[index], **record}
                action = "updated"
            else:
                if len(history) > self._history_limit:
                    evicted = history.pop(0)
                history.append(record)
                action = "appended"
            staged[normalized] = history
            self._port.write(staged)
            self._histories = staged
            size = len(history)

        logger.info("Machine data %s for %s (%d records)", action, normalized, size)
        emit_event(
            "machine_health_recorded",
            username=normalized,
            action=action,
            evicted=evicted is not None,
            history_size=size,
        )
        return result

    def list_user(self, username: str) -> UserHistory:
        try:
            normalized = _normalize_username(username)
        except ValueError:
            return []
        with self._lock:
            history = self._histories.get(normalized)
            return copy.deepcopy(history) if history else []

    def list_usernames(self) -> List[str]:
        with self._lock:
            return sorted(self._histories)

    def delete_user(self, username: str) -> int:
        try:
            normalized = _normalize_username(username)
        except ValueError:
            return 0
        with self._lock:
            if normalized not in self._histories:
                logger.info("No machine data found for %s", normalized)
                return 0
            staged = dict(self._histories)
            removed = len(staged.pop(normalized))
            self._port.write(staged)
            self._histories = staged
        logger.info("Cleared %d machine data records for %s", removed, normalized)
        emit_event("machine_data_cleared", username=normalized, removed=removed)
        return removed

    def _evaluate(self, submission: Submission) -> ScoreResult:
        try:
            return ScoreResult.coerce(self._score(submission))
        except ScoringError as exc:
            return exc.result


__all__ = ["DEFAULT_HISTORY_LIMIT", "RecordStore", "ScoreFunction"]
