"""Factory health backend: scored machine readings with a bounded per-user history."""

from .errors import FactoryHealthError, PersistenceError, ScoringError, SyncError
from .models import ScoreResult
from .record_store import RecordStore

__all__ = [
    "FactoryHealthError",
    "PersistenceError",
    "RecordStore",
    "ScoreResult",
    "ScoringError",
    "SyncError",
]
