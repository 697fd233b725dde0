"""Error types raised across the store, cache, and client."""

from __future__ import annotations

from typing import Any, Optional

from .models import ScoreResult


class FactoryHealthError(Exception):
    """Base class for factory health failures."""


class ScoringError(FactoryHealthError):
    """A submission was rejected by the score function."""

    def __init__(self, result: ScoreResult | str, **details: Any) -> None:
        if isinstance(result, str):
            result = ScoreResult.failure(result, **details)
        self.result = result
        super().__init__(result.error or "Submission could not be scored.")


class PersistenceError(FactoryHealthError):
    """Durable state could not be read or written."""


class SyncError(FactoryHealthError):
    """The machine health API could not be reached or answered unexpectedly."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


__all__ = [
    "FactoryHealthError",
    "PersistenceError",
    "ScoringError",
    "SyncError",
]
