"""Wire models shared by the record store, routes, and client."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

Submission = Dict[str, Any]
"""Caller-supplied payload; only its ``machines`` field is interpreted."""

Record = Dict[str, Any]
"""A stored submission with its ``machineHealth`` score attached."""

UserHistory = List[Record]

IDENTITY_FIELD = "machines"
SCORE_FIELD = "machineHealth"


class ScoreResult(BaseModel):
    """Outcome of scoring a submission.

    Success payloads are opaque to the store and travel as extra fields
    (``factory`` and ``machineScores`` for the built-in scorer). A populated
    ``error`` marks a rejected submission.
    """

    model_config = ConfigDict(extra="allow")

    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, **values: Any) -> "ScoreResult":
        return cls(**values)

    @classmethod
    def failure(cls, message: str, **details: Any) -> "ScoreResult":
        return cls(error=message, **details)

    @classmethod
    def coerce(cls, value: Any) -> "ScoreResult":
        if isinstance(value, ScoreResult):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        raise TypeError(f"Score function returned unsupported value: {type(value).__name__}")

    def as_payload(self) -> Dict[str, Any]:
        payload = copy.deepcopy(self.model_dump(mode="json"))
        if self.error is None:
            payload.pop("error", None)
        return payload


__all__ = [
    "IDENTITY_FIELD",
    "Record",
    "SCORE_FIELD",
    "ScoreResult",
    "Submission",
    "UserHistory",
]
