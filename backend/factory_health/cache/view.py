"""Pure state transitions for the client-side machine data view."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional

CacheState = Literal["empty", "loaded"]


class CacheActionType(str, Enum):
    LOAD = "load"
    REPLACE = "replace"
    RESET = "reset"
    SET_SCORES = "set_scores"


@dataclass(frozen=True)
class CacheAction:
    type: CacheActionType
    payload: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class CacheView:
    """One user's machines and scores; ``data`` is ``None`` while empty."""

    data: Optional[Dict[str, Any]] = field(default=None)

    @property
    def state(self) -> CacheState:
        return "empty" if self.data is None else "loaded"

    @property
    def machines(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.data.get("machines")) if self.data else None

    @property
    def scores(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.data.get("scores")) if self.data else None

    def as_payload(self) -> Dict[str, Any]:
        return copy.deepcopy(self.data) if self.data is not None else {}


EMPTY_VIEW = CacheView()


def reduce(view: CacheView, action: CacheAction) -> CacheView:
    if action.type is CacheActionType.LOAD:
        if action.payload is None:
            return EMPTY_VIEW
        return CacheView(data=copy.deepcopy(action.payload))
    if action.type is CacheActionType.REPLACE:
        return CacheView(data=copy.deepcopy(action.payload or {}))
    if action.type is CacheActionType.RESET:
        return EMPTY_VIEW
    if action.type is CacheActionType.SET_SCORES:
        merged = dict(view.data or {})
        merged["scores"] = copy.deepcopy(action.payload)
        return CacheView(data=merged)
    raise ValueError(f"Unsupported cache action: {action.type!r}")


__all__ = [
    "CacheAction",
    "CacheActionType",
    "CacheState",
    "CacheView",
    "EMPTY_VIEW",
    "reduce",
]
