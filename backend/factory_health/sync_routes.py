"""Machine data endpoints used by the mobile client to sync submission history."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import PersistenceError
from .persistence import JsonDocumentFile
from .record_store import RecordStore


router = APIRouter(tags=["machine-data"])
logger = logging.getLogger(__name__)

_record_store: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    global _record_store
    if _record_store is None:
        settings = get_settings()
        _record_store = RecordStore.load(
            JsonDocumentFile(settings.data_path),
            history_limit=settings.history_limit,
        )
    return _record_store


def reset_record_store() -> None:
    global _record_store
    _record_store = None


def _require_username(username: str) -> str:
    trimmed = username.strip()
    if not trimmed:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Username cannot be empty.",
        )
    return trimmed


@router.get("/machine-data/{username}", response_model=List[Dict[str, Any]])
def fetch_machine_data(username: str, store: RecordStore = Depends(get_record_store)) -> List[Dict[str, Any]]:
    return store.list_user(username)


@router.post("/machine-health/{username}")
def submit_machine_health(
    username: str,
    submission: Any = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> JSONResponse:
    username = _require_username(username)
    try:
        result = store.submit(username, submission)
    except PersistenceError as exc:
        logger.exception("Failed to persist machine data for %s", username)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Machine data could not be saved.",
        ) from exc
    if not result.ok:
        return JSONResponse(result.as_payload(), status_code=status.HTTP_400_BAD_REQUEST)
    return JSONResponse(result.as_payload())


@router.delete("/machine-data/{username}", status_code=status.HTTP_204_NO_CONTENT)
def clear_machine_data(username: str, store: RecordStore = Depends(get_record_store)) -> Response:
    username = _require_username(username)
    try:
        store.delete_user(username)
    except PersistenceError as exc:
        logger.exception("Failed to clear machine data for %s", username)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Machine data could not be cleared.",
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["get_record_store", "reset_record_store", "router"]
