"""HTTP client for the machine data API and its cache synchronizer."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from .cache import MachineDataCache
from .cache.view import CacheView
from .config import get_settings
from .errors import ScoringError, SyncError
from .models import IDENTITY_FIELD, SCORE_FIELD, ScoreResult, Submission, UserHistory

logger = logging.getLogger(__name__)


class MachineHealthClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if base_url is None or (timeout is None and client is None):
            settings = get_settings()
            base_url = base_url or settings.api_url
            timeout = timeout if timeout is not None else settings.client_timeout
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def __enter__(self) -> "MachineHealthClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _url(self, route: str, username: str) -> str:
        return f"{self._base_url}/{route}/{quote(username, safe='')}"

    def fetch_machine_data(self, username: str) -> UserHistory:
        try:
            response = self._client.get(self._url("machine-data", username))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SyncError(
                f"Machine data request failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise SyncError(f"Machine data request failed: {exc}") from exc

        payload = self._json(response)
        if not isinstance(payload, list):
            raise SyncError("Machine data response was not a list of records.")
        return payload

    def submit(self, username: str, submission: Submission) -> ScoreResult:
        try:
            response = self._client.post(self._url("machine-health", username), json=submission)
        except httpx.HTTPError as exc:
            raise SyncError(f"Machine health request failed: {exc}") from exc

        if response.status_code == httpx.codes.BAD_REQUEST:
            payload = self._json(response)
            if not isinstance(payload, dict):
                payload = {"error": str(payload)}
            payload.setdefault("error", "Submission could not be scored.")
            raise ScoringError(ScoreResult.model_validate(payload))
        if response.is_error:
            raise SyncError(
                f"Machine health request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        payload = self._json(response)
        if not isinstance(payload, dict):
            raise SyncError("Machine health response was not a JSON object.")
        return ScoreResult.model_validate(payload)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise SyncError(f"Machine data API returned invalid JSON: {exc}") from exc


class CacheSynchronizer:
    """Replaces the local cache with the server's view after each round-trip."""

    def __init__(self, client: MachineHealthClient, cache: MachineDataCache) -> None:
        self._client = client
        self._cache = cache

    def refresh(self, username: str) -> CacheView:
        """Mirror the last record of the server history into the cache.

        The last record is the most recently appended one. A submission that
        updated an existing record in place keeps that record's position, so
        after such an update the mirrored record may not be the newest write.
        """
        records = self._client.fetch_machine_data(username)
        if not records:
            logger.debug("No machine data for %s; clearing local cache", username)
            return self._cache.reset()
        latest = records[-1]
        return self._cache.replace(_view_payload(latest.get(IDENTITY_FIELD), latest.get(SCORE_FIELD)))

    def submit(self, username: str, submission: Submission) -> ScoreResult:
        result = self._client.submit(username, submission)
        self._cache.replace(_view_payload(submission.get(IDENTITY_FIELD), result.as_payload()))
        return result


def _view_payload(machines: Any, scores: Any) -> Dict[str, Any]:
    return {"machines": machines or {}, "scores": scores or {}}


__all__ = ["CacheSynchronizer", "MachineHealthClient"]
