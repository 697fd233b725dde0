"""Tests for the machine data API client and cache synchronizer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from factory_health.cache import MachineDataCache, MemoryKeyValueStore
from factory_health.client import CacheSynchronizer, MachineHealthClient
from factory_health.errors import ScoringError, SyncError
from factory_health.main import app
from factory_health.persistence import JsonDocumentFile
from factory_health.record_store import RecordStore
from factory_health.sync_routes import get_record_store

SUBMISSION = {"machines": {"weldingRobot": {"electrodeWear": "1", "vibrationLevel": "2"}}}


def _mock_client(handler) -> MachineHealthClient:
    transport = httpx.MockTransport(handler)
    return MachineHealthClient("http://api.local/", client=httpx.Client(transport=transport))


@pytest.fixture
def live_client(tmp_path: Path) -> Iterator[MachineHealthClient]:
    store = RecordStore.load(JsonDocumentFile(tmp_path / "userData.json"))
    app.dependency_overrides[get_record_store] = lambda: store
    try:
        yield MachineHealthClient("http://testserver", client=TestClient(app))
    finally:
        app.dependency_overrides.clear()


def test_fetch_encodes_username() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path)
        return httpx.Response(200, json=[])

    assert _mock_client(handler).fetch_machine_data("jo doe/1") == []
    assert seen == [b"/machine-data/jo%20doe%2F1"]


def test_submit_400_raises_scoring_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"machines": {}}
        return httpx.Response(400, json={"error": "Invalid input format"})

    with pytest.raises(ScoringError) as excinfo:
        _mock_client(handler).submit("test", {"machines": {}})
    assert excinfo.value.result.error == "Invalid input format"


def test_submit_500_raises_sync_error() -> None:
    client = _mock_client(lambda request: httpx.Response(500, json={"detail": "Machine data could not be saved."}))
    with pytest.raises(SyncError) as excinfo:
        client.submit("test", SUBMISSION)
    assert excinfo.value.status_code == 500


def test_transport_failure_raises_sync_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(SyncError):
        _mock_client(handler).fetch_machine_data("test")


def test_unexpected_payload_raises_sync_error() -> None:
    client = _mock_client(lambda request: httpx.Response(200, json={"not": "a list"}))
    with pytest.raises(SyncError):
        client.fetch_machine_data("test")


def test_synchronizer_replaces_cache_after_submit(live_client: MachineHealthClient) -> None:
    storage = MemoryKeyValueStore()
    cache = MachineDataCache(storage)
    sync = CacheSynchronizer(live_client, cache)

    result = sync.submit("test", SUBMISSION)

    assert result.as_payload() == {"factory": "81.25", "machineScores": {"weldingRobot": "81.25"}}
    assert cache.view.as_payload() == {"machines": SUBMISSION["machines"], "scores": result.as_payload()}
    assert MachineDataCache(storage).load().machines == SUBMISSION["machines"]


def test_synchronizer_refresh_mirrors_latest_record(live_client: MachineHealthClient) -> None:
    live_client.submit("test", {"machines": {"assemblyLine": {"speed": "5"}}})
    live_client.submit("test", SUBMISSION)
    cache = MachineDataCache(MemoryKeyValueStore())

    view = CacheSynchronizer(live_client, cache).refresh("test")

    assert view.machines == SUBMISSION["machines"]
    assert view.scores["factory"] == "81.25"


def test_synchronizer_refresh_resets_cache_for_unknown_user(live_client: MachineHealthClient) -> None:
    cache = MachineDataCache(MemoryKeyValueStore())
    cache.replace({"machines": SUBMISSION["machines"]})

    view = CacheSynchronizer(live_client, cache).refresh("nobody")

    assert view.state == "empty"


def test_scoring_failure_leaves_cache_untouched(live_client: MachineHealthClient) -> None:
    cache = MachineDataCache(MemoryKeyValueStore())
    cache.replace({"machines": SUBMISSION["machines"]})

    with pytest.raises(ScoringError):
        CacheSynchronizer(live_client, cache).submit("test", {"machines": {"laserCutter": {}}})

    assert cache.view.machines == SUBMISSION["machines"]


def test_non_object_submission_raises_scoring_error(live_client: MachineHealthClient) -> None:
    with pytest.raises(ScoringError) as excinfo:
        live_client.submit("test", ["not", "an", "object"])  # type: ignore[arg-type]
    assert excinfo.value.result.error == "Invalid input format"


def test_refresh_mirrors_last_record_after_in_place_update(live_client: MachineHealthClient) -> None:
    first = {"machines": {"assemblyLine": {"speed": "5"}}}
    live_client.submit("test", first)
    live_client.submit("test", SUBMISSION)
    live_client.submit("test", {**first, "note": "resubmitted"})
    cache = MachineDataCache(MemoryKeyValueStore())

    view = CacheSynchronizer(live_client, cache).refresh("test")

    assert view.machines == SUBMISSION["machines"]
