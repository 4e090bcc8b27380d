"""Shared pytest fixtures for Replicate bridge tests.

No test talks to the real Replicate API.  :class:`FakeReplicate` plays the
remote service behind an ``httpx.MockTransport`` and :class:`SleepRecorder`
replaces ``asyncio.sleep`` so poll loops finish instantly.
"""

from __future__ import annotations

import json
from collections.abc import Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from replicate_bridge.api.main import create_app
from replicate_bridge.core.config import BridgeConfig, ConfigStore, ProviderConfig
from replicate_bridge.core.remote_client import ReplicateClient

API_BASE = "https://api.replicate.com/v1"
PREFIX = "/api/plugins/replicate"
JOB_ID = "pred-123"
TEST_TOKEN = "r8_test_token"


class FakeReplicate:
    """In-memory stand-in for the Replicate predictions API.

    Attributes:
        requests: Every request received, in order.
        polls: Payloads returned by successive ``GET /predictions/{id}``
            calls.  The last payload repeats once the script runs out.
        failure: When set to ``(status, body)``, every request is answered
            with that error.
    """

    def __init__(self, job_id: str = JOB_ID) -> None:
        self.job_id = job_id
        self.requests: list[httpx.Request] = []
        self.polls: list[dict[str, Any]] = []
        self.failure: tuple[int, str] | None = None
        self._poll_index = 0

    def script(self, *statuses: str | dict[str, Any]) -> None:
        """Queue poll responses; plain strings become ``{"status": ...}``."""
        for entry in statuses:
            payload = {"status": entry} if isinstance(entry, str) else dict(entry)
            payload.setdefault("id", self.job_id)
            self.polls.append(payload)

    @property
    def fetch_count(self) -> int:
        return sum(1 for r in self.requests if r.method == "GET")

    @property
    def created(self) -> list[dict[str, Any]]:
        """Decoded bodies of every create-prediction call."""
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == "POST" and r.url.path.endswith("/predictions")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failure is not None:
            status, body = self.failure
            return httpx.Response(status, text=body)

        path = request.url.path
        if request.method == "POST" and path == "/v1/predictions":
            return httpx.Response(201, json={"id": self.job_id, "status": "starting", "output": None})
        if request.method == "POST" and path.endswith("/cancel"):
            return httpx.Response(200, json={"id": path.split("/")[-2], "status": "canceled"})
        if request.method == "GET" and path.startswith("/v1/predictions/"):
            if not self.polls:
                return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], "status": "processing"})
            payload = self.polls[min(self._poll_index, len(self.polls) - 1)]
            self._poll_index += 1
            return httpx.Response(200, json=payload)
        return httpx.Response(404, json={"detail": "Not found"})


class SleepRecorder:
    """Async replacement for ``asyncio.sleep`` that only records delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_replicate() -> FakeReplicate:
    """Fresh fake Replicate service with no scripted polls."""
    return FakeReplicate()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def test_settings(monkeypatch) -> BridgeConfig:
    """Settings isolated from the host environment and any ``.env`` file.

    Returns:
        BridgeConfig with no credential and the default poll budget.
    """
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
    monkeypatch.delenv("REPLICATE_BRIDGE_API_TOKEN", raising=False)
    return BridgeConfig(_env_file=None, api_base_url=API_BASE, poll_interval=2.0, poll_max_attempts=60)


@pytest.fixture
def configured_store() -> ConfigStore:
    """Config store that already holds a credential."""
    return ConfigStore(ProviderConfig(credential=TEST_TOKEN))


@pytest.fixture
def make_client(fake_replicate: FakeReplicate):
    """Factory building an httpx client routed to the fake service.

    Call the factory inside the coroutine under test so the client belongs
    to its event loop.

    Returns:
        Callable ``(store) -> (httpx.AsyncClient, ReplicateClient)``.
    """

    def _make(store: ConfigStore) -> tuple[httpx.AsyncClient, ReplicateClient]:
        http = httpx.AsyncClient(base_url=API_BASE, transport=httpx.MockTransport(fake_replicate.handler))
        return http, ReplicateClient(http, store)

    return _make


@pytest.fixture
def test_client(
    test_settings: BridgeConfig,
    fake_replicate: FakeReplicate,
    sleep_recorder: SleepRecorder,
) -> Generator[TestClient, None, None]:
    """TestClient for an app with no credential configured.

    Yields:
        A started TestClient (lifespan has run).
    """
    app = create_app(
        test_settings,
        transport=httpx.MockTransport(fake_replicate.handler),
        sleep=sleep_recorder,
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def configured_client(test_client: TestClient) -> TestClient:
    """TestClient whose runtime configuration holds a credential."""
    resp = test_client.post(f"{PREFIX}/config", json={"apiKey": TEST_TOKEN})
    assert resp.status_code == 200
    return test_client
