"""Shared pytest fixtures for picotui tests."""

from __future__ import annotations

import copy
import json
import os
import queue
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
from typer.testing import CliRunner

from picotui.core.tokens import TokenStore
from picotui.integrations.picodata.models import ClusterInfo, TierInfo, UiConfig
from picotui.state.app_state import AppState
from picotui.worker.messages import ClusterInfoResult, ConfigResult, TiersResult

BASE_URL = "http://picodata.test:8080"
AUTH_TOKEN = "test-auth-token-12345"
REFRESH_TOKEN = "test-refresh-token-67890"
USERNAME = "admin"
PASSWORD = "secret"

# ============================================================================
# API payloads
# ============================================================================

CLUSTER_PAYLOAD: dict[str, Any] = {
    "capacityUsage": 30.5,
    "clusterName": "test-cluster",
    "clusterVersion": "1.0.0",
    "currentInstaceVersion": "25.6.0",
    "replicasetsCount": 2,
    "instancesCurrentStateOffline": 1,
    "instancesCurrentStateOnline": 5,
    "memory": {"usable": 4294967296, "used": 1288490188},
    "plugins": ["plugin1"],
}


def _instance(
    name: str,
    host: str,
    failure_domain: dict[str, str],
    *,
    leader: bool = False,
    state: str = "Online",
    pg: bool = True,
) -> dict[str, Any]:
    return {
        "name": name,
        "httpAddress": f"{host}:8080",
        "version": "25.6.0",
        "failureDomain": failure_domain,
        "isLeader": leader,
        "currentState": state,
        "targetState": "Online",
        "binaryAddress": f"{host}:3301",
        "pgAddress": f"{host}:5432" if pg else "",
    }


def _replicaset(name: str, instances: list[dict[str, Any]], usable: int) -> dict[str, Any]:
    return {
        "name": name,
        "version": "1",
        "state": "Online",
        "instanceCount": len(instances),
        "uuid": f"uuid-{name}",
        "capacityUsage": 30.0,
        "memory": {"usable": usable, "used": usable * 3 // 10},
        "instances": instances,
    }


TIERS_PAYLOAD: list[dict[str, Any]] = [
    {
        "name": "default",
        "replicasetCount": 2,
        "rf": 3,
        "bucketCount": 3000,
        "instanceCount": 4,
        "can_vote": True,
        "services": [],
        "memory": {"usable": 2147483648, "used": 644245094},
        "capacityUsage": 30.0,
        "replicasets": [
            _replicaset(
                "r1",
                [
                    _instance("i1", "10.0.0.1", {"datacenter": "dc1", "rack": "r1"}, leader=True),
                    _instance("i2", "10.0.0.2", {"datacenter": "dc1", "rack": "r2"}),
                ],
                1073741824,
            ),
            _replicaset(
                "r2",
                [
                    _instance(
                        "i3",
                        "10.0.0.3",
                        {"datacenter": "dc2", "rack": "r1"},
                        leader=True,
                        state="Offline",
                    ),
                    _instance("i4", "10.0.0.4", {"datacenter": "dc2", "rack": "r2"}),
                ],
                1073741824,
            ),
        ],
    },
    {
        "name": "storage",
        "replicasetCount": 1,
        "rf": 2,
        "bucketCount": 0,
        "instanceCount": 2,
        "can_vote": False,
        "services": ["storage"],
        "memory": {"usable": 2147483648, "used": 644245094},
        "capacityUsage": 30.0,
        "replicasets": [
            _replicaset(
                "s1",
                [
                    _instance("s1-i1", "10.0.1.1", {"datacenter": "dc1"}, leader=True, pg=False),
                    _instance("s1-i2", "10.0.1.2", {"datacenter": "dc2"}, pg=False),
                ],
                2147483648,
            ),
        ],
    },
]


@pytest.fixture
def cluster_payload() -> dict[str, Any]:
    """Cluster info body as the server sends it."""
    return copy.deepcopy(CLUSTER_PAYLOAD)


@pytest.fixture
def tiers_payload() -> list[dict[str, Any]]:
    """Two tiers, three replicasets, six instances (i3 offline)."""
    return copy.deepcopy(TIERS_PAYLOAD)


@pytest.fixture
def cluster_info() -> ClusterInfo:
    return ClusterInfo.model_validate(CLUSTER_PAYLOAD)


@pytest.fixture
def tiers() -> tuple[TierInfo, ...]:
    return tuple(TierInfo.model_validate(tier) for tier in TIERS_PAYLOAD)


# ============================================================================
# Fake Picodata server
# ============================================================================


class FakePicodata:
    """In-process Picodata HTTP API for httpx.MockTransport.

    Records every request. Individual endpoints can be overridden with a
    fixed status and body through ``fail``.
    """

    def __init__(self, auth_enabled: bool = False) -> None:
        self.auth_enabled = auth_enabled
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, tuple[int, str]] = {}
        self.cluster: dict[str, Any] = copy.deepcopy(CLUSTER_PAYLOAD)
        self.tiers: list[dict[str, Any]] = copy.deepcopy(TIERS_PAYLOAD)

    def fail(self, path: str, status: int, body: str = "") -> None:
        self.failures[path] = (status, body)

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def _authorized(self, request: httpx.Request) -> bool:
        if not self.auth_enabled:
            return True
        return request.headers.get("Authorization") == f"Bearer {AUTH_TOKEN}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.failures:
            status, body = self.failures[path]
            return httpx.Response(status, text=body)

        if path == "/api/v1/config":
            return httpx.Response(200, json={"isAuthEnabled": self.auth_enabled})

        if path == "/api/v1/session" and request.method == "POST":
            credentials = json.loads(request.content)
            if credentials == {"username": USERNAME, "password": PASSWORD}:
                return httpx.Response(200, json={"auth": AUTH_TOKEN, "refresh": REFRESH_TOKEN})
            return httpx.Response(401, text="invalid credentials")

        if not self._authorized(request):
            return httpx.Response(401, text="unauthorized")
        if path == "/api/v1/cluster":
            return httpx.Response(200, json=self.cluster)
        if path == "/api/v1/tiers":
            return httpx.Response(200, json=self.tiers)
        return httpx.Response(404, text="not found")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_server() -> FakePicodata:
    """Fake server with auth disabled."""
    return FakePicodata()


@pytest.fixture
def fake_auth_server() -> FakePicodata:
    """Fake server with auth enabled."""
    return FakePicodata(auth_enabled=True)


# ============================================================================
# State fixtures
# ============================================================================


class FakeWorker:
    """Stand-in for ApiWorker that never runs a thread.

    Tests read what the state machine queued from ``requests`` and feed
    results through ``responses``.
    """

    def __init__(self) -> None:
        self.requests: queue.Queue[Any] = queue.Queue()
        self.responses: queue.Queue[Any] = queue.Queue()
        self.started = False
        self.stopped = False
        self.alive = True

    def start(self) -> FakeWorker:
        self.started = True
        return self

    def is_alive(self) -> bool:
        return self.alive

    def shutdown(self) -> None:
        self.stopped = True

    def drain(self) -> list[Any]:
        """Pop every queued request."""
        items = []
        while not self.requests.empty():
            items.append(self.requests.get_nowait())
        return items


@pytest.fixture
def fake_worker() -> FakeWorker:
    return FakeWorker()


@pytest.fixture
def token_store(tmp_path: Path) -> TokenStore:
    """Token store in a temporary config directory."""
    return TokenStore(tmp_path / "config" / "picotui" / "tokens.json")


@pytest.fixture
def make_state(
    fake_worker: FakeWorker, token_store: TokenStore
) -> Callable[..., AppState]:
    """Build an AppState wired to the fake worker's queues."""

    def _make(base_url: str = BASE_URL, store: TokenStore | None = token_store) -> AppState:
        return AppState(base_url, fake_worker.requests, fake_worker.responses, token_store=store)

    return _make


@pytest.fixture
def loaded_state(
    make_state: Callable[..., AppState],
    cluster_info: ClusterInfo,
    tiers: tuple[TierInfo, ...],
) -> AppState:
    """State with auth disabled and one refresh applied."""
    state = make_state()
    state.start_init()
    state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=False)))
    state.handle_response(ClusterInfoResult(value=cluster_info))
    state.handle_response(TiersResult(value=tiers))
    return state


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from the user's environment and home directory."""
    for key in list(os.environ.keys()):
        if key.startswith("PICOTUI_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
