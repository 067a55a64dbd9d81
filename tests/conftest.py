import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from f1_proxy.config import Settings
from f1_proxy.integrations.jolpica import JolpicaClient
from f1_proxy.main import create_app

UPSTREAM_URL = "http://upstream.test/ergast/f1"
UPSTREAM_PREFIX = "/ergast/f1"


class FakeUpstream:
    """Canned Jolpica responses keyed by resource path (e.g. ``/2023.json``).

    Unknown paths answer 404 like the real API. ``calls`` records every path
    requested so tests can count upstream round trips.
    """

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.calls: list[str] = []
        self.delay: float = 0.0

    def add(self, path: str, body=None, status: int = 200):
        self.routes[path] = (status, body if body is not None else {"MRData": {"path": path}})

    def fail(self, path: str, exc: Exception):
        self.routes[path] = exc

    def count(self, path: str) -> int:
        return self.calls.count(path)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(UPSTREAM_PREFIX)
        self.calls.append(path)
        if self.delay:
            await asyncio.sleep(self.delay)

        route = self.routes.get(path)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return httpx.Response(404, text="Not Found")
        status, body = route
        if isinstance(body, (dict, list)):
            return httpx.Response(status, content=json.dumps(body).encode(),
                                  headers={"Content-Type": "application/json"})
        return httpx.Response(status, text=body)


@pytest.fixture
def mock_env(monkeypatch):
    """
    Sets up a clean environment for testing.
    Ensures no real upstream calls and no stray .env values leak in.
    """
    env_vars = {
        "ENVIRONMENT": "development",
        "JOLPICA_API_URL": UPSTREAM_URL,
        "API_TIMEOUT": "2",
        "LOG_FORMAT": "console",
        "LOG_LEVEL": "WARNING",
        "CACHE_CHECK_PERIOD": "0",
        "RATE_LIMIT_MAX_REQUESTS": "1000",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    for key in ("CACHE_TTL_HISTORICAL", "CACHE_TTL_CURRENT", "CACHE_TTL_LIVE", "CACHE_TTL_DEFAULT"):
        monkeypatch.delenv(key, raising=False)
    return env_vars


@pytest.fixture
def make_settings(mock_env):
    def factory(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)

    return factory


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def jolpica(upstream) -> JolpicaClient:
    return JolpicaClient(base_url=UPSTREAM_URL, timeout=2.0, transport=httpx.MockTransport(upstream))


@pytest.fixture
def make_app(make_settings, upstream):
    def factory(**overrides):
        settings = make_settings(**overrides)
        client = JolpicaClient(
            base_url=settings.jolpica_api_url,
            timeout=settings.api_timeout,
            transport=httpx.MockTransport(upstream),
        )
        return create_app(settings, client=client)

    return factory


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
