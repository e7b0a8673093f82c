from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from jobboard.config import AccessConfig, AuthConfig, Settings, ViewsConfig, get_settings
from jobboard.main import app
from jobboard.services.rate_limiter import RateLimiter
from jobboard.services.view_recorder import ViewRecorder

ADMIN_TOKEN = "test-admin-token"


class ManualClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeViewStore:
    def __init__(self) -> None:
        self.events = []
        self.fail = False
        self.delay = 0.0

    async def insert_view_event(self, event) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("database is down")
        self.events.append(event)


class FakeConn:
    def __init__(self) -> None:
        self.executed = []
        self.fetched = []
        self.rows = []
        self.row = None

    async def execute(self, sql, *args):
        self.executed.append((sql, args))
        return "INSERT 0 1"

    async def fetch(self, sql, *args):
        self.fetched.append((sql, args))
        return self.rows

    async def fetchrow(self, sql, *args):
        self.fetched.append((sql, args))
        return self.row


class FakePool:
    def __init__(self) -> None:
        self.conn = FakeConn()

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture
def clock():
    return ManualClock(start=1000.0)


@pytest.fixture
def store():
    return FakeViewStore()


@pytest.fixture
def settings():
    return Settings(
        auth=AuthConfig(token=ADMIN_TOKEN),
        access=AccessConfig(
            lan_subnets=["10.0.0.0/8"],
            trusted_proxy_ips=["testclient"],
        ),
        views=ViewsConfig(window_sec=3600, max_requests=3, cookie_secure=False),
    )


@pytest.fixture
def limiter(settings, clock):
    return RateLimiter(
        max_requests=settings.views.max_requests,
        window_sec=settings.views.window_sec,
        clock=clock,
    )


@pytest.fixture
def client(settings, limiter, store):
    app.state.db_pool = None
    app.state.view_limiter = limiter
    app.state.view_recorder = ViewRecorder(store, timeout_sec=0.5)
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
