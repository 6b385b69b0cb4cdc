from __future__ import annotations

import asyncio
import os
import socket
import tempfile
from typing import Any, Dict, List

import pytest

# Settings are read once at import; keep the sweep quiet and the debounce short
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SESSION_CHECK_DELAY_MS", "50")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'tabsync-test', 'tabsync.db')}"
)

from tabsync.db.database import db, init_db  # noqa: E402
from tabsync.services import rate_limiter  # noqa: E402
from tabsync.services.search import search_service  # noqa: E402


class NetworkBlockedError(RuntimeError):
    pass


def _blocked(*_args: Any, **_kwargs: Any) -> Any:
    raise NetworkBlockedError(
        "Network access is disabled during tests. "
        "Mark the test with @pytest.mark.integration/@pytest.mark.network or set ALLOW_NETWORK=1."
    )


@pytest.fixture(autouse=True)
def _disable_network(monkeypatch: pytest.MonkeyPatch, request: pytest.FixtureRequest) -> None:
    """Prevent accidental outbound network calls in unit tests."""

    if os.getenv("ALLOW_NETWORK") == "1":
        return

    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("network"):
        return

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket, "getaddrinfo", _blocked)


@pytest.fixture(autouse=True)
def store(tmp_path):
    """Point the shared database at a fresh file for every test."""
    db.db_path = str(tmp_path / "tabsync.db")
    yield db
    if db.is_connected:
        asyncio.run(db.disconnect())


@pytest.fixture(autouse=True)
def _reset_limits(monkeypatch: pytest.MonkeyPatch):
    rate_limiter.ban_list.clear()
    rate_limiter.global_limiter.reset()
    rate_limiter.auth_limiter.reset()
    rate_limiter.search_limiter.reset()
    monkeypatch.setattr(search_service, "_search_service", None)
    yield
    rate_limiter.ban_list.clear()


@pytest.fixture
def run(store):
    """Run a coroutine against an initialized store, closing it afterwards."""

    def _run(coro):
        async def scenario():
            await init_db()
            try:
                return await coro
            finally:
                await store.disconnect()

        return asyncio.run(scenario())

    return _run


class FakeWebSocket:
    """Records outbound frames; optionally fails every send."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail
        self.accepted = False
        self.closed = False

    async def accept(self):
        self.accepted = True

    async def send_json(self, data: Dict[str, Any]):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_socket():
    return FakeWebSocket
