"""Shared fixtures: a scriptable protocol client and a recording factory."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import pytest

from relaygate.credentials import CredentialCache
from relaygate.sessions.client import BaseProtocolClient
from relaygate.sessions.manager import SessionLifecycleManager
from relaygate.store.base import StatusUpdate
from relaygate.store.memory import InMemoryStatusStore


class FakeProtocolClient(BaseProtocolClient):
    """Protocol client whose behaviour is scripted by its factory."""

    def __init__(self, tenant_id: str, options: dict[str, Any], factory: "RecordingFactory"):
        super().__init__(tenant_id, options)
        self._factory = factory
        self.initialized = False
        self.destroyed = False
        self.sent: list[tuple[str, str]] = []

    async def initialize(self) -> None:
        factory = self._factory
        gate = factory.gates.get(self.tenant_id)
        if gate is not None:
            await gate.wait()
        if factory.init_delay:
            await asyncio.sleep(factory.init_delay)
        if factory.on_initialize is not None:
            await factory.on_initialize(self)
        if factory.init_error is not None:
            raise factory.init_error
        self.initialized = True
        if factory.pairing_code is not None:
            self.emit("qr", factory.pairing_code)

    async def send_message(self, target: str, body: str) -> str:
        if self._factory.send_delay:
            await asyncio.sleep(self._factory.send_delay)
        if self._factory.send_error is not None:
            raise self._factory.send_error
        self.sent.append((target, body))
        return f"msg-{len(self.sent)}"

    async def destroy(self) -> None:
        self.destroyed = True
        self._factory.log.append(("destroy", self.tenant_id))
        if self._factory.destroy_error is not None:
            raise self._factory.destroy_error


class RecordingFactory:
    """Client factory that records every client it builds."""

    def __init__(self) -> None:
        self.clients: list[FakeProtocolClient] = []
        self.log: list[tuple[str, str]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.init_delay: float = 0.0
        self.init_error: Optional[BaseException] = None
        self.send_delay: float = 0.0
        self.send_error: Optional[BaseException] = None
        self.destroy_error: Optional[BaseException] = None
        self.pairing_code: Optional[str] = None
        self.on_initialize: Optional[Callable[[FakeProtocolClient], Awaitable[None]]] = None

    def __call__(self, tenant_id: str, options: dict[str, Any]) -> FakeProtocolClient:
        client = FakeProtocolClient(tenant_id, options, self)
        self.clients.append(client)
        self.log.append(("create", tenant_id))
        return client

    def count(self, tenant_id: str) -> int:
        return sum(1 for c in self.clients if c.tenant_id == tenant_id)


class RecordingStore(InMemoryStatusStore):
    """In-memory store that keeps every status it was asked to write."""

    def __init__(self) -> None:
        super().__init__()
        self.history: list[tuple[str, str]] = []

    async def update(self, tenant_id: str, update: StatusUpdate):
        self.history.append((tenant_id, update.status.value))
        return await super().update(tenant_id, update)

    def statuses(self, tenant_id: str) -> list[str]:
        return [status for tid, status in self.history if tid == tenant_id]

    async def merge_fields(self, tenant_id: str, fields: dict[str, Any]) -> None:
        """Write arbitrary fields, as another party sharing the store would."""
        self._documents.setdefault(tenant_id, {}).update(fields)


def fake_render(code: str) -> str:
    return f"data:image/png;base64,{code}"


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def credentials(tmp_path) -> CredentialCache:
    return CredentialCache(tmp_path / "sessions")


@pytest.fixture
def make_manager(store, credentials, factory):
    """Build a manager over the shared fakes; keyword arguments override."""

    def _make(**kwargs: Any) -> SessionLifecycleManager:
        kwargs.setdefault("renderer", fake_render)
        kwargs.setdefault("init_timeout", 2.0)
        kwargs.setdefault("send_timeout", 2.0)
        return SessionLifecycleManager(store, credentials, factory, **kwargs)

    return _make


@pytest.fixture
def manager(make_manager) -> SessionLifecycleManager:
    return make_manager()
