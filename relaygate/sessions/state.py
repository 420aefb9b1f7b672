"""
Tenant session model for Relaygate.

A tenant session is one business's live connection to the chat-protocol
client. The registry owns at most one session per tenant; every session
owns exactly one client and carries its own identity so that events from a
superseded session can be told apart from events of its replacement.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from relaygate.models.state import SessionState

if TYPE_CHECKING:
    from relaygate.sessions.client import ClientEvent, ProtocolClient


# Sentinel that stops a session's event pump.
_STOP = object()


@dataclass(eq=False)
class TenantSession:
    """
    A live protocol-client session bound to one tenant.

    Identity is by instance (``eq=False``): two sessions for the same tenant
    are never equal, which is what stale-event suppression relies on.

    Attributes:
        tenant_id: The tenant this session belongs to.
        client: The protocol client owned by this session.
        session_id: Unique identifier of this instance.
        state: Current connection state.
        pairing_payload: Rendered pairing code, set only while awaiting pairing.
        last_error: Human-readable cause of the last failure state.
        created_at: When the session was created.
        updated_at: When the state last changed (never moves backwards).
        superseded: Set once the session is removed from the registry.
    """

    tenant_id: str
    client: ProtocolClient | None = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.INITIALIZING
    pairing_payload: str | None = None
    last_error: str | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    updated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    superseded: bool = False
    _events: asyncio.Queue = field(default_factory=asyncio.Queue, repr=False)
    pump: asyncio.Task | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("tenant_id cannot be empty")

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    def transition(
        self,
        state: SessionState,
        pairing_payload: str | None = None,
        error: str | None = None,
    ) -> None:
        """Move to ``state``.

        The pairing payload survives only a transition into
        ``AWAITING_PAIRING``; every other transition clears it.
        """
        self.state = state
        self.pairing_payload = (
            pairing_payload if state == SessionState.AWAITING_PAIRING else None
        )
        self.last_error = error
        now = datetime.now(timezone.utc)
        if now > self.updated_at:
            self.updated_at = now

    # -- event queue ---------------------------------------------------------

    def deliver(self, event: ClientEvent, args: tuple[Any, ...]) -> bool:
        """Queue an event emitted by this session's client.

        Returns False (and drops the event) once the session is superseded.
        """
        if self.superseded:
            return False
        self._events.put_nowait((event, args))
        return True

    async def next_event(self) -> Any:
        return await self._events.get()

    def event_done(self) -> None:
        self._events.task_done()

    async def wait_idle(self) -> None:
        """Wait until every queued event has been processed."""
        await self._events.join()

    def supersede(self) -> None:
        """Mark the session stale and let its event pump wind down."""
        if self.superseded:
            return
        self.superseded = True
        self._events.put_nowait(_STOP)

    @staticmethod
    def is_stop(item: Any) -> bool:
        return item is _STOP

    def __repr__(self) -> str:
        return (
            f"<TenantSession {self.tenant_id} id={self.session_id[:8]} "
            f"state={self.state.value}>"
        )
