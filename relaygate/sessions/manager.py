"""
Session lifecycle manager for Relaygate.

The manager owns the registry of tenant sessions and is the only component
that creates, resets, or tears them down. Protocol clients report state
changes through events; the manager queues each session's events and a
single pump task per session projects them, in emission order, into the
status store.

Locking:
    Every registry mutation for a tenant happens under that tenant's
    lifecycle lock. Status writes happen under the tenant's status lock
    after checking that the writing session still occupies the slot, so an
    event from a superseded session can never overwrite the document of its
    replacement. Different tenants never contend.

Example:
    manager = SessionLifecycleManager.from_settings(settings)

    await manager.get_or_create("biz1")
    status = await manager.get_status("biz1")
    if status.is_connected:
        await manager.send_message("biz1", "5511999999999", "hello")
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

from relaygate.credentials import CredentialCache
from relaygate.models.state import SessionState
from relaygate.pairing import render_pairing_payload
from relaygate.sessions.client import ClientEvent, ClientFactory, load_client_factory
from relaygate.sessions.errors import (
    DeliveryFailed,
    InitializationFailed,
    InvalidArgument,
    PairingPayloadNotFound,
    describe,
)
from relaygate.sessions.projection import (
    Transition,
    initialization_failed,
    initializing,
    project,
)
from relaygate.sessions.registry import SessionRegistry
from relaygate.sessions.state import TenantSession
from relaygate.store.base import StatusDocument, StatusStore

if TYPE_CHECKING:
    from relaygate.config.settings import Settings

logger = logging.getLogger(__name__)

# Seconds allowed for a client's destroy().
DESTROY_TIMEOUT = 10.0

# How long shutdown() waits for event pumps to drain before cancelling them.
SHUTDOWN_GRACE = 5.0

SHUTTING_DOWN = "gateway is shutting down"


@dataclass
class TenantStatus:
    """Read-only view of a tenant's persisted status.

    Attributes:
        status: State name as stored.
        is_connected: True only when ``status`` is ``connected``.
        error: Cause of the last failure state, if any.
        updated_at: When the document was last written.
    """

    status: str
    is_connected: bool = False
    error: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, document: StatusDocument | None) -> TenantStatus:
        if document is None:
            return cls(status=SessionState.DISCONNECTED.value)
        return cls(
            status=document.status,
            is_connected=document.status == SessionState.CONNECTED.value,
            error=document.error,
            updated_at=document.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "isConnected": self.is_connected,
            "error": self.error,
        }


def _require(value: Any, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgument(f"{name} is required")
    return str(value)


class SessionLifecycleManager:
    """
    Creates, resets and tears down per-tenant protocol sessions.

    Args:
        store: Status store the event projection writes to.
        credentials: On-disk credential cache cleared around every
            (re)initialization.
        client_factory: Callable building a protocol client from
            ``(tenant_id, options)``.
        client_options: Options passed to every client the factory builds.
        renderer: Turns a raw pairing code into the payload served by the API.
        init_timeout: Seconds allowed for a client's ``initialize()``.
        send_timeout: Seconds allowed for a client's ``send_message()``.
        recipient_suffix: Addressing suffix appended to bare recipients.
    """

    def __init__(
        self,
        store: StatusStore,
        credentials: CredentialCache,
        client_factory: ClientFactory,
        *,
        client_options: dict[str, Any] | None = None,
        renderer: Callable[[str], str] = render_pairing_payload,
        init_timeout: float = 60.0,
        send_timeout: float = 30.0,
        recipient_suffix: str = "@c.us",
    ):
        self._store = store
        self._credentials = credentials
        self._client_factory = client_factory
        self._client_options = dict(client_options or {})
        self._renderer = renderer
        self._init_timeout = init_timeout
        self._send_timeout = send_timeout
        self._recipient_suffix = recipient_suffix
        self._registry = SessionRegistry()
        self._closing = False

    @classmethod
    def from_settings(
        cls, settings: Settings, store: StatusStore | None = None
    ) -> SessionLifecycleManager:
        """Build a manager from application settings."""
        from relaygate.store import build_status_store

        return cls(
            store if store is not None else build_status_store(settings),
            CredentialCache(settings.SESSION_DATA_DIR),
            load_client_factory(settings.CLIENT_FACTORY),
            client_options=settings.CLIENT_OPTIONS,
            init_timeout=settings.CLIENT_INIT_TIMEOUT,
            send_timeout=settings.CLIENT_SEND_TIMEOUT,
            recipient_suffix=settings.RECIPIENT_SUFFIX,
        )

    @property
    def store(self) -> StatusStore:
        return self._store

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def get_or_create(self, tenant_id: str) -> TenantSession:
        """Return the tenant's live session, starting one if there is none.

        Concurrent callers for the same tenant all receive the same session;
        only one client is ever constructed.

        Raises:
            InvalidArgument: If ``tenant_id`` is empty.
            InitializationFailed: If the client fails or times out while
                starting. The registry is rolled back and the status store
                records ``error``.
        """
        tenant_id = _require(tenant_id, "tenant_id")

        session = self._registry.get(tenant_id)
        if session is not None:
            return session

        async with self._registry.hold_lifecycle(tenant_id):
            session = self._registry.get(tenant_id)
            if session is not None:
                return session
            return await self._create_locked(tenant_id)

    async def reset(self, tenant_id: str) -> TenantSession:
        """Tear down the tenant's session (if any) and start a fresh one.

        The old session leaves the registry before its client is destroyed,
        so nothing can reach it once the reset has begun. The status store
        moves to ``initializing`` before the new client starts.

        Raises:
            InvalidArgument: If ``tenant_id`` is empty.
            InitializationFailed: If the fresh client fails to start.
        """
        tenant_id = _require(tenant_id, "tenant_id")
        async with self._registry.hold_lifecycle(tenant_id):
            old = self._registry.get(tenant_id)
            if old is not None:
                self._registry.release(old)
                logger.info("Resetting session for %s (%s)", tenant_id, old.session_id)
                await self._destroy(old)

            async with self._registry.hold_status(tenant_id):
                await self._store.update(tenant_id, initializing())

            await self._clear_credentials(tenant_id)
            return await self._create_locked(tenant_id)

    async def send_message(self, tenant_id: str, recipient: str, body: str) -> None:
        """Send ``body`` to ``recipient`` through the tenant's session.

        Raises:
            InvalidArgument: If any argument is empty.
            InitializationFailed: If no session exists and one cannot start.
            DeliveryFailed: If the client rejects the send or times out.
        """
        tenant_id = _require(tenant_id, "tenant_id")
        recipient = _require(recipient, "recipient").strip()
        body = _require(body, "message")

        session = await self.get_or_create(tenant_id)
        target = self.format_recipient(recipient)

        try:
            await asyncio.wait_for(
                session.client.send_message(target, body),
                timeout=self._send_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DeliveryFailed(
                tenant_id, target, f"send timed out after {self._send_timeout:g}s"
            ) from e
        except Exception as e:
            raise DeliveryFailed(tenant_id, target, describe(e)) from e

        logger.info("Sent message for %s to %s", tenant_id, target)

    def format_recipient(self, recipient: str) -> str:
        """Map a bare recipient to the protocol's addressing scheme."""
        if "@" in recipient:
            return recipient
        return f"{recipient}{self._recipient_suffix}"

    async def shutdown(self) -> None:
        """Destroy every registered session. Used on application shutdown.

        Sessions still initializing are refused registration once their
        ``initialize()`` returns and are torn down by their creator.
        """
        self._closing = True
        pumps: list[asyncio.Task] = []
        for session in self._registry.sessions():
            async with self._registry.hold_lifecycle(session.tenant_id):
                if not self._registry.release(session):
                    continue
                await self._destroy(session)
            if session.pump is not None and not session.pump.done():
                pumps.append(session.pump)

        if not pumps:
            return
        _, pending = await asyncio.wait(pumps, timeout=SHUTDOWN_GRACE)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def active_sessions(self) -> list[TenantSession]:
        return self._registry.sessions()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_status(self, tenant_id: str) -> TenantStatus:
        """Latest persisted status; ``disconnected`` if never initialized."""
        tenant_id = _require(tenant_id, "tenant_id")
        return TenantStatus.from_document(await self._store.get(tenant_id))

    async def get_pairing_payload(self, tenant_id: str) -> str:
        """The stored pairing payload, only while awaiting pairing.

        Raises:
            PairingPayloadNotFound: In every other state.
        """
        tenant_id = _require(tenant_id, "tenant_id")
        document = await self._store.get(tenant_id)
        if (
            document is None
            or document.state != SessionState.AWAITING_PAIRING
            or not document.qr
        ):
            raise PairingPayloadNotFound(tenant_id)
        return document.qr

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _create_locked(self, tenant_id: str) -> TenantSession:
        if self._closing:
            raise InitializationFailed(tenant_id, SHUTTING_DOWN)

        session = TenantSession(tenant_id)
        self._registry.reserve(session)

        try:
            await self._clear_credentials(tenant_id)
            client = self._client_factory(tenant_id, dict(self._client_options))
            session.client = client
            for event in ClientEvent:
                client.on(event.value, functools.partial(self._on_event, session, event))
            session.pump = asyncio.create_task(
                self._pump(session), name=f"relaygate-pump-{tenant_id}"
            )
            await asyncio.wait_for(client.initialize(), timeout=self._init_timeout)
            if self._closing:
                raise RuntimeError(SHUTTING_DOWN)
        except asyncio.CancelledError:
            await self._abort(session, "initialization cancelled")
            raise
        except asyncio.TimeoutError as e:
            reason = f"initialization timed out after {self._init_timeout:g}s"
            await self._abort(session, reason)
            raise InitializationFailed(tenant_id, reason) from e
        except Exception as e:
            reason = describe(e)
            await self._abort(session, reason)
            raise InitializationFailed(tenant_id, reason) from e

        self._registry.register(session)
        logger.info("Started session for %s (%s)", tenant_id, session.session_id)
        return session

    async def _abort(self, session: TenantSession, reason: str) -> None:
        """Roll back a session that failed to start. Lifecycle lock held."""
        tenant_id = session.tenant_id
        logger.warning("Session for %s failed to start: %s", tenant_id, reason)

        self._registry.release(session)
        await self._destroy(session)
        await self._clear_credentials(tenant_id)

        session.transition(SessionState.ERROR, error=reason)
        try:
            async with self._registry.hold_status(tenant_id):
                await self._store.update(tenant_id, initialization_failed(reason))
        except Exception:
            logger.exception("Could not record initialization failure for %s", tenant_id)

    def _on_event(self, session: TenantSession, event: ClientEvent, *args: Any) -> None:
        # Runs inside the client's emit(); only enqueue.
        if not session.deliver(event, args):
            logger.debug("Dropped %s event from superseded %r", event.value, session)

    async def _pump(self, session: TenantSession) -> None:
        while True:
            item = await session.next_event()
            try:
                if session.is_stop(item):
                    return
                event, args = item
                await self._apply_event(session, event, args)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error handling event for %r", session)
            finally:
                session.event_done()

    async def _apply_event(
        self, session: TenantSession, event: ClientEvent, args: tuple[Any, ...]
    ) -> None:
        value = args[0] if args else None

        if event == ClientEvent.PAIRING_CODE:
            if not value:
                logger.warning("Ignoring empty pairing code for %s", session.tenant_id)
                return
            try:
                value = await asyncio.to_thread(self._renderer, str(value))
            except Exception as e:
                logger.warning(
                    "Could not render pairing code for %s: %s",
                    session.tenant_id,
                    describe(e),
                )
                return

        transition = project(event, value)
        if transition.tears_down:
            await self._tear_down(session, transition)
        else:
            await self._write_if_current(session, transition)

    async def _write_if_current(self, session: TenantSession, transition: Transition) -> bool:
        async with self._registry.hold_status(session.tenant_id):
            if not self._registry.is_current(session):
                logger.debug(
                    "Discarded stale %s transition from %r",
                    transition.state.value,
                    session,
                )
                return False
            session.transition(transition.state, transition.pairing_payload, transition.error)
            await self._store.update(session.tenant_id, transition.update)

        logger.info("Session for %s is now %s", session.tenant_id, transition.state.value)
        return True

    async def _tear_down(self, session: TenantSession, transition: Transition) -> None:
        async with self._registry.hold_lifecycle(session.tenant_id):
            if not await self._write_if_current(session, transition):
                return
            self._registry.release(session)
            await self._destroy(session)
            await self._clear_credentials(session.tenant_id)

    async def _destroy(self, session: TenantSession) -> None:
        client = session.client
        if client is None:
            return
        try:
            await asyncio.wait_for(client.destroy(), timeout=DESTROY_TIMEOUT)
        except Exception as e:
            logger.warning(
                "Failed to destroy client for %s (%s): %s",
                session.tenant_id,
                session.session_id,
                describe(e),
            )

    async def _clear_credentials(self, tenant_id: str) -> None:
        try:
            await self._credentials.clear(tenant_id)
        except Exception as e:
            logger.warning("Failed to clear credential cache for %s: %s", tenant_id, describe(e))

    def __repr__(self) -> str:
        return f"<SessionLifecycleManager store={self._store.name} live={len(self._registry)}>"
