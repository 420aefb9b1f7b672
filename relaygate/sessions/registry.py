"""
Session registry for Relaygate.

The registry is the single source of truth for "is there a live session for
this tenant". It never hands out the underlying mapping; callers work with
per-tenant slots and a handful of atomic operations.

Each tenant gets a :class:`TenantSlot` holding:

    - ``lifecycle_lock``: serializes create / reset / event-driven removal.
    - ``status_lock``: serializes status-store writes against supersedes, so
      a stale check and the write it guards cannot straddle a reset.
    - ``session``: the occupant, reserved while initializing and registered
      once ``initialize()`` has started successfully.

Slot mutations assert that the caller holds the lifecycle lock. Callers take
the locks through :meth:`SessionRegistry.hold_lifecycle` and
:meth:`SessionRegistry.hold_status`; a slot with no occupant and no holders
is dropped when the last holder leaves.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncContextManager, AsyncIterator

from relaygate.sessions.state import TenantSession

logger = logging.getLogger(__name__)


@dataclass
class TenantSlot:
    """Per-tenant locks and the current session occupant."""

    tenant_id: str
    lifecycle_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    status_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    session: TenantSession | None = None
    registered: bool = False
    holders: int = 0

    @property
    def idle(self) -> bool:
        return self.session is None and self.holders == 0


class SessionRegistry:
    """
    In-memory registry of tenant sessions.

    Thread Safety:
        Designed for a single asyncio event loop. Cross-tenant operations
        share no lock; same-tenant mutations go through the slot's
        lifecycle lock.

    Example:
        registry = SessionRegistry()
        async with registry.hold_lifecycle("biz1"):
            if registry.get("biz1") is None:
                session = TenantSession("biz1")
                registry.reserve(session)
                ...
                registry.register(session)
    """

    def __init__(self) -> None:
        self._slots: dict[str, TenantSlot] = {}

    def slot(self, tenant_id: str) -> TenantSlot:
        """Get or create the slot for a tenant."""
        if tenant_id not in self._slots:
            self._slots[tenant_id] = TenantSlot(tenant_id=tenant_id)
        return self._slots[tenant_id]

    def hold_lifecycle(self, tenant_id: str) -> AsyncContextManager[TenantSlot]:
        """Async context manager holding the tenant's lifecycle lock."""
        return self._hold(tenant_id, status=False)

    def hold_status(self, tenant_id: str) -> AsyncContextManager[TenantSlot]:
        """Async context manager holding the tenant's status lock."""
        return self._hold(tenant_id, status=True)

    @asynccontextmanager
    async def _hold(self, tenant_id: str, status: bool) -> AsyncIterator[TenantSlot]:
        slot = self.slot(tenant_id)
        slot.holders += 1
        try:
            async with slot.status_lock if status else slot.lifecycle_lock:
                yield slot
        finally:
            slot.holders -= 1
            if slot.idle and self._slots.get(tenant_id) is slot:
                del self._slots[tenant_id]
                logger.debug("Dropped idle slot for %s", tenant_id)

    @property
    def slot_count(self) -> int:
        return len(self._slots)

    def get(self, tenant_id: str) -> TenantSession | None:
        """Return the registered session for a tenant, if any.

        A session that is only reserved (still initializing) is not returned.
        """
        slot = self._slots.get(tenant_id)
        if slot is None or not slot.registered:
            return None
        return slot.session

    def is_current(self, session: TenantSession) -> bool:
        """True if ``session`` occupies its tenant's slot (reserved or registered)."""
        slot = self._slots.get(session.tenant_id)
        return slot is not None and slot.session is session

    def reserve(self, session: TenantSession) -> None:
        """Claim the tenant's slot for a session that is about to initialize."""
        slot = self._locked_slot(session.tenant_id)
        if slot.session is not None:
            raise RuntimeError(
                f"Slot for {session.tenant_id} is already occupied by {slot.session!r}"
            )
        slot.session = session
        slot.registered = False
        logger.debug("Reserved slot for %s (%s)", session.tenant_id, session.session_id)

    def register(self, session: TenantSession) -> None:
        """Promote a reserved session to registered."""
        slot = self._locked_slot(session.tenant_id)
        if slot.session is not session:
            raise RuntimeError(f"{session!r} does not hold the slot it is registering")
        slot.registered = True
        logger.debug("Registered %r", session)

    def release(self, session: TenantSession) -> bool:
        """Vacate the slot if ``session`` holds it and mark the session superseded.

        Returns:
            True if the session was holding the slot.
        """
        slot = self._locked_slot(session.tenant_id)
        session.supersede()
        if slot.session is not session:
            return False
        slot.session = None
        slot.registered = False
        logger.debug("Released slot for %s (%s)", session.tenant_id, session.session_id)
        return True

    def sessions(self) -> list[TenantSession]:
        """Snapshot of all registered sessions."""
        return [
            slot.session
            for slot in self._slots.values()
            if slot.registered and slot.session is not None
        ]

    def __len__(self) -> int:
        return len(self.sessions())

    def _locked_slot(self, tenant_id: str) -> TenantSlot:
        slot = self.slot(tenant_id)
        if not slot.lifecycle_lock.locked():
            raise RuntimeError(
                f"Lifecycle lock for {tenant_id} must be held to mutate its slot"
            )
        return slot

    def __repr__(self) -> str:
        return f"<SessionRegistry tenants={self.slot_count} live={len(self)}>"
