"""
Status store abstraction for Relaygate.

The status store keeps one document per tenant describing the last known
state of its protocol session. The lifecycle manager writes it; the HTTP
API reads it. Writes are partial: a :class:`StatusUpdate` names exactly the
fields a transition sets, and backends merge them into the existing
document so unrelated fields survive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from relaygate.models.state import SessionState


@dataclass
class StatusDocument:
    """
    Persisted status of a tenant's session.

    Attributes:
        tenant_id: The tenant this document belongs to.
        status: State name (a :class:`SessionState` value).
        qr: Rendered pairing payload, if awaiting pairing.
        error: Cause of the last failure state.
        updated_at: When the document was last written.
        extra: Fields written by other parties, preserved across updates.
    """

    tenant_id: str
    status: str
    qr: str | None = None
    error: str | None = None
    updated_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def state(self) -> SessionState | None:
        """The status as a :class:`SessionState`, or None for unknown values."""
        try:
            return SessionState(self.status)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of the document."""
        return {
            **self.extra,
            "status": self.status,
            "qr": self.qr,
            "error": self.error,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class StatusUpdate:
    """
    A partial update applied by one state transition.

    Every transition writes ``status``, ``qr`` and ``error``; the store stamps
    ``updated_at`` itself. Nothing else in the document is touched.
    """

    status: SessionState
    qr: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.qr is not None and self.status != SessionState.AWAITING_PAIRING:
            raise ValueError("qr may only be set when awaiting pairing")

    def to_fields(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "qr": self.qr,
            "error": self.error,
        }


class StatusStore(ABC):
    """
    Abstract base class for status store backends.

    Implementations must tolerate concurrent writes for different tenants.
    Same-tenant writes are serialized by the lifecycle manager.
    """

    name: str = "abstract"

    @abstractmethod
    async def get(self, tenant_id: str) -> StatusDocument | None:
        """
        Fetch the status document for a tenant.

        Args:
            tenant_id: The tenant to look up.

        Returns:
            The document, or None if the tenant was never written.
        """
        pass

    @abstractmethod
    async def update(self, tenant_id: str, update: StatusUpdate) -> StatusDocument:
        """
        Merge ``update`` into the tenant's document, creating it if needed.

        Args:
            tenant_id: The tenant to write.
            update: The fields to set.

        Returns:
            The document after the write.
        """
        pass

    async def ping(self) -> None:
        """Check the backend is reachable. Raises StatusStoreError if not."""
        return None

    async def close(self) -> None:
        """Release backend resources."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"


class StatusStoreError(Exception):
    """Raised when a storage backend operation fails."""
    pass
