"""Connection status SQLAlchemy model.

One row per tenant, mirroring the status document the HTTP API serves.
``created_at`` is written once and never touched by status updates.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from relaygate.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionStatus(Base):
    """Persisted connection status of a tenant's protocol session.

    Attributes
    ----------
    tenant_id:   Opaque tenant identifier (primary key).
    status:      Session state name.
    qr:          Rendered pairing payload, only while awaiting pairing.
    error:       Cause of the last failure state.
    created_at:  When the tenant was first written.
    updated_at:  When the status last changed.
    """

    __tablename__ = "connection_status"
    __table_args__ = (
        Index("ix_connection_status_status", "status"),
    )

    tenant_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    qr: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<ConnectionStatus {self.tenant_id} status={self.status}>"
