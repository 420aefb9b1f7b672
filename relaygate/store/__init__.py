"""
Status store adapters for Relaygate.

Public API:
    - StatusDocument: Persisted per-tenant status document
    - StatusUpdate: Partial update applied by one state transition
    - StatusStore: Abstract storage backend
    - StatusStoreError: Storage exception
    - InMemoryStatusStore: Dict-backed implementation
    - SQLStatusStore: SQLAlchemy-backed implementation
    - build_status_store: Pick a backend from settings
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import (
    StatusDocument,
    StatusStore,
    StatusStoreError,
    StatusUpdate,
)
from .memory import InMemoryStatusStore
from .sql import SQLStatusStore

if TYPE_CHECKING:
    from relaygate.config.settings import Settings


def build_status_store(settings: "Settings") -> StatusStore:
    """Create the status store named by ``settings.STATUS_STORE``."""
    if settings.STATUS_STORE == "database":
        return SQLStatusStore()
    return InMemoryStatusStore()


__all__ = [
    "StatusDocument",
    "StatusStore",
    "StatusStoreError",
    "StatusUpdate",
    "InMemoryStatusStore",
    "SQLStatusStore",
    "build_status_store",
]
