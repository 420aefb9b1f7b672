"""In-memory status store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from relaygate.store.base import StatusDocument, StatusStore, StatusUpdate

_KNOWN_FIELDS = ("status", "qr", "error", "updatedAt")


class InMemoryStatusStore(StatusStore):
    """
    In-memory implementation of StatusStore.

    Documents are plain dicts merged with ``dict.update`` so fields written
    by other parties survive transitions. Not persistent across restarts;
    use for development and tests.

    Example:
        store = InMemoryStatusStore()
        await store.update("biz1", StatusUpdate(SessionState.CONNECTED))
        doc = await store.get("biz1")
        assert doc.status == "connected"
    """

    name = "memory"

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    async def get(self, tenant_id: str) -> StatusDocument | None:
        data = self._documents.get(tenant_id)
        if data is None:
            return None
        return self._to_document(tenant_id, data)

    async def update(self, tenant_id: str, update: StatusUpdate) -> StatusDocument:
        data = self._documents.setdefault(tenant_id, {})
        data.update(update.to_fields())
        data["updatedAt"] = datetime.now(timezone.utc)
        return self._to_document(tenant_id, data)

    @staticmethod
    def _to_document(tenant_id: str, data: dict[str, Any]) -> StatusDocument:
        return StatusDocument(
            tenant_id=tenant_id,
            status=data.get("status", ""),
            qr=data.get("qr"),
            error=data.get("error"),
            updated_at=data.get("updatedAt"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )

    def __len__(self) -> int:
        return len(self._documents)

    def __repr__(self) -> str:
        return f"<InMemoryStatusStore documents={len(self._documents)}>"
