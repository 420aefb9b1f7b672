"""SQLAlchemy-backed status store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relaygate.models.status import ConnectionStatus
from relaygate.store.base import StatusDocument, StatusStore, StatusStoreError, StatusUpdate

logger = logging.getLogger(__name__)


class SQLStatusStore(StatusStore):
    """
    Status store persisted in the ``connection_status`` table.

    Updates load the tenant's row and set only the transition's columns,
    so ``created_at`` and any columns added later are preserved.

    Example:
        store = SQLStatusStore(async_sessionmaker(engine, expire_on_commit=False))
        await store.update("biz1", StatusUpdate(SessionState.CONNECTED))
    """

    name = "database"

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._owns_engine = sessionmaker is None
        if sessionmaker is None:
            from relaygate.db import get_sessionmaker
            sessionmaker = get_sessionmaker()
        self._sessionmaker = sessionmaker

    async def get(self, tenant_id: str) -> StatusDocument | None:
        try:
            async with self._sessionmaker() as session:
                row = await session.get(ConnectionStatus, tenant_id)
        except SQLAlchemyError as e:
            raise StatusStoreError(f"Failed to read status for {tenant_id}: {e}") from e
        if row is None:
            return None
        return self._to_document(row)

    async def update(self, tenant_id: str, update: StatusUpdate) -> StatusDocument:
        now = datetime.now(timezone.utc)
        fields = update.to_fields()
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    row = await session.get(ConnectionStatus, tenant_id)
                    if row is None:
                        row = ConnectionStatus(
                            tenant_id=tenant_id,
                            created_at=now,
                            updated_at=now,
                            **fields,
                        )
                        session.add(row)
                    else:
                        for column, value in fields.items():
                            setattr(row, column, value)
                        row.updated_at = now
        except SQLAlchemyError as e:
            raise StatusStoreError(f"Failed to write status for {tenant_id}: {e}") from e

        logger.debug("Stored status %s for %s", update.status.value, tenant_id)
        return self._to_document(row)

    async def ping(self) -> None:
        try:
            async with self._sessionmaker() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StatusStoreError(f"Status database unreachable: {e}") from e

    async def close(self) -> None:
        if self._owns_engine:
            from relaygate.db import dispose_engine
            await dispose_engine()

    @staticmethod
    def _to_document(row: ConnectionStatus) -> StatusDocument:
        return StatusDocument(
            tenant_id=row.tenant_id,
            status=row.status,
            qr=row.qr,
            error=row.error,
            updated_at=row.updated_at,
            extra={"createdAt": row.created_at},
        )
