"""
On-disk session credential cache.

Protocol clients keep their authenticated state (cookies, keys, browser
profile) in a directory per tenant. Before a session is (re)initialized the
directory is removed and recreated empty so a fresh pairing starts clean.

Tenant ids are opaque. Ids made of ``[A-Za-z0-9_-]`` map to
``session-<id>``; anything else maps to ``session-<sha256>`` so an id can
never escape the cache root.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class CredentialCache:
    """
    Filesystem cache of per-tenant session credentials.

    Example:
        cache = CredentialCache(Path(".sessions"))
        await cache.clear("biz1")   # removes .sessions/session-biz1, recreates it empty
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, tenant_id: str) -> Path:
        """Directory holding a tenant's cached credentials."""
        if not tenant_id:
            raise ValueError("tenant_id cannot be empty")
        if _SAFE_ID.match(tenant_id):
            name = tenant_id
        else:
            name = hashlib.sha256(tenant_id.encode("utf-8")).hexdigest()
        return self._root / f"session-{name}"

    async def clear(self, tenant_id: str) -> bool:
        """Remove the tenant's directory and recreate it empty.

        Returns:
            True if a previous directory existed and was removed.

        Raises:
            OSError: If the directory cannot be removed or recreated.
        """
        path = self.path_for(tenant_id)
        existed = await asyncio.to_thread(self._reset_dir, path)
        if existed:
            logger.info("Cleared credential cache for %s at %s", tenant_id, path)
        return existed

    @staticmethod
    def _reset_dir(path: Path) -> bool:
        existed = path.exists()
        if existed:
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)
        return existed

    def __repr__(self) -> str:
        return f"<CredentialCache root={self._root}>"
