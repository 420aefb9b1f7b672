"""
In-process protocol client for local development.

``LoopbackClient`` speaks the protocol client contract without any network:
``initialize()`` emits a random pairing code, ``confirm_pairing()`` plays the
part of the human scanning it, and sends are recorded instead of delivered.
It is the default ``CLIENT_FACTORY`` so the gateway runs out of the box.

Options (``CLIENT_OPTIONS``):
    code_length: Length of the generated pairing code (default 32).
    auto_pair_seconds: If set, pair automatically this many seconds after
        the code is issued.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any

from relaygate.sessions.client import BaseProtocolClient, ClientEvent

logger = logging.getLogger(__name__)

# Excludes 0/O and 1/I/L.
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


def generate_pairing_code(length: int = 32) -> str:
    """Generate a cryptographically secure pairing code."""
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class LoopbackClient(BaseProtocolClient):
    """Protocol client that pairs and "sends" entirely in-process."""

    def __init__(self, tenant_id: str, options: dict[str, Any] | None = None) -> None:
        super().__init__(tenant_id, options)
        self.pairing_code: str | None = None
        self.connected = False
        self.destroyed = False
        self.sent: list[dict[str, str]] = []
        self._auto_pair: asyncio.Task | None = None

    async def initialize(self) -> None:
        if self.destroyed:
            raise RuntimeError("client has been destroyed")

        self.pairing_code = generate_pairing_code(int(self.options.get("code_length", 32)))
        logger.info("Loopback client for %s issued a pairing code", self.tenant_id)
        self.emit(ClientEvent.PAIRING_CODE, self.pairing_code)

        delay = self.options.get("auto_pair_seconds")
        if delay is not None:
            self._auto_pair = asyncio.create_task(self._pair_after(float(delay)))

    async def _pair_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.confirm_pairing()

    def confirm_pairing(self) -> None:
        """Complete pairing, as if the code had been scanned."""
        if self.destroyed or self.pairing_code is None:
            raise RuntimeError("no pairing in progress")
        self.pairing_code = None
        self.connected = True
        self.emit(ClientEvent.READY)

    async def send_message(self, target: str, body: str) -> str:
        if not self.connected:
            raise RuntimeError("session is not connected")
        message_id = secrets.token_hex(8)
        self.sent.append({"id": message_id, "to": target, "body": body})
        logger.info("Loopback client for %s sent %s to %s", self.tenant_id, message_id, target)
        return message_id

    def disconnect(self, reason: str = "NAVIGATION") -> None:
        """Simulate the connection dropping."""
        self.connected = False
        self.emit(ClientEvent.DISCONNECTED, reason)

    def fail_auth(self, message: str = "credentials rejected") -> None:
        """Simulate the stored credentials being rejected."""
        self.connected = False
        self.emit(ClientEvent.AUTH_FAILURE, message)

    async def destroy(self) -> None:
        if self._auto_pair is not None and not self._auto_pair.done():
            self._auto_pair.cancel()
        self.destroyed = True
        self.connected = False
        self.pairing_code = None
