"""
Error taxonomy for the session lifecycle manager.

Every failure the core surfaces is a :class:`GatewayError` subclass carrying
the HTTP status the API layer should answer with. Causes from the protocol
client are chained via ``raise ... from exc`` so they stay inspectable.

Example:
    try:
        await manager.send_message("biz1", "5511999999999", "hello")
    except DeliveryFailed as e:
        return JSONResponse(e.to_dict(), status_code=e.status_code)
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for session lifecycle errors."""

    status_code: int = 500

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {"error": str(self)}


class InvalidArgument(GatewayError, ValueError):
    """Raised for missing or malformed input. Never retried."""

    status_code = 400


class InitializationFailed(GatewayError):
    """Raised when a protocol client fails to start.

    The registry has already been rolled back when this is raised.

    Attributes:
        tenant_id: The tenant whose session failed to start.
    """

    def __init__(self, tenant_id: str, reason: str):
        self.tenant_id = tenant_id
        self.reason = reason
        super().__init__(f"Failed to initialize session for {tenant_id}: {reason}")


class DeliveryFailed(GatewayError):
    """Raised when the protocol client rejects an outbound message.

    Attributes:
        tenant_id: The tenant whose session rejected the send.
        target: The protocol address the message was sent to.
    """

    def __init__(self, tenant_id: str, target: str, reason: str):
        self.tenant_id = tenant_id
        self.target = target
        self.reason = reason
        super().__init__(f"Failed to deliver message to {target}: {reason}")


class NotFound(GatewayError, LookupError):
    """Raised when a requested resource does not exist."""

    status_code = 404


class PairingPayloadNotFound(NotFound):
    """Raised when a pairing payload is requested outside its valid window."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__("QR not available")


def describe(exc: BaseException) -> str:
    """Human-readable cause for an exception, falling back to its type name."""
    return str(exc) or exc.__class__.__name__
