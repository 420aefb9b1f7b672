"""
Session lifecycle for Relaygate.

This package manages one chat-protocol session per tenant:

- ``SessionLifecycleManager``: create / reset / send, event projection
- ``SessionRegistry``: per-tenant slots and locks
- ``TenantSession``: a live client bound to a tenant
- ``ProtocolClient``: the capability set consumed from protocol clients
- Error taxonomy: ``InvalidArgument``, ``InitializationFailed``,
  ``DeliveryFailed``, ``NotFound``

Example:
    from relaygate.sessions import SessionLifecycleManager

    manager = SessionLifecycleManager.from_settings(settings)
    await manager.reset("biz1")
    payload = await manager.get_pairing_payload("biz1")
"""

from relaygate.models.state import SessionState
from relaygate.sessions.client import (
    BaseProtocolClient,
    ClientEvent,
    ClientFactory,
    ProtocolClient,
    load_client_factory,
)
from relaygate.sessions.errors import (
    DeliveryFailed,
    GatewayError,
    InitializationFailed,
    InvalidArgument,
    NotFound,
    PairingPayloadNotFound,
)
from relaygate.sessions.manager import SessionLifecycleManager, TenantStatus
from relaygate.sessions.registry import SessionRegistry, TenantSlot
from relaygate.sessions.state import TenantSession

__all__ = [
    # Manager
    "SessionLifecycleManager",
    "TenantStatus",
    # Registry and state
    "SessionRegistry",
    "TenantSlot",
    "TenantSession",
    "SessionState",
    # Client contract
    "ProtocolClient",
    "BaseProtocolClient",
    "ClientEvent",
    "ClientFactory",
    "load_client_factory",
    # Errors
    "GatewayError",
    "InvalidArgument",
    "InitializationFailed",
    "DeliveryFailed",
    "NotFound",
    "PairingPayloadNotFound",
]
