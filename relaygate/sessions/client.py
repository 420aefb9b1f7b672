"""
Protocol client contract.

The chat-protocol client is an external collaborator. Relaygate consumes it
only through the capability set below, which keeps the lifecycle manager
independent of any one protocol library and lets tests inject fakes.

A client emits four lifecycle events, named after the protocol library's
own vocabulary:

    - ``qr``: a pairing code is ready (``handler(code)``)
    - ``ready``: the session is connected (``handler()``)
    - ``disconnected``: the connection dropped (``handler(reason)``)
    - ``auth_failure``: stored credentials were rejected (``handler(message)``)

Handlers are plain callables invoked synchronously, in emission order.
They must not block; the manager's handlers only enqueue the event.
"""

from __future__ import annotations

import importlib
import logging
from enum import Enum
from typing import Any, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class ClientEvent(str, Enum):
    """Lifecycle events emitted by a protocol client."""

    PAIRING_CODE = "qr"
    READY = "ready"
    DISCONNECTED = "disconnected"
    AUTH_FAILURE = "auth_failure"


EventHandler = Callable[..., Any]


@runtime_checkable
class ProtocolClient(Protocol):
    """Capability set consumed from a chat-protocol client."""

    async def initialize(self) -> None:
        """Start the client. Events may be emitted before this returns."""
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe ``handler`` to ``event``."""
        ...

    async def send_message(self, target: str, body: str) -> Any:
        """Send ``body`` to the protocol address ``target``."""
        ...

    async def destroy(self) -> None:
        """Tear the client down and release its resources."""
        ...


# (tenant_id, options) -> client
ClientFactory = Callable[[str, dict[str, Any]], ProtocolClient]


class BaseProtocolClient:
    """
    Event-emitter base for protocol client implementations.

    Subclasses implement ``initialize``, ``send_message`` and ``destroy``
    and call :meth:`emit` when the underlying protocol changes state.

    Example:
        class MyClient(BaseProtocolClient):
            async def initialize(self):
                code = await self._transport.request_pairing()
                self.emit(ClientEvent.PAIRING_CODE, code)
    """

    def __init__(self, tenant_id: str, options: dict[str, Any] | None = None) -> None:
        self.tenant_id = tenant_id
        self.options = dict(options or {})
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event: str, handler: EventHandler) -> None:
        key = event.value if isinstance(event, ClientEvent) else event
        self._handlers.setdefault(key, []).append(handler)

    def emit(self, event: str, *args: Any) -> int:
        """Invoke every handler for ``event`` in subscription order.

        Returns:
            The number of handlers invoked.
        """
        key = event.value if isinstance(event, ClientEvent) else event
        handlers = list(self._handlers.get(key, []))
        for handler in handlers:
            handler(*args)
        return len(handlers)

    def handler_count(self, event: str | None = None) -> int:
        if event is not None:
            key = event.value if isinstance(event, ClientEvent) else event
            return len(self._handlers.get(key, []))
        return sum(len(v) for v in self._handlers.values())

    async def initialize(self) -> None:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement initialize()"
        )

    async def send_message(self, target: str, body: str) -> Any:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement send_message()"
        )

    async def destroy(self) -> None:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement destroy()"
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} tenant={self.tenant_id}>"


def load_client_factory(path: str) -> ClientFactory:
    """Resolve a ``module:attribute`` path to a client factory.

    The attribute may be a class or any callable accepting
    ``(tenant_id, options)``.

    Raises:
        ValueError: If the path is malformed or does not resolve to a callable.
    """
    module_path, sep, attr = path.partition(":")
    if not sep or not module_path or not attr:
        raise ValueError(f"Client factory must look like 'module:attr', got {path!r}")

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ValueError(f"Cannot import client factory module {module_path!r}: {e}") from e

    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ValueError(f"{path!r} is not a callable client factory")

    logger.debug("Loaded protocol client factory %s", path)
    return factory
