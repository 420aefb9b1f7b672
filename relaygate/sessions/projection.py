"""
Projection of protocol-client lifecycle events onto status documents.

Each event a client emits maps to exactly one state transition with a fixed
set of status fields:

    ======================  ==================  ======================  ==========
    Event                   New state           Fields written          Tears down
    ======================  ==================  ======================  ==========
    ``qr`` (code)           awaiting_pairing    qr=<rendered>, error    no
    ``ready``               connected           qr=None, error=None     no
    ``disconnected``        disconnected        qr=None, error=reason   yes
    ``auth_failure``        auth_failed         qr=None, error=message  yes
    ======================  ==================  ======================  ==========

Tearing down removes the session from the registry and clears the tenant's
credential cache. The functions here are pure; the lifecycle manager applies
their results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from relaygate.models.state import SessionState
from relaygate.sessions.client import ClientEvent
from relaygate.store.base import StatusUpdate


@dataclass(frozen=True)
class Transition:
    """The effect of one lifecycle event.

    Attributes:
        state: The state the session moves to.
        update: The status-store fields to merge.
        tears_down: Whether the session leaves the registry.
    """

    state: SessionState
    update: StatusUpdate
    tears_down: bool = False

    @property
    def pairing_payload(self) -> str | None:
        return self.update.qr

    @property
    def error(self) -> str | None:
        return self.update.error


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def project(event: ClientEvent, value: Any = None) -> Transition:
    """Map an event to its transition.

    Args:
        event: The lifecycle event.
        value: The event's argument: the *rendered* pairing payload for
            ``qr``, the reason for ``disconnected``, the message for
            ``auth_failure``. Ignored for ``ready``.

    Raises:
        ValueError: For an unknown event or a pairing event without payload.
    """
    event = ClientEvent(event)

    if event == ClientEvent.PAIRING_CODE:
        if not value:
            raise ValueError("pairing event requires a rendered payload")
        state = SessionState.AWAITING_PAIRING
        return Transition(state, StatusUpdate(state, qr=str(value), error=None))

    if event == ClientEvent.READY:
        state = SessionState.CONNECTED
        return Transition(state, StatusUpdate(state, qr=None, error=None))

    if event == ClientEvent.DISCONNECTED:
        state = SessionState.DISCONNECTED
        return Transition(
            state,
            StatusUpdate(state, qr=None, error=_as_text(value)),
            tears_down=True,
        )

    # ClientEvent.AUTH_FAILURE
    state = SessionState.AUTH_FAILED
    return Transition(
        state,
        StatusUpdate(state, qr=None, error=_as_text(value)),
        tears_down=True,
    )


def initializing() -> StatusUpdate:
    """Fields written when a reset begins."""
    return StatusUpdate(SessionState.INITIALIZING, qr=None, error=None)


def initialization_failed(reason: str) -> StatusUpdate:
    """Fields written when a client fails to start."""
    return StatusUpdate(SessionState.ERROR, qr=None, error=reason)
