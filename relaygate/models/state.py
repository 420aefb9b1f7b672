"""Session state vocabulary shared by the lifecycle manager and the status store.

States:
    - UNINITIALIZED: Nothing has been started for the tenant yet.
    - INITIALIZING: Client constructed, ``initialize()`` in flight.
    - AWAITING_PAIRING: A pairing code is waiting to be scanned.
    - CONNECTED: The client reported it is ready.
    - DISCONNECTED: The client dropped the connection.
    - AUTH_FAILED: The protocol rejected the stored credentials.
    - ERROR: Initialization failed.
"""

from enum import Enum


class SessionState(str, Enum):
    """Connection state of a tenant session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AWAITING_PAIRING = "awaiting_pairing"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    AUTH_FAILED = "auth_failed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """True for states after which the session is torn down."""
        return self in (
            SessionState.DISCONNECTED,
            SessionState.AUTH_FAILED,
            SessionState.ERROR,
        )
