"""Relaygate data models: session states and SQLAlchemy tables."""

from relaygate.models.state import SessionState
from relaygate.models.status import ConnectionStatus

__all__ = ["ConnectionStatus", "SessionState"]
