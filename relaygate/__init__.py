"""Relaygate -- multi-tenant chat gateway.

Manages one chat-protocol session per business, persists each session's
connection state (including pairing codes) and relays outbound messages
through whichever session is active.
"""

__version__ = "0.1.0"
