"""Tests for relaygate.sessions.projection and the error taxonomy."""

from __future__ import annotations

import pytest

from relaygate.models.state import SessionState
from relaygate.sessions import errors
from relaygate.sessions.client import ClientEvent
from relaygate.sessions.projection import initialization_failed, initializing, project
from relaygate.store.base import StatusUpdate


class TestProject:
    def test_pairing_code(self):
        t = project(ClientEvent.PAIRING_CODE, "data:image/png;base64,AAA")
        assert t.state == SessionState.AWAITING_PAIRING
        assert t.update.to_fields() == {
            "status": "awaiting_pairing",
            "qr": "data:image/png;base64,AAA",
            "error": None,
        }
        assert t.pairing_payload == "data:image/png;base64,AAA"
        assert t.tears_down is False

    def test_pairing_code_requires_payload(self):
        with pytest.raises(ValueError):
            project(ClientEvent.PAIRING_CODE, "")

    def test_ready(self):
        t = project(ClientEvent.READY)
        assert t.state == SessionState.CONNECTED
        assert t.update.to_fields() == {"status": "connected", "qr": None, "error": None}
        assert t.tears_down is False

    def test_disconnected(self):
        t = project(ClientEvent.DISCONNECTED, "LOGOUT")
        assert t.state == SessionState.DISCONNECTED
        assert t.error == "LOGOUT"
        assert t.pairing_payload is None
        assert t.tears_down is True

    def test_auth_failure(self):
        t = project(ClientEvent.AUTH_FAILURE, "bad credentials")
        assert t.state == SessionState.AUTH_FAILED
        assert t.error == "bad credentials"
        assert t.tears_down is True

    def test_non_string_reason_is_stringified(self):
        assert project(ClientEvent.DISCONNECTED, 401).error == "401"

    def test_disconnect_without_reason(self):
        assert project(ClientEvent.DISCONNECTED).error is None

    def test_accepts_raw_event_names(self):
        assert project("ready").state == SessionState.CONNECTED

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            project("message_create")

    def test_lifecycle_updates(self):
        assert initializing().to_fields() == {"status": "initializing", "qr": None, "error": None}
        assert initialization_failed("boom").to_fields() == {
            "status": "error",
            "qr": None,
            "error": "boom",
        }


class TestStatusUpdate:
    def test_qr_only_while_awaiting_pairing(self):
        with pytest.raises(ValueError):
            StatusUpdate(SessionState.CONNECTED, qr="data:x")

    def test_frozen(self):
        update = StatusUpdate(SessionState.CONNECTED)
        with pytest.raises(AttributeError):
            update.status = SessionState.ERROR


class TestErrors:
    @pytest.mark.parametrize(
        "exc,status",
        [
            (errors.InvalidArgument("bad"), 400),
            (errors.InitializationFailed("biz1", "boom"), 500),
            (errors.DeliveryFailed("biz1", "5511@c.us", "offline"), 500),
            (errors.NotFound("missing"), 404),
            (errors.PairingPayloadNotFound("biz1"), 404),
        ],
    )
    def test_status_codes(self, exc, status):
        assert isinstance(exc, errors.GatewayError)
        assert exc.status_code == status
        assert exc.to_dict() == {"error": str(exc)}

    def test_messages(self):
        assert str(errors.InitializationFailed("biz1", "boom")) == (
            "Failed to initialize session for biz1: boom"
        )
        assert str(errors.DeliveryFailed("biz1", "5511@c.us", "offline")) == (
            "Failed to deliver message to 5511@c.us: offline"
        )
        assert str(errors.PairingPayloadNotFound("biz1")) == "QR not available"

    def test_builtin_bases(self):
        assert isinstance(errors.InvalidArgument("x"), ValueError)
        assert isinstance(errors.NotFound("x"), LookupError)

    def test_describe_falls_back_to_type_name(self):
        assert errors.describe(TimeoutError()) == "TimeoutError"
        assert errors.describe(RuntimeError("boom")) == "boom"


class TestSessionState:
    def test_terminal_states_match_teardown(self):
        tearing = {
            project(ClientEvent.DISCONNECTED).state,
            project(ClientEvent.AUTH_FAILURE).state,
        }
        terminal = {s for s in SessionState if s.is_terminal}
        assert terminal == tearing | {SessionState.ERROR}

    def test_values_are_wire_names(self):
        assert SessionState("awaiting_pairing") is SessionState.AWAITING_PAIRING
        assert SessionState.CONNECTED == "connected"
