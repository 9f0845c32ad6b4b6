"""
Unit tests for the identity relay message.
"""

import json
import logging

from boardsync.identity import IdentityRelayMessage, anonymous_identity, parse_relay_message


SSO_MESSAGE = {
    "isAdminFlag": True,
    "legacyKey": "legacy-123",
    "ssoIdentity": {
        "subjectId": "user-42",
        "email": "ann@example.com",
        "displayName": "Ann",
        "avatarUrl": "https://example.com/ann.png",
        "bearerToken": "tok-secret",
        "tenant": "ignored",
    },
}


class TestParseRelayMessage:
    """Tests for parse_relay_message."""

    def test_full_message(self):
        msg = parse_relay_message(SSO_MESSAGE)
        assert msg.is_admin is True
        assert msg.legacy_key == "legacy-123"
        assert not msg.anonymous
        assert msg.bearer_token == "tok-secret"
        assert msg.display_name == "Ann"
        assert msg.client_identity() == "user-42"

    def test_from_json_text_and_bytes(self):
        text = json.dumps(SSO_MESSAGE)
        assert parse_relay_message(text).client_identity() == "user-42"
        assert parse_relay_message(text.encode()).client_identity() == "user-42"

    def test_anonymous_message(self):
        msg = parse_relay_message({"isAdminFlag": False, "legacyKey": "k1", "ssoIdentity": None})
        assert msg.anonymous
        assert msg.bearer_token is None
        assert msg.display_name is None
        assert msg.client_identity() == "k1"

    def test_empty_message_gets_anonymous_identity(self):
        msg = parse_relay_message({})
        assert msg.client_identity().startswith("anon-")

    def test_malformed_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="boardsync.identity"):
            assert parse_relay_message({"ssoIdentity": {"email": "x"}}) is None
            assert parse_relay_message("{not json") is None
            assert parse_relay_message(["a", "list"]) is None
        assert "malformed" in caplog.text

    def test_token_not_in_repr_or_dump(self):
        msg = parse_relay_message(SSO_MESSAGE)
        assert "tok-secret" not in repr(msg)
        assert "tok-secret" not in msg.model_dump_json()

    def test_display_name_falls_back_to_email(self):
        msg = IdentityRelayMessage.model_validate(
            {"ssoIdentity": {"subjectId": "u", "email": "u@example.com"}}
        )
        assert msg.display_name == "u@example.com"

    def test_populate_by_field_name(self):
        msg = IdentityRelayMessage(is_admin=True, legacy_key="k")
        assert msg.is_admin and msg.legacy_key == "k"


def test_anonymous_identity_is_unique():
    assert anonymous_identity() != anonymous_identity()
