"""
Cross-frame identity relay message.

A parent frame posts {isAdminFlag, legacyKey, ssoIdentity | null} to the
embedded board. boardsync does not authenticate anyone; it only reads the
optional bearer token to hand to the remote store client, and picks a
stable client identity for presence.

Invariants:
    - ssoIdentity may be absent (anonymous / local-only mode)
    - Malformed messages are logged and ignored, never raised
    - The bearer token is a SecretStr and never appears in logs or reprs
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class SsoIdentity(BaseModel):
    """SSO identity relayed from the parent frame."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    subject_id: str = Field(alias="subjectId", min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    bearer_token: Optional[SecretStr] = Field(default=None, alias="bearerToken")


class IdentityRelayMessage(BaseModel):
    """The full relay message."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_admin: bool = Field(default=False, alias="isAdminFlag")
    legacy_key: Optional[str] = Field(default=None, alias="legacyKey")
    sso_identity: Optional[SsoIdentity] = Field(default=None, alias="ssoIdentity")

    @property
    def anonymous(self) -> bool:
        return self.sso_identity is None

    @property
    def bearer_token(self) -> Optional[str]:
        """Credential to present to the remote store, if any."""
        if self.sso_identity is None or self.sso_identity.bearer_token is None:
            return None
        return self.sso_identity.bearer_token.get_secret_value() or None

    @property
    def display_name(self) -> Optional[str]:
        if self.sso_identity is None:
            return None
        return self.sso_identity.display_name or self.sso_identity.email

    def client_identity(self) -> str:
        """SSO subject id, else the legacy key, else a fresh anonymous id."""
        if self.sso_identity is not None:
            return self.sso_identity.subject_id
        if self.legacy_key:
            return self.legacy_key
        return anonymous_identity()


def anonymous_identity() -> str:
    return f"anon-{uuid.uuid4().hex[:12]}"


def parse_relay_message(raw: Any) -> Optional[IdentityRelayMessage]:
    """Parse a relay message from a dict, JSON text or bytes.

    Returns:
        The parsed message, or None if it is malformed
    """
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return IdentityRelayMessage.model_validate_json(raw)
        return IdentityRelayMessage.model_validate(raw)
    except PydanticValidationError as e:
        logger.warning(
            "Ignoring malformed identity relay message",
            extra={"errors": e.error_count()},
        )
        return None
