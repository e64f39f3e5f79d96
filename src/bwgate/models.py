"""Canonical Pydantic models shared across all bwgate modules.

Every other module imports its data shapes from here. The models fall into
three groups:

**Configuration models** -- loaded from the config file / environment:
    :class:`RequestConfig` and :class:`GatewayConfig`.

**Token models** -- the in-memory session state:
    :class:`CredentialKind`, :class:`TokenRecord` and its two variants
    :class:`OrganizationToken` and :class:`UserToken`, plus the
    :class:`UnrecognizedCredential` outcome.

**Wire models** -- parsed response bodies:
    :class:`TokenResponse`, :class:`ErrorResponse`, :class:`ListResponse`.

All models use Pydantic v2. Wire models accept unknown keys (``extra="allow"``)
so that fields the server adds later are preserved in ``model_extra``.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "https://api.bitwarden.com"
DEFAULT_IDENTITY_URL = "https://identity.bitwarden.com/connect/token"
DEFAULT_SCOPE = "api.organization"


class HTTPMethod(str, enum.Enum):
    """HTTP methods accepted by the request dispatcher."""

    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"


class CredentialKind(str, enum.Enum):
    """Which kind of API key produced a token.

    Organization keys authenticate as the organization itself. User keys
    authenticate as an individual account and come back with encrypted key
    material that later client-side crypto needs.
    """

    ORGANIZATION = "organization"
    USER = "user"


# --- Config ---


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every dispatched call."""

    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=3, ge=0, description="Max retries on HTTP 429 responses"
    )
    initial_retry_delay: float = Field(
        default=3,
        ge=0,
        description="Base backoff delay in seconds when the server suggests none",
    )


class GatewayConfig(BaseModel):
    """Everything a :class:`~bwgate.gateway.Gateway` needs to authenticate and dispatch.

    Credentials are not stored directly; ``*_source`` fields hold a source
    descriptor resolved by :func:`~bwgate.config.resolve_credential` (e.g.
    ``env:BW_CLIENT_ID`` or ``file:~/.bw/secret``).

    Example::

        GatewayConfig(
            client_id_source="env:BW_CLIENT_ID",
            client_secret_source="env:BW_CLIENT_SECRET",
        )
    """

    identity_url: str = Field(
        default=DEFAULT_IDENTITY_URL, description="OAuth2 token endpoint"
    )
    scope: str = Field(default=DEFAULT_SCOPE, description="OAuth2 scope to request")
    credential_kind: Optional[CredentialKind] = Field(
        default=None,
        description="Force the credential kind instead of inferring it",
    )
    client_id_source: Optional[str] = None
    client_secret_source: Optional[str] = None
    subscription_key_source: Optional[str] = Field(
        default=None, description="Source for the Ocp-Apim-Subscription-Key header"
    )
    device_name: str = Field(
        default="bwgate", description="deviceName sent with token requests"
    )
    refresh_margin_seconds: float = Field(
        default=0,
        ge=0,
        description="Treat tokens as expired this many seconds early",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Tokens ---


class TokenRecord(BaseModel):
    """The active authenticated session.

    Carries the bearer token, its absolute expiry and every credential needed
    to re-authenticate without involving the caller. A record is immutable;
    refreshing replaces it with a new one.
    """

    model_config = ConfigDict(frozen=True)

    kind: CredentialKind
    access_token: str = Field(repr=False)
    expiration: datetime
    client_id: str
    client_secret: str = Field(repr=False)
    endpoint: str
    scope: str
    subscription_key: str = Field(default="", repr=False)

    def is_expired(self, now: Optional[datetime] = None, margin_seconds: float = 0) -> bool:
        """Return ``True`` once *now* is past the expiry (minus *margin_seconds*)."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now > self.expiration - timedelta(seconds=margin_seconds)


class OrganizationToken(TokenRecord):
    """Token issued for an organization API key."""

    kind: Literal[CredentialKind.ORGANIZATION] = CredentialKind.ORGANIZATION


class UserToken(TokenRecord):
    """Token issued for a personal API key, with the account's key material."""

    kind: Literal[CredentialKind.USER] = CredentialKind.USER
    private_key: str = Field(repr=False)
    key: str = Field(repr=False)


class UnrecognizedCredential(BaseModel):
    """Authentication succeeded but the credential kind could not be determined.

    No session state is stored for this outcome. ``raw`` holds the token
    endpoint's JSON body untouched, for diagnostics.
    """

    client_id: str
    raw: dict[str, Any] = Field(repr=False)


# --- Wire shapes ---


class TokenResponse(BaseModel):
    """Body returned by the identity token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    expires_in: int
    token_type: Optional[str] = None
    scope: Optional[str] = None
    private_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("private_key", "PrivateKey")
    )
    key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("key", "Key")
    )

    @property
    def has_key_material(self) -> bool:
        return bool(self.private_key) and bool(self.key)


class ErrorResponse(BaseModel):
    """Error body shape shared by every endpoint: ``{"detail": "..."}``."""

    model_config = ConfigDict(extra="allow")

    detail: Optional[str] = None


class ListResponse(BaseModel):
    """Envelope of list endpoints: ``{"data": [...]}``."""

    model_config = ConfigDict(extra="allow")

    data: list[dict[str, Any]]
    continuation_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("continuationToken", "continuation_token"),
    )
