"""bwgate -- client-side gateway to the Bitwarden Public API.

This package authenticates against the Bitwarden identity server with an
organization (or personal) API key using the OAuth2 client-credentials
grant, then dispatches authenticated requests to the Public API. Expired
tokens are refreshed on demand, and rate-limited requests (HTTP 429) are
retried with exponential backoff.

Typical usage::

    from bwgate import Gateway, GatewayConfig

    config = GatewayConfig(
        client_id_source="env:BW_CLIENT_ID",
        client_secret_source="env:BW_CLIENT_SECRET",
    )
    with Gateway(config) as gateway:
        gateway.connect()
        members = gateway.api.list_members()

Modules:
    gateway: The :class:`Gateway` facade.
    session: Per-session token state.
    auth: Client-credentials handshake and token refresh.
    client: Request dispatcher and rate-limit retry policy.
    resources: Public API resource accessors.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and credential sources.
    exceptions: Exception hierarchy.
    output: Diagnostic output on stderr.
"""

from bwgate.exceptions import (
    ApiError,
    AuthenticationError,
    BwGateError,
    ConfigError,
    ConnectionError_,
    DecodeError,
    InvalidUsageError,
    RateLimitError,
)
from bwgate.gateway import Gateway
from bwgate.models import (
    CredentialKind,
    GatewayConfig,
    HTTPMethod,
    OrganizationToken,
    RequestConfig,
    TokenRecord,
    UnrecognizedCredential,
    UserToken,
)
from bwgate.session import Session

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AuthenticationError",
    "BwGateError",
    "ConfigError",
    "ConnectionError_",
    "CredentialKind",
    "DecodeError",
    "Gateway",
    "GatewayConfig",
    "HTTPMethod",
    "InvalidUsageError",
    "OrganizationToken",
    "RateLimitError",
    "RequestConfig",
    "Session",
    "TokenRecord",
    "UnrecognizedCredential",
    "UserToken",
]
