"""Token acquisition and lifecycle for bwgate.

The main entry points are:

- :class:`TokenManager` -- runs the OAuth2 client-credentials handshake and
  keeps a :class:`~bwgate.session.Session`'s token fresh.
- :class:`AuthResult` -- the headers the dispatcher injects into requests.
- :func:`resolve_credential_kind` -- organization vs user key detection.

Typical usage::

    from bwgate.auth import TokenManager
    from bwgate.session import Session

    manager = TokenManager(Session())
    manager.authenticate(identity_url, client_id, client_secret, "api.organization")
    headers = manager.auth_headers().headers
"""

from bwgate.auth.base import AuthResult
from bwgate.auth.token_manager import (
    DEVICE_TYPE_SDK,
    TokenManager,
    resolve_credential_kind,
)

__all__ = [
    "AuthResult",
    "DEVICE_TYPE_SDK",
    "TokenManager",
    "resolve_credential_kind",
]
