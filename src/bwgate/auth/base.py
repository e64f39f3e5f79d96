"""Authentication artifacts injected into outgoing requests.

:class:`AuthResult` is the hand-off point between the token layer and the
HTTP layer: :class:`~bwgate.auth.token_manager.TokenManager` produces one
from the active token, and
:class:`~bwgate.client.dispatcher.RequestDispatcher` merges its headers into
every request it sends.
"""

from __future__ import annotations


class AuthResult:
    """Container for the HTTP headers an authenticated request must carry.

    Args:
        headers: HTTP headers to add (e.g. ``{"Authorization": "Bearer ..."}``).

    Example::

        result = AuthResult(headers={"Authorization": "Bearer tok123"})
        assert result.headers["Authorization"] == "Bearer tok123"
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers or {}

    def __repr__(self) -> str:
        return f"AuthResult(headers={sorted(self.headers)})"
