"""Per-session token state.

A :class:`Session` owns the single active
:class:`~bwgate.models.TokenRecord` for one set of credentials. Separate
sessions are fully independent, so an application can talk to several
organizations at once, and tests never share token state.

The session carries a re-entrant lock. :class:`~bwgate.auth.TokenManager`
holds it across the read-check-refresh sequence so that two threads sharing
a session cannot both see an expired token and both refresh it.
"""

from __future__ import annotations

import threading
from typing import Optional

from bwgate.models import TokenRecord


class Session:
    """Holder of the live :class:`~bwgate.models.TokenRecord`.

    Example::

        session = Session()
        manager = TokenManager(session)
        manager.authenticate(url, client_id, client_secret, "api.organization")
        assert session.token is not None
    """

    def __init__(self) -> None:
        self._token: Optional[TokenRecord] = None
        self.lock = threading.RLock()

    @property
    def token(self) -> Optional[TokenRecord]:
        """The active token record, or ``None`` before the first authentication."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def replace(self, token: TokenRecord) -> None:
        """Swap in *token* as the active record, discarding the previous one."""
        with self.lock:
            self._token = token

    def clear(self) -> None:
        """Forget the active token."""
        with self.lock:
            self._token = None
