"""Exception hierarchy for bwgate.

All exceptions inherit from :class:`BwGateError`. Callers that only care
whether a gateway call failed can catch the base class; callers that need
to branch on the failure class catch the specific subclass.

Subclass hierarchy::

    BwGateError
    +-- InvalidUsageError     (caller contract violated)
    +-- AuthenticationError   (no token / credentials rejected)
    +-- ConnectionError_      (transport failure)
    +-- DecodeError           (response shape mismatch)
    +-- ConfigError           (bad config file or credential source)
    +-- ApiError              (non-success HTTP status)
        +-- RateLimitError    (429 after the retry budget is spent)
"""

from __future__ import annotations


class BwGateError(Exception):
    """Base exception for all bwgate errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidUsageError(BwGateError):
    """Raised when a caller passes arguments that break the request contract."""


class AuthenticationError(BwGateError):
    """Raised when no access token is available for a dispatched request."""


class ConnectionError_(BwGateError):
    """Raised on network-level failures and rejected token requests.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """


class DecodeError(BwGateError):
    """Raised when a response body does not have the expected shape."""


class ConfigError(BwGateError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""


class ApiError(BwGateError):
    """Raised when the API returns a non-success HTTP status.

    Args:
        status_code: The HTTP status code of the failed response.
        message: The ``detail`` field of the error body when present,
            otherwise the raw transport message.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.args = (status_code, message)

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class RateLimitError(ApiError):
    """Raised when HTTP 429 responses outlast the retry budget.

    Args:
        message: The ``detail`` of the last 429 response, or the raw
            transport message.
        retries: How many retries were performed before giving up.
    """

    def __init__(self, message: str, retries: int):
        super().__init__(429, message)
        self.retries = retries
        self.args = (message, retries)
