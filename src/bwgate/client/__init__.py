"""HTTP layer for bwgate.

Provides :class:`RequestDispatcher`, a blocking client that wraps
:mod:`httpx` with token injection, transparent token refresh, and
rate-limit retry with exponential backoff, plus the retry state machine it
runs on (:mod:`bwgate.client.retry`).

Example::

    from bwgate.client import RequestDispatcher

    with RequestDispatcher(token_manager) as dispatcher:
        body = dispatcher.execute("public/members")
"""

from bwgate.client.dispatcher import RequestDispatcher, build_url
from bwgate.client.retry import Failure, Retry, RetryPolicy, Success

__all__ = [
    "RequestDispatcher",
    "RetryPolicy",
    "Success",
    "Retry",
    "Failure",
    "build_url",
]
