"""Rate-limit retry policy as an explicit state machine.

Each HTTP response is classified into exactly one :data:`Outcome`:

- :class:`Success` -- 2xx; carries the parsed body.
- :class:`Retry` -- 429 with retry budget left; carries how long to wait.
- :class:`Failure` -- anything else, or a 429 once the budget is spent;
  carries the exception the dispatcher should raise.

The dispatcher loops on :meth:`RetryPolicy.classify` until it gets a
``Success`` or ``Failure``, sleeping between ``Retry`` outcomes. Nothing in
here raises or sleeps, which keeps the policy easy to test in isolation.

Backoff for retry *n* (1-based) is ``base * 2 ** (n - 1)``. ``base`` is the
``N`` of a ``"Try again in N seconds"`` detail message when the server sends
one, otherwise the policy's configured initial delay.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from bwgate.client.response import extract_response_data
from bwgate.exceptions import ApiError, BwGateError, RateLimitError
from bwgate.models import ErrorResponse

RATE_LIMIT_DETAIL = re.compile(r"Try again in (\d+) seconds", re.IGNORECASE)

HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class Success:
    """The request succeeded; ``value`` is the parsed body (``None`` if empty)."""

    value: Any


@dataclass(frozen=True)
class Retry:
    """Rate limited; wait ``delay`` seconds, then send retry number ``attempt``."""

    delay: float
    attempt: int
    message: str


@dataclass(frozen=True)
class Failure:
    """The request failed for good; the dispatcher raises ``error``."""

    error: BwGateError


Outcome = Union[Success, Retry, Failure]


def error_detail(response: httpx.Response) -> Optional[str]:
    """Return the ``detail`` field of an error body, or ``None`` if there isn't one."""
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    try:
        return ErrorResponse.model_validate(body).detail
    except ValidationError:
        return None


def error_message(response: httpx.Response) -> str:
    """The message an :class:`~bwgate.exceptions.ApiError` should carry.

    Prefers the structured ``detail`` field and falls back to the raw
    transport message (the HTTP reason phrase).
    """
    detail = error_detail(response)
    if detail:
        return detail
    return response.reason_phrase or response.text[:200] or "Request failed"


def parse_retry_after(detail: Optional[str]) -> Optional[int]:
    """Extract ``N`` from a ``"Try again in N seconds"`` message."""
    if not detail:
        return None
    match = RATE_LIMIT_DETAIL.search(detail)
    if match is None:
        return None
    return int(match.group(1))


def backoff_delay(base_delay: float, retry_count: int) -> float:
    """Seconds to wait before retry number *retry_count* (1-based)."""
    return base_delay * 2 ** (retry_count - 1)


class RetryPolicy:
    """Per-request retry state.

    Create one policy per logical request; it counts the 429 responses seen
    so far.

    Args:
        max_retries: How many times a rate-limited request is re-sent.
        initial_delay: Base delay in seconds when the server suggests none.
    """

    def __init__(self, max_retries: int = 3, initial_delay: float = 3) -> None:
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.retries = 0

    @property
    def exhausted(self) -> bool:
        return self.retries > self.max_retries

    def classify(self, response: httpx.Response) -> Outcome:
        """Turn *response* into the next state of the retry machine."""
        if response.is_success:
            return Success(extract_response_data(response))

        detail = error_detail(response)
        message = error_message(response)

        if response.status_code != HTTP_TOO_MANY_REQUESTS:
            return Failure(ApiError(response.status_code, message))

        self.retries += 1
        if self.exhausted:
            return Failure(RateLimitError(message, retries=self.max_retries))

        suggested = parse_retry_after(detail)
        base = suggested if suggested is not None else self.initial_delay
        return Retry(
            delay=backoff_delay(base, self.retries),
            attempt=self.retries,
            message=message,
        )
