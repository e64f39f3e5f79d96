"""Synchronous request dispatcher with token refresh and rate-limit retry.

This module provides :class:`RequestDispatcher`, the blocking HTTP client
behind every Public API call. It wraps :class:`httpx.Client` and layers on:

- **Token lifecycle** -- before every attempt the token is checked via
  :meth:`~bwgate.auth.token_manager.TokenManager.ensure_valid`, which
  re-authenticates transparently once it has expired.
- **Auth injection** -- bearer token and subscription-key headers from the
  active token are attached to each request.
- **Retry with backoff** -- HTTP 429 responses are retried with exponential
  delay (``base``, ``2 * base``, ``4 * base``, ...) by
  :class:`~bwgate.client.retry.RetryPolicy`. Other errors are never retried.
- **Error mapping** -- non-success statuses raise
  :class:`~bwgate.exceptions.ApiError` carrying the server's ``detail``.
"""

from __future__ import annotations

import time
from typing import Any, Optional, Union

import httpx

from bwgate.auth.token_manager import TokenManager
from bwgate.client.retry import Failure, RetryPolicy, Success
from bwgate.exceptions import ConnectionError_, InvalidUsageError, RateLimitError
from bwgate.models import HTTPMethod, RequestConfig
from bwgate.output import get_output

Body = Union[str, bytes, dict[str, Any], list[Any]]


def build_url(base_url: str, endpoint: str, filter_query: Optional[str] = None) -> str:
    """Join ``base_url/endpoint[?filter_query]``.

    Raises:
        InvalidUsageError: If *endpoint* is empty or starts with ``/``, or
            *filter_query* starts with ``?``.
    """
    if not endpoint:
        raise InvalidUsageError("endpoint must not be empty")
    if endpoint.startswith("/"):
        raise InvalidUsageError(
            f"endpoint must not start with '/': {endpoint!r}"
        )
    url = f"{base_url.rstrip('/')}/{endpoint}"
    if filter_query:
        if filter_query.startswith("?"):
            raise InvalidUsageError(
                f"filter_query must not start with '?': {filter_query!r}"
            )
        url = f"{url}?{filter_query}"
    return url


def _coerce_method(method: Union[str, HTTPMethod]) -> HTTPMethod:
    try:
        return HTTPMethod(str(getattr(method, "value", method)).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in HTTPMethod)
        raise InvalidUsageError(
            f"Unsupported HTTP method {method!r}; expected one of {allowed}"
        ) from None


class RequestDispatcher:
    """Send authenticated requests to the Public API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        token_manager: Supplies (and refreshes) the session's token.
        config: Request defaults: base URL, timeout, SSL verification,
            retry budget and initial backoff delay.

    Example::

        with RequestDispatcher(manager, RequestConfig()) as dispatcher:
            members = dispatcher.execute("public/members")
    """

    def __init__(
        self,
        token_manager: TokenManager,
        config: Optional[RequestConfig] = None,
    ) -> None:
        self._token_manager = token_manager
        self._config = config or RequestConfig()
        self._client: Optional[httpx.Client] = None

    @property
    def config(self) -> RequestConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> RequestDispatcher:
        self._client = httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def execute(
        self,
        endpoint: str,
        method: Union[str, HTTPMethod] = HTTPMethod.GET,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        filter_query: Optional[str] = None,
        initial_retry_delay: Optional[float] = None,
        body: Optional[Body] = None,
    ) -> Any:
        """Dispatch one API request, retrying on HTTP 429.

        Args:
            endpoint: Path relative to *base_url*, without a leading ``/``
                (e.g. ``"public/members"``).
            method: One of GET, POST, PATCH, DELETE.
            base_url: Overrides the configured base URL.
            max_retries: Overrides the configured retry budget for 429s.
            filter_query: Raw query string, without a leading ``?``.
            initial_retry_delay: Overrides the configured base backoff delay.
            body: Request body. ``str``/``bytes`` are sent verbatim;
                dicts and lists are JSON-encoded.

        Returns:
            The decoded JSON body, or ``None`` if the response had none.

        Raises:
            InvalidUsageError: On a bad method, endpoint or filter query.
            AuthenticationError: If the session has no token.
            ApiError: On any non-success status other than 429.
            RateLimitError: When 429s outlast the retry budget.
            ConnectionError_: On network / timeout errors.
        """
        assert self._client is not None, "Dispatcher not initialised -- use as context manager"

        verb = _coerce_method(method)
        url = build_url(base_url or self._config.base_url, endpoint, filter_query)
        retries = self._config.max_retries if max_retries is None else max_retries
        delay = (
            self._config.initial_retry_delay
            if initial_retry_delay is None
            else initial_retry_delay
        )
        if retries < 0:
            raise InvalidUsageError("max_retries must be >= 0")
        if delay < 0:
            raise InvalidUsageError("initial_retry_delay must be >= 0")

        policy = RetryPolicy(max_retries=retries, initial_delay=delay)
        output = get_output()

        while True:
            headers = self._build_headers()
            output.debug(f"{verb.value} {url}")
            response = self._send(verb, url, headers, body)

            outcome = policy.classify(response)
            if isinstance(outcome, Success):
                return outcome.value
            if isinstance(outcome, Failure):
                if isinstance(outcome.error, RateLimitError):
                    output.debug(
                        f"Still rate limited after {retries} retries: {verb.value} {url}"
                    )
                raise outcome.error

            output.debug(
                f"Rate limited ({outcome.message}), retrying in {outcome.delay:g}s "
                f"(retry {outcome.attempt}/{retries})"
            )
            time.sleep(outcome.delay)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        headers.update(self._token_manager.auth_headers().headers)
        return headers

    def _send(
        self,
        method: HTTPMethod,
        url: str,
        headers: dict[str, str],
        body: Optional[Body],
    ) -> httpx.Response:
        assert self._client is not None
        kwargs: dict[str, Any] = {
            "method": method.value,
            "url": url,
            "headers": headers,
        }
        if isinstance(body, (str, bytes)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["json"] = body

        try:
            return self._client.request(**kwargs)
        except httpx.HTTPError as exc:
            raise ConnectionError_(
                f"{method.value} {url} failed: {exc}"
            ) from exc
