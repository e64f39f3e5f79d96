"""Response body decoding shared by the dispatcher and the resource accessors.

:func:`extract_response_data` turns a successful :class:`httpx.Response`
into plain Python data. :func:`parse_list` validates the ``{"data": [...]}``
envelope that every Public API list endpoint returns.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from bwgate.exceptions import DecodeError
from bwgate.models import ListResponse


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first. If that fails (e.g. the
    response is HTML or plain text), returns the raw text. Returns
    ``None`` for responses with no content, such as ``204 No Content``
    replies to delete commands.

    Args:
        response: The :class:`httpx.Response` to extract data from.

    Returns:
        A JSON-decoded object (``dict``, ``list``, etc.), a ``str`` of raw
        text, or ``None`` if the body is empty.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        return response.text


def parse_list(body: Any) -> ListResponse:
    """Validate a list endpoint body.

    Raises:
        DecodeError: If *body* is not a ``{"data": [...]}`` object.
    """
    if not isinstance(body, dict):
        raise DecodeError(
            f"Expected a JSON object with a 'data' list, got {type(body).__name__}"
        )
    try:
        return ListResponse.model_validate(body)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected list response shape: {exc}") from exc
