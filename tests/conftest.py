"""Shared test fixtures for bwgate.

Provides reusable fixtures for isolated config environments, output state,
token endpoint responses and authenticated sessions. Fixtures are
discovered by pytest; the plain helpers (``make_token_response``,
``mock_token_post``, ``make_org_token``, ``serve``) are imported directly.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock

import httpx
import pytest

from bwgate.auth.token_manager import TokenManager
from bwgate.client.dispatcher import RequestDispatcher
from bwgate.models import OrganizationToken
from bwgate.output import reset_output
from bwgate.session import Session

IDENTITY_URL = "https://identity.example.com/connect/token"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test."""
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME at tmp_path, forces the XDG code path, and
    clears every BWGATE_* environment variable.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("bwgate.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in [
        "BWGATE_BASE_URL",
        "BWGATE_MAX_RETRIES",
        "BWGATE_IDENTITY_URL",
        "BWGATE_SCOPE",
        "BWGATE_CREDENTIAL_KIND",
        "BWGATE_CLIENT_ID",
        "BWGATE_CLIENT_SECRET",
        "BWGATE_SUBSCRIPTION_KEY",
        "BWGATE_CONFIG",
    ]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Token endpoint helpers
# ---------------------------------------------------------------------------


def make_token_response(
    access_token: str = "test-access-token",
    expires_in: int = 3600,
    private_key: str | None = None,
    key: str | None = None,
) -> dict[str, Any]:
    """Build a token endpoint JSON body."""
    data: dict[str, Any] = {
        "access_token": access_token,
        "expires_in": expires_in,
        "token_type": "Bearer",
        "scope": "api.organization",
    }
    if private_key is not None:
        data["private_key"] = private_key
    if key is not None:
        data["key"] = key
    return data


def mock_token_post(
    token_response: dict[str, Any] | None = None,
    status_code: int = 200,
) -> MagicMock:
    """Create a mock httpx.Response for a patched ``httpx.post``."""
    if token_response is None:
        token_response = make_token_response()

    mock_response = MagicMock(spec=httpx.Response)
    mock_response.status_code = status_code
    mock_response.json.return_value = token_response
    mock_response.text = str(token_response)

    if status_code >= 400:
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(),
            response=mock_response,
        )
    else:
        mock_response.raise_for_status.return_value = None

    return mock_response


# ---------------------------------------------------------------------------
# Session fixtures
# ---------------------------------------------------------------------------


def make_org_token(
    access_token: str = "live-token",
    expires_in: float = 3600,
    subscription_key: str = "",
) -> OrganizationToken:
    """An organization token expiring *expires_in* seconds from now (negative = expired)."""
    return OrganizationToken(
        access_token=access_token,
        expiration=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        client_id="organization.abc",
        client_secret="org-secret",
        endpoint=IDENTITY_URL,
        scope="api.organization",
        subscription_key=subscription_key,
    )


def serve(dispatcher: RequestDispatcher, handler: Callable[[httpx.Request], httpx.Response]) -> None:
    """Route an open dispatcher's requests to *handler*, closing its real client."""
    assert dispatcher._client is not None
    dispatcher._client.close()
    dispatcher._client = httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def authed_session() -> Session:
    """A session already holding a valid organization token."""
    s = Session()
    s.replace(make_org_token(subscription_key="sub-key"))
    return s


@pytest.fixture
def token_manager(authed_session: Session) -> TokenManager:
    return TokenManager(authed_session)
