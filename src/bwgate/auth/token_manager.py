"""OAuth2 Client Credentials token lifecycle.

This module provides :class:`TokenManager`, which performs the
non-interactive Client Credentials grant (:rfc:`6749` section 4.4) against
the Bitwarden identity endpoint and keeps the resulting
:class:`~bwgate.models.TokenRecord` in a :class:`~bwgate.session.Session`.

Tokens are refreshed on demand: :meth:`TokenManager.ensure_valid` is called
before every dispatched request and re-authenticates with the stored
credentials once the token has expired. There is no background refresh.

See Also:
    :class:`bwgate.client.dispatcher.RequestDispatcher`, the main consumer.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from bwgate.auth.base import AuthResult
from bwgate.exceptions import AuthenticationError, ConnectionError_, DecodeError
from bwgate.models import (
    CredentialKind,
    OrganizationToken,
    TokenRecord,
    TokenResponse,
    UnrecognizedCredential,
    UserToken,
)
from bwgate.output import get_output
from bwgate.session import Session

DEVICE_TYPE_SDK = 21
"""Bitwarden device type code for non-interactive SDK clients."""

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_credential_kind(
    client_id: str,
    token_response: TokenResponse,
    explicit: Optional[CredentialKind] = None,
) -> Optional[CredentialKind]:
    """Decide which token variant a successful token response represents.

    Resolution order:

    1. *explicit*, when the caller knows the kind.
    2. The response shape: key material (``private_key`` and ``key``) means
       a user key.
    3. Bitwarden's client id convention: ``organization.<id>`` keys.

    Returns:
        The resolved kind, or ``None`` when nothing identifies it.

    Raises:
        DecodeError: If the kind is (or looks like) ``user`` but the response
            carries no key material.
    """
    if explicit is not None:
        explicit = CredentialKind(explicit)
        if explicit is CredentialKind.USER and not token_response.has_key_material:
            raise DecodeError(
                "Token response for a user API key is missing 'private_key' or 'key'"
            )
        return explicit
    if token_response.has_key_material:
        return CredentialKind.USER
    if client_id.startswith("organization"):
        return CredentialKind.ORGANIZATION
    if client_id.startswith("user"):
        raise DecodeError(
            f"Client id '{client_id}' looks like a user API key but the token "
            "response is missing 'private_key' or 'key'"
        )
    return None


def _error_text(response: httpx.Response) -> str:
    """Pull the most useful message out of a rejected token response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        for field in ("error_description", "error", "detail"):
            if body.get(field):
                return str(body[field])
    return response.text[:200]


class TokenManager:
    """Acquire, hold and refresh client-credentials tokens for one session.

    Args:
        session: The session whose token record this manager maintains.
        device_name: ``deviceName`` reported to the identity server.
        refresh_margin_seconds: Treat tokens as expired this many seconds
            before their real expiry.
        timeout: Token request timeout in seconds.
        verify_ssl: Verify the identity server's certificate.
    """

    def __init__(
        self,
        session: Session,
        device_name: str = "bwgate",
        refresh_margin_seconds: float = 0,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        self._session = session
        self._device_name = device_name
        self._refresh_margin = refresh_margin_seconds
        self._timeout = timeout
        self._verify_ssl = verify_ssl

    @property
    def session(self) -> Session:
        return self._session

    def authenticate(
        self,
        endpoint: str,
        client_id: str,
        client_secret: str,
        scope: str,
        grant_type: str = "client_credentials",
        kind: Optional[CredentialKind] = None,
        subscription_key: str = "",
    ) -> Union[TokenRecord, UnrecognizedCredential]:
        """Run the client-credentials handshake and store the resulting token.

        Every call generates a fresh device identifier. The request is sent
        once; failures are not retried here.

        Args:
            endpoint: Identity token endpoint URL.
            client_id: API key client id (``organization.<id>`` or ``user.<id>``).
            client_secret: API key client secret.
            scope: OAuth2 scope (``api.organization`` or ``api``).
            grant_type: OAuth2 grant type.
            kind: Credential kind, when known. Inferred otherwise, see
                :func:`resolve_credential_kind`.
            subscription_key: Value for the ``Ocp-Apim-Subscription-Key``
                header on later requests.

        Returns:
            The new :class:`~bwgate.models.TokenRecord`, which also replaces
            the session's token, or an
            :class:`~bwgate.models.UnrecognizedCredential` when the kind
            could not be determined (the session is left untouched).

        Raises:
            ConnectionError_: On transport failure or a non-2xx response.
            DecodeError: If the response body is not a valid token response.
        """
        output = get_output()
        data: dict[str, Any] = {
            "grant_type": grant_type,
            "scope": scope,
            "client_id": client_id,
            "client_secret": client_secret,
            "deviceIdentifier": str(uuid.uuid4()),
            "deviceName": self._device_name,
            "deviceType": DEVICE_TYPE_SDK,
        }

        output.debug(f"Requesting access token from {endpoint} for {client_id}")
        issued_at = _utcnow()
        try:
            response = httpx.post(
                endpoint,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                timeout=self._timeout,
                verify=self._verify_ssl,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ConnectionError_(
                f"Token request failed with status {exc.response.status_code}: "
                f"{_error_text(exc.response)}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Token request failed: {exc}") from exc

        try:
            raw = response.json()
        except ValueError as exc:
            raise DecodeError(f"Token response is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise DecodeError("Token response is not a JSON object")
        try:
            token_response = TokenResponse.model_validate(raw)
        except ValidationError as exc:
            raise DecodeError(f"Unexpected token response shape: {exc}") from exc

        resolved = resolve_credential_kind(client_id, token_response, kind)
        if resolved is None:
            output.debug(
                f"Could not tell which kind of API key '{client_id}' is; "
                "no session token stored"
            )
            return UnrecognizedCredential(client_id=client_id, raw=raw)

        fields: dict[str, Any] = {
            "access_token": token_response.access_token,
            "expiration": issued_at + timedelta(seconds=token_response.expires_in),
            "client_id": client_id,
            "client_secret": client_secret,
            "endpoint": endpoint,
            "scope": scope,
            "subscription_key": subscription_key,
        }
        record: TokenRecord
        if resolved is CredentialKind.USER:
            record = UserToken(
                **fields,
                private_key=token_response.private_key,
                key=token_response.key,
            )
        else:
            record = OrganizationToken(**fields)

        self._session.replace(record)
        output.debug(
            f"Authenticated {resolved.value} key {client_id}; "
            f"token expires at {record.expiration.isoformat()}"
        )
        return record

    def ensure_valid(self) -> TokenRecord:
        """Return the session's token, re-authenticating first if it has expired.

        Raises:
            AuthenticationError: If the session has no token yet.
            ConnectionError_: If the refresh request fails.
        """
        with self._session.lock:
            token = self._require_token()
            if not token.is_expired(_utcnow(), self._refresh_margin):
                return token
            get_output().debug(
                f"Access token expired at {token.expiration.isoformat()}, re-authenticating"
            )
            return self._reauthenticate(token)

    def refresh(self) -> TokenRecord:
        """Force re-authentication with the stored credentials.

        Raises:
            AuthenticationError: If the session has no token yet.
        """
        with self._session.lock:
            return self._reauthenticate(self._require_token())

    def auth_headers(self) -> AuthResult:
        """Return the bearer and subscription-key headers for a valid token."""
        token = self.ensure_valid()
        return AuthResult(
            headers={
                "Authorization": f"Bearer {token.access_token}",
                SUBSCRIPTION_KEY_HEADER: token.subscription_key,
            }
        )

    def _require_token(self) -> TokenRecord:
        token = self._session.token
        if token is None:
            raise AuthenticationError(
                "No access token found. Authenticate before dispatching requests."
            )
        return token

    def _reauthenticate(self, token: TokenRecord) -> TokenRecord:
        result = self.authenticate(
            token.endpoint,
            token.client_id,
            token.client_secret,
            token.scope,
            kind=token.kind,
            subscription_key=token.subscription_key,
        )
        # An explicit kind always resolves, so this is a TokenRecord.
        assert isinstance(result, TokenRecord)
        return result
