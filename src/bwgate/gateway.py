"""User-facing facade tying configuration, session, token and dispatch together.

:class:`Gateway` is what applications normally hold. It builds a
:class:`~bwgate.session.Session`, a
:class:`~bwgate.auth.token_manager.TokenManager` and a
:class:`~bwgate.client.dispatcher.RequestDispatcher` from one
:class:`~bwgate.models.GatewayConfig`, and exposes the Public API resource
accessors as :attr:`Gateway.api`.

Example::

    from bwgate import Gateway

    with Gateway.from_env() as gateway:
        gateway.connect()
        for member in gateway.api.list_members():
            print(member["email"])
"""

from __future__ import annotations

from typing import Any, Optional, Union

from bwgate.auth.token_manager import TokenManager
from bwgate.client.dispatcher import Body, RequestDispatcher
from bwgate.config import resolve_config, resolve_credential
from bwgate.exceptions import ConfigError
from bwgate.models import (
    GatewayConfig,
    HTTPMethod,
    TokenRecord,
    UnrecognizedCredential,
)
from bwgate.resources import PublicApi
from bwgate.session import Session


class Gateway:
    """Authenticated access to the Bitwarden Public API.

    Must be used as a context manager; the HTTP transport lives for the
    duration of the ``with`` block. Authentication is explicit: call
    :meth:`connect` before the first request.

    Args:
        config: Gateway configuration. Defaults to
            :class:`~bwgate.models.GatewayConfig` defaults.
        session: Session to hold the token. A fresh one is created when
            omitted; pass an existing one to share a token between gateways.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        session: Optional[Session] = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._session = session or Session()
        self._token_manager = TokenManager(
            self._session,
            device_name=self._config.device_name,
            refresh_margin_seconds=self._config.refresh_margin_seconds,
            timeout=self._config.request.timeout,
            verify_ssl=self._config.request.verify_ssl,
        )
        self._dispatcher = RequestDispatcher(self._token_manager, self._config.request)
        self.api = PublicApi(self)

    @classmethod
    def from_env(cls, **overrides: Any) -> Gateway:
        """Build a gateway from :func:`~bwgate.config.resolve_config`."""
        return cls(resolve_config(**overrides))

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token_manager(self) -> TokenManager:
        return self._token_manager

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Gateway:
        self._dispatcher.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        self._dispatcher.__exit__(*args)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def connect(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        subscription_key: Optional[str] = None,
    ) -> Union[TokenRecord, UnrecognizedCredential]:
        """Authenticate with the configured (or given) API key.

        Explicit arguments win over the config's ``*_source`` descriptors.

        Raises:
            ConfigError: If a credential is neither given nor configured, or
                its source cannot be resolved.
            ConnectionError_: If the token request fails.
        """
        cfg = self._config
        if client_id is None:
            client_id = self._resolve(cfg.client_id_source, "client_id_source")
        if client_secret is None:
            client_secret = self._resolve(cfg.client_secret_source, "client_secret_source")
        if subscription_key is None:
            subscription_key = (
                resolve_credential(cfg.subscription_key_source)
                if cfg.subscription_key_source
                else ""
            )
        return self._token_manager.authenticate(
            cfg.identity_url,
            client_id,
            client_secret,
            cfg.scope,
            kind=cfg.credential_kind,
            subscription_key=subscription_key,
        )

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
        """Dispatch a request. See :meth:`RequestDispatcher.execute`."""
        return self._dispatcher.execute(
            endpoint,
            method,
            base_url=base_url,
            max_retries=max_retries,
            filter_query=filter_query,
            initial_retry_delay=initial_retry_delay,
            body=body,
        )

    @staticmethod
    def _resolve(source: Optional[str], field_name: str) -> str:
        if not source:
            raise ConfigError(
                f"No credential given and '{field_name}' is not configured"
            )
        return resolve_credential(source)
