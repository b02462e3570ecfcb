"""OAuth 2.0 authenticator: implicit and authorization-code grants.

This module provides :class:`OAuth2Authenticator`, which implements the
``oauth2`` protocol:

1. Builds the authorize URL (:rfc:`6749#section-4.1` / :rfc:`6749#section-4.2`)
   with a random ``state`` value.
2. Hands it to an :class:`~socialkit.auth.base.AuthenticationUI` and waits
   for the redirect.
3. Reads the access token straight from the redirect (implicit grant), or
   exchanges the ``code`` at ``access_token_url`` (authorization-code
   grant).
4. Resolves the username through a caller-supplied callback and returns an
   :class:`~socialkit.models.Account`.

When ``access_token_url`` is configured, accounts carrying a
``refresh_token`` can be renewed through :meth:`OAuth2Authenticator.reauthorize`.
"""

from __future__ import annotations

import secrets
import time
from typing import Optional
from urllib.parse import urlencode

import httpx

from socialkit.auth.base import (
    AuthenticationState,
    AuthenticationUI,
    Authenticator,
    UsernameResolver,
    parse_redirect,
    send_token_request,
)
from socialkit.exceptions import (
    AuthenticationFailedError,
    ConfigurationError,
    UnsupportedAccountTypeError,
)
from socialkit.models import Account, AuthProtocol, ServiceConfig

_REQUIRED_FIELDS = ("client_id", "scope", "authorize_url", "redirect_url")


def with_expiry(properties: dict[str, str], now: Optional[float] = None) -> dict[str, str]:
    """Add an absolute ``expires_at`` (epoch seconds) derived from ``expires_in``."""
    expires_in = properties.get("expires_in")
    if not expires_in:
        return properties
    try:
        lifetime = float(expires_in)
    except ValueError:
        return properties
    if now is None:
        now = time.time()
    return {**properties, "expires_at": str(int(now + lifetime))}


class OAuth2Authenticator(Authenticator):
    """Authenticate via the OAuth 2.0 implicit or authorization-code grant.

    The grant is chosen by configuration: with an ``access_token_url`` the
    redirect must carry a ``code`` that is exchanged server-side; without
    one the redirect must carry the ``access_token`` itself.

    Args:
        config: Service configuration. ``client_id``, ``scope``,
            ``authorize_url`` and ``redirect_url`` are required.
        get_username: Async callback resolving the display identity from
            the freshly acquired properties. Its result becomes the
            account :attr:`~socialkit.models.Account.id`.
        http_client: Client used for the token exchange. A short-lived one
            is created per request when ``None``.

    Raises:
        ConfigurationError: If a required field is empty. Raised here,
            before any network I/O.
    """

    protocol = AuthProtocol.OAUTH2

    def __init__(
        self,
        config: ServiceConfig,
        get_username: UsernameResolver,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        missing = [name for name in _REQUIRED_FIELDS if not getattr(config, name)]
        if missing:
            raise ConfigurationError(
                f"OAuth2 service '{config.service_id}' is missing: {', '.join(missing)}"
            )
        super().__init__(config.service_id, config.redirect_url)
        self.client_id: str = config.client_id  # type: ignore[assignment]
        self.client_secret = config.client_secret
        self.scope: str = config.scope  # type: ignore[assignment]
        self.authorize_url: str = config.authorize_url  # type: ignore[assignment]
        self.access_token_url = config.access_token_url
        self._get_username = get_username
        self._http_client = http_client

    @property
    def scopes(self) -> list[str]:
        return self.scope.split(",")

    @property
    def is_implicit(self) -> bool:
        """``True`` for the implicit grant (no token endpoint configured)."""
        return not self.access_token_url

    @property
    def supports_reauthorization(self) -> bool:
        return not self.is_implicit

    def build_authorize_url(self, request_state: str) -> str:
        """Return the provider URL the user must visit."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "token" if self.is_implicit else "code",
            "scope": self.scope,
            "state": request_state,
        }
        separator = "&" if "?" in self.authorize_url else "?"
        return f"{self.authorize_url}{separator}{urlencode(params)}"

    async def begin_authentication(self, ui: AuthenticationUI) -> Account:
        return await self._attempt(self._flow(ui))

    async def _flow(self, ui: AuthenticationUI) -> Account:
        request_state = secrets.token_urlsafe(16)
        redirected = await self._present(ui, self.build_authorize_url(request_state))
        params = parse_redirect(redirected)

        if "error" in params:
            detail = params.get("error_description", "")
            message = f"OAuth2 authorization failed: {params['error']}"
            raise AuthenticationFailedError(f"{message} - {detail}" if detail else message)

        # Providers that do not echo state are tolerated; a wrong one is not.
        if "state" in params and params["state"] != request_state:
            raise AuthenticationFailedError("Invalid state from server. Possible forgery!")

        if self.is_implicit:
            if not params.get("access_token"):
                raise AuthenticationFailedError("Redirect did not contain an access_token")
            properties = {k: v for k, v in params.items() if k != "state"}
        else:
            code = params.get("code")
            if not code:
                raise AuthenticationFailedError("Redirect did not contain an authorization code")
            properties = await self._exchange_code(code)

        properties = with_expiry(properties)
        username = await self._get_username(dict(properties))
        return Account(
            id=username,
            properties={**properties, "username": username},
            service_identifier=self.service_id,
            protocol=self.protocol,
        )

    async def _exchange_code(self, code: str) -> dict[str, str]:
        """Exchange an authorization code for token properties."""
        self._transition(AuthenticationState.AWAITING_TOKEN_EXCHANGE)
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_url or "",
            "client_id": self.client_id,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret

        properties = await send_token_request(
            self._http_client, self.access_token_url, data=data  # type: ignore[arg-type]
        )
        if not properties.get("access_token"):
            raise AuthenticationFailedError("Token response missing 'access_token' field")
        return properties

    async def reauthorize(self, account: Account) -> Account:
        """Renew *account* using its ``refresh_token``.

        Returns:
            A replacement account with the same ``id`` and the new token.

        Raises:
            UnsupportedAccountTypeError: If *account* is not an OAuth2 account.
            NotSupportedError: If no ``access_token_url`` is configured.
            AuthenticationFailedError: If the account has no refresh token
                or the endpoint rejects it.
        """
        if account.protocol is not AuthProtocol.OAUTH2:
            raise UnsupportedAccountTypeError(
                f"Account type '{account.protocol.value}' is not supported by OAuth2"
            )
        if self.is_implicit:
            return await super().reauthorize(account)

        refresh_token = account.properties.get("refresh_token")
        if not refresh_token:
            raise AuthenticationFailedError(
                f"Account '{account.id}' has no refresh_token; authenticate again"
            )

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret

        properties = await send_token_request(
            self._http_client, self.access_token_url, data=data  # type: ignore[arg-type]
        )
        if not properties.get("access_token"):
            raise AuthenticationFailedError("Token refresh response missing 'access_token' field")
        return account.renewed(with_expiry(properties))
