"""OAuth 1.0a authenticator and request signing.

This module provides :class:`OAuth1Authenticator`, which implements the
``oauth1`` protocol's three-legged flow:

1. Obtain a temporary credential from ``request_token_url``, announcing the
   redirect URL as ``oauth_callback``.
2. Send the user to ``authorize_url`` and wait for the redirect carrying
   ``oauth_verifier``.
3. Exchange the temporary credential and verifier at ``access_token_url``
   for the ``oauth_token`` / ``oauth_token_secret`` pair.

Also exports :func:`authorization_header`, which computes the HMAC-SHA1
``Authorization`` header through :mod:`oauthlib`. It is shared with
:class:`~socialkit.client.oauth.OAuth1Request`.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from oauthlib.oauth1 import Client as OAuth1Client

from socialkit.auth.base import (
    AuthenticationState,
    AuthenticationUI,
    Authenticator,
    UsernameResolver,
    parse_redirect,
    send_token_request,
)
from socialkit.exceptions import AuthenticationFailedError, ConfigurationError
from socialkit.models import Account, AuthProtocol, ServiceConfig

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_REQUIRED_FIELDS = (
    "consumer_key",
    "consumer_secret",
    "request_token_url",
    "authorize_url",
    "access_token_url",
    "redirect_url",
)


def authorization_header(
    consumer_key: str,
    consumer_secret: str,
    method: str,
    url: str,
    token: Optional[str] = None,
    token_secret: Optional[str] = None,
    verifier: Optional[str] = None,
    callback_uri: Optional[str] = None,
    form: Optional[dict[str, str]] = None,
) -> str:
    """Sign a request and return its OAuth ``Authorization`` header value.

    The signature base string covers the method, the URL including its
    query string, the ``oauth_*`` protocol parameters and, when *form* is
    given, the form-encoded body parameters.

    Args:
        consumer_key: Client identifier issued by the provider.
        consumer_secret: Client shared secret.
        method: HTTP method.
        url: Absolute URL, with any query parameters already applied.
        token: Temporary or access token, if any.
        token_secret: Secret matching *token*.
        verifier: ``oauth_verifier`` from the authorization redirect.
        callback_uri: ``oauth_callback`` for the request-token step.
        form: Form-encoded body parameters to include in the signature.
            Must be ``None`` for GET and HEAD.
    """
    client = OAuth1Client(
        consumer_key,
        client_secret=consumer_secret,
        resource_owner_key=token,
        resource_owner_secret=token_secret,
        verifier=verifier,
        callback_uri=callback_uri,
    )
    body = None
    headers: dict[str, str] = {}
    if form:
        body = urlencode(form)
        headers["Content-Type"] = FORM_CONTENT_TYPE
    _, signed_headers, _ = client.sign(url, http_method=method.upper(), body=body, headers=headers)
    return signed_headers["Authorization"]


class OAuth1Authenticator(Authenticator):
    """Authenticate via the OAuth 1.0a three-legged flow.

    Args:
        config: Service configuration. ``consumer_key``,
            ``consumer_secret``, ``request_token_url``, ``authorize_url``,
            ``access_token_url`` and ``redirect_url`` are required.
        get_username: Async callback resolving the display identity.
        http_client: Client used for the token endpoints.

    Raises:
        ConfigurationError: If a required field is empty.
    """

    protocol = AuthProtocol.OAUTH1

    def __init__(
        self,
        config: ServiceConfig,
        get_username: UsernameResolver,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        missing = [name for name in _REQUIRED_FIELDS if not getattr(config, name)]
        if missing:
            raise ConfigurationError(
                f"OAuth1 service '{config.service_id}' is missing: {', '.join(missing)}"
            )
        super().__init__(config.service_id, config.redirect_url)
        self.consumer_key: str = config.consumer_key  # type: ignore[assignment]
        self.consumer_secret: str = config.consumer_secret  # type: ignore[assignment]
        self.request_token_url: str = config.request_token_url  # type: ignore[assignment]
        self.authorize_url: str = config.authorize_url  # type: ignore[assignment]
        self.access_token_url: str = config.access_token_url  # type: ignore[assignment]
        self._get_username = get_username
        self._http_client = http_client

    def build_authorize_url(self, request_token: str) -> str:
        separator = "&" if "?" in self.authorize_url else "?"
        return f"{self.authorize_url}{separator}{urlencode({'oauth_token': request_token})}"

    async def begin_authentication(self, ui: AuthenticationUI) -> Account:
        return await self._attempt(self._flow(ui))

    async def _flow(self, ui: AuthenticationUI) -> Account:
        request_token, request_secret = await self._fetch_request_token()

        redirected = await self._present(ui, self.build_authorize_url(request_token))
        params = parse_redirect(redirected)
        if "denied" in params:
            raise AuthenticationFailedError("The user denied access to the application")
        verifier = params.get("oauth_verifier")
        if not verifier:
            raise AuthenticationFailedError("Redirect did not contain an oauth_verifier")
        if params.get("oauth_token", request_token) != request_token:
            raise AuthenticationFailedError("Redirect oauth_token does not match the request token")

        self._transition(AuthenticationState.AWAITING_TOKEN_EXCHANGE)
        header = authorization_header(
            self.consumer_key,
            self.consumer_secret,
            "POST",
            self.access_token_url,
            token=request_token,
            token_secret=request_secret,
            verifier=verifier,
        )
        properties = await send_token_request(
            self._http_client, self.access_token_url, headers={"Authorization": header}
        )
        if not properties.get("oauth_token") or not properties.get("oauth_token_secret"):
            raise AuthenticationFailedError("Access token response missing oauth_token or oauth_token_secret")

        username = await self._get_username(dict(properties))
        return Account(
            id=username,
            properties={**properties, "username": username},
            service_identifier=self.service_id,
            protocol=self.protocol,
        )

    async def _fetch_request_token(self) -> tuple[str, str]:
        """Obtain the temporary credential that starts the flow."""
        header = authorization_header(
            self.consumer_key,
            self.consumer_secret,
            "POST",
            self.request_token_url,
            callback_uri=self.redirect_url,
        )
        properties = await send_token_request(
            self._http_client, self.request_token_url, headers={"Authorization": header}
        )
        token = properties.get("oauth_token")
        secret = properties.get("oauth_token_secret")
        if not token or not secret:
            raise AuthenticationFailedError("Request token response missing oauth_token or oauth_token_secret")
        if properties.get("oauth_callback_confirmed", "true") != "true":
            raise AuthenticationFailedError("Provider did not confirm the oauth_callback")
        logger.debug("%s: obtained OAuth1 request token", self.service_id)
        return token, secret
