"""Abstract base classes for authenticators and the interactive UI boundary.

This module defines the foundational types of the auth subsystem:

- :class:`AuthenticationState` -- the per-attempt state machine shared by
  every interactive authenticator.
- :class:`AuthenticationUI` -- the collaborator that shows the provider's
  login page and hands back the final redirected URL.
- :class:`Authenticator` -- the strategy interface every protocol family
  implements.

To add a protocol, subclass :class:`Authenticator`, set :attr:`protocol`,
and implement :meth:`~Authenticator.begin_authentication`. Override
:meth:`~Authenticator.reauthorize` and
:attr:`~Authenticator.supports_reauthorization` when the protocol can renew
a credential without user interaction.

See Also:
    :mod:`socialkit.auth.oauth2`, :mod:`socialkit.auth.oauth1`, and
    :mod:`socialkit.auth.host` for the concrete strategies.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import parse_qsl, urlsplit

import httpx

from socialkit.exceptions import (
    AuthenticationCancelledError,
    AuthenticationFailedError,
    NotSupportedError,
    TransportError,
)
from socialkit.models import Account, AuthProtocol

logger = logging.getLogger(__name__)

RedirectMatcher = Callable[[str], bool]
UsernameResolver = Callable[[dict[str, str]], Awaitable[str]]
"""Async callback resolving a display identity from fresh account properties."""

TOKEN_REQUEST_TIMEOUT = 30.0


class AuthenticationState(str, enum.Enum):
    """Where an authentication attempt currently stands.

    ``Idle -> AwaitingUserAction -> [AwaitingTokenExchange] -> Complete``,
    or ``Cancelled`` / ``Failed`` from either waiting state. The token
    exchange step only exists for the authorization-code grant and OAuth1.
    """

    IDLE = "idle"
    AWAITING_USER_ACTION = "awaiting_user_action"
    AWAITING_TOKEN_EXCHANGE = "awaiting_token_exchange"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            AuthenticationState.COMPLETE,
            AuthenticationState.CANCELLED,
            AuthenticationState.FAILED,
        )


class AuthenticationUI(ABC):
    """Presents a provider's authorize page and captures the redirect.

    Implementations open a browsing surface on *authorize_url*, watch the
    navigation, and return the first URL for which *is_redirect* is true.
    """

    @abstractmethod
    async def present(self, authorize_url: str, is_redirect: RedirectMatcher) -> Optional[str]:
        """Show the authorize page and wait for the user.

        Args:
            authorize_url: Fully-formed URL of the provider's login page.
            is_redirect: Predicate identifying the redirect URL.

        Returns:
            The final redirected URL, including its query and fragment, or
            ``None`` if the user cancelled.
        """
        ...


def urls_match(url: str, redirect_url: str) -> bool:
    """Compare scheme, host, port and path exactly; query and fragment are ignored."""
    actual = urlsplit(url)
    expected = urlsplit(redirect_url)
    return (
        actual.scheme.lower() == expected.scheme.lower()
        and actual.netloc.lower() == expected.netloc.lower()
        and (actual.path or "/") == (expected.path or "/")
    )


def parse_redirect(url: str) -> dict[str, str]:
    """Collect the parameters of a redirect URL.

    Query and fragment parameters are merged; the fragment wins on conflict
    because the implicit grant delivers its token there.
    """
    parts = urlsplit(url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    params.update(parse_qsl(parts.fragment, keep_blank_values=True))
    return params


def parse_token_response(response: httpx.Response) -> dict[str, str]:
    """Decode a token endpoint response into string properties.

    Providers answer either with JSON or with a form-encoded body (OAuth1
    always, some OAuth2 providers too). Scalar JSON values are stringified;
    nested values are re-encoded as JSON text.

    Raises:
        AuthenticationFailedError: If a JSON body cannot be decoded or is
            not an object.
    """
    content_type = response.headers.get("content-type", "")
    text = response.text.strip()
    if "json" in content_type or text.startswith("{"):
        try:
            data: Any = response.json()
        except ValueError as exc:
            raise AuthenticationFailedError(f"Malformed token response: {exc}") from exc
        if not isinstance(data, dict):
            raise AuthenticationFailedError("Token response is not a JSON object")
        properties: dict[str, str] = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, (dict, list)):
                properties[key] = json.dumps(value)
            elif isinstance(value, bool):
                properties[key] = "true" if value else "false"
            else:
                properties[key] = str(value)
        return properties
    return dict(parse_qsl(text, keep_blank_values=True))


async def send_token_request(
    http_client: Optional[httpx.AsyncClient],
    url: str,
    data: Optional[dict[str, str]] = None,
    headers: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """POST to a token endpoint and return the decoded properties.

    Args:
        http_client: Shared client; a short-lived one is created when ``None``.
        url: Token endpoint URL.
        data: Form fields to send.
        headers: Extra headers (e.g. an OAuth1 ``Authorization`` header).

    Raises:
        TransportError: On network failures.
        AuthenticationFailedError: If the endpoint answers with a status
            above 399 or an undecodable body.
    """
    request_headers = {"Accept": "application/json", **(headers or {})}
    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=TOKEN_REQUEST_TIMEOUT) as client:
                response = await client.post(url, data=data, headers=request_headers)
        else:
            response = await http_client.post(url, data=data, headers=request_headers)
    except httpx.HTTPError as exc:
        raise TransportError(f"Token request to {url} failed: {exc}") from exc

    if response.status_code > 399:
        raise AuthenticationFailedError(
            f"Token request failed with status {response.status_code}: {response.text}"
        )
    return parse_token_response(response)


class Authenticator(ABC):
    """Strategy object driving one protocol's handshake to produce an :class:`Account`.

    Every concrete strategy sets a class-level :attr:`protocol` and
    implements :meth:`begin_authentication`. Authenticators are reusable:
    each call to :meth:`begin_authentication` starts a fresh attempt from
    :attr:`AuthenticationState.IDLE`. Callers must not run two attempts on
    the same authenticator concurrently.

    Args:
        service_id: Identifier of the owning service; stamped on every
            account this authenticator produces.
        redirect_url: URL the provider redirects to when the user is done,
            or ``None`` for protocols without a browser flow.
    """

    protocol: AuthProtocol

    def __init__(self, service_id: str, redirect_url: Optional[str] = None) -> None:
        self.service_id = service_id
        self.redirect_url = redirect_url
        self._state = AuthenticationState.IDLE
        self.failure_reason: Optional[str] = None

    @property
    def state(self) -> AuthenticationState:
        """State of the current (or most recent) attempt."""
        return self._state

    def _transition(self, state: AuthenticationState) -> None:
        logger.debug("%s authentication: %s -> %s", self.service_id, self._state.value, state.value)
        self._state = state

    async def _attempt(self, flow: Awaitable[Account]) -> Account:
        """Run *flow* as one attempt, settling exactly one terminal state."""
        self._transition(AuthenticationState.IDLE)
        self.failure_reason = None
        try:
            account = await flow
        except (AuthenticationCancelledError, asyncio.CancelledError):
            self._transition(AuthenticationState.CANCELLED)
            raise
        except Exception as exc:
            self.failure_reason = str(exc)
            self._transition(AuthenticationState.FAILED)
            raise
        self._transition(AuthenticationState.COMPLETE)
        return account

    async def _present(self, ui: AuthenticationUI, authorize_url: str) -> str:
        """Hand *authorize_url* to the UI and return the redirect it captured.

        Raises:
            AuthenticationCancelledError: If the UI reports a cancellation.
            AuthenticationFailedError: If the UI returns a URL that is not
                the redirect URL.
        """
        self._transition(AuthenticationState.AWAITING_USER_ACTION)
        redirected = await ui.present(authorize_url, self.is_redirect)
        if redirected is None:
            raise AuthenticationCancelledError("Authentication was cancelled by the user")
        if not self.is_redirect(redirected):
            raise AuthenticationFailedError(
                f"Navigation ended at {redirected!r}, not the redirect URL"
            )
        return redirected

    @property
    def supports_authentication(self) -> bool:
        """Whether :meth:`begin_authentication` can be used at all."""
        return True

    @property
    def supports_reauthorization(self) -> bool:
        """Whether :meth:`reauthorize` can renew a credential."""
        return False

    def is_redirect(self, url: str) -> bool:
        """Return ``True`` when *url* is this authenticator's redirect URL."""
        if not self.redirect_url:
            return False
        return urls_match(url, self.redirect_url)

    @abstractmethod
    async def begin_authentication(self, ui: AuthenticationUI) -> Account:
        """Run one interactive authentication attempt.

        Args:
            ui: Collaborator that shows the provider's login page.

        Returns:
            The newly authenticated :class:`~socialkit.models.Account`.

        Raises:
            AuthenticationCancelledError: If the user aborted.
            AuthenticationFailedError: If the provider rejected the
                handshake or the redirect was malformed.
            NotSupportedError: If the protocol has no interactive flow.
        """
        ...

    async def reauthorize(self, account: Account) -> Account:
        """Renew *account*'s credential and return its replacement.

        The default implementation raises :class:`NotSupportedError`.
        """
        raise NotSupportedError(
            f"Service '{self.service_id}' does not support reauthorizing accounts"
        )
