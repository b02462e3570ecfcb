"""OAuth request variants."""

from __future__ import annotations

from typing import Literal, Optional

import httpx

from socialkit.auth.oauth1 import authorization_header
from socialkit.client.request import Request
from socialkit.exceptions import UnsupportedAccountTypeError
from socialkit.models import Account, AuthProtocol


class OAuth2Request(Request):
    """Authenticate with an OAuth2 access token.

    Args:
        token_placement: ``"header"`` sends ``Authorization: Bearer <token>``;
            ``"query"`` appends the token as a query parameter.
        access_token_parameter: Query parameter name for query placement.
    """

    protocol = AuthProtocol.OAUTH2

    def __init__(
        self,
        method: str,
        url: str,
        parameters: Optional[dict[str, str]] = None,
        account: Optional[Account] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        token_placement: Literal["header", "query"] = "header",
        access_token_parameter: str = "access_token",
    ) -> None:
        self.token_placement = token_placement
        self.access_token_parameter = access_token_parameter
        super().__init__(method, url, parameters, account, http_client)

    def check_account(self, account: Account) -> None:
        super().check_account(account)
        if not account.properties.get("access_token"):
            raise UnsupportedAccountTypeError(f"Account '{account.id}' has no access_token")

    def authorize(
        self,
        request: httpx.Request,
        account: Account,
        form: Optional[dict[str, str]],
    ) -> None:
        token = account.properties["access_token"]
        if self.token_placement == "query":
            request.url = request.url.copy_add_param(self.access_token_parameter, token)
        else:
            request.headers["Authorization"] = f"Bearer {token}"


class OAuth1Request(Request):
    """Sign with OAuth 1.0a HMAC-SHA1.

    The signature covers the method, the URL with its query string and,
    for url-encoded bodies, the form parameters. Multipart bodies are not
    part of the signature.
    """

    protocol = AuthProtocol.OAUTH1

    def __init__(
        self,
        method: str,
        url: str,
        consumer_key: str,
        consumer_secret: str,
        parameters: Optional[dict[str, str]] = None,
        account: Optional[Account] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        super().__init__(method, url, parameters, account, http_client)

    def check_account(self, account: Account) -> None:
        super().check_account(account)
        missing = [
            key for key in ("oauth_token", "oauth_token_secret") if not account.properties.get(key)
        ]
        if missing:
            raise UnsupportedAccountTypeError(
                f"Account '{account.id}' is missing {', '.join(missing)}"
            )

    def authorize(
        self,
        request: httpx.Request,
        account: Account,
        form: Optional[dict[str, str]],
    ) -> None:
        request.headers["Authorization"] = authorization_header(
            self.consumer_key,
            self.consumer_secret,
            self.method,
            str(request.url),
            token=account.properties["oauth_token"],
            token_secret=account.properties["oauth_token_secret"],
            form=form,
        )
