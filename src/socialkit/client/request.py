"""Request pipeline base class.

A :class:`Request` describes one API call -- method, URL, parameters,
optional multipart parts, and the account to authenticate as -- and sends it
with :meth:`Request.execute`. Subclasses bind a protocol family:

* :class:`~socialkit.client.oauth.OAuth2Request` -- bearer token or query
  parameter.
* :class:`~socialkit.client.oauth.OAuth1Request` -- HMAC-SHA1 signature.
* :class:`~socialkit.client.host.HostManagedRequest` -- delegated to the
  platform account store.

Parameters and the account are read when :meth:`~Request.execute` runs,
not when the request is built, so they may be changed in between.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import IO, Any, Optional, Union

import httpx

from socialkit.client.response import Response
from socialkit.exceptions import ApiError, TransportError, UnsupportedAccountTypeError
from socialkit.models import Account, AuthProtocol

logger = logging.getLogger(__name__)

QUERY_METHODS = ("GET", "DELETE", "HEAD")
"""Methods whose parameters travel in the query string."""

DEFAULT_TIMEOUT = 30.0


@dataclass
class MultipartPart:
    """One part of a ``multipart/form-data`` body.

    Attributes:
        name: Form field name.
        data: Raw bytes or a binary stream.
        mime_type: Content type of the part.
        filename: Filename sent in ``Content-Disposition``; omitted when empty.
    """

    name: str
    data: Union[bytes, IO[bytes]]
    mime_type: str
    filename: str = ""


class Request:
    """One API call, sent with :meth:`execute`.

    Args:
        method: HTTP method; stored upper-cased.
        url: Absolute URL.
        parameters: Query (GET/DELETE/HEAD) or form parameters. Copied into
            the live :attr:`parameters` dict.
        account: Account to authenticate as, or ``None`` for an
            unauthenticated call.
        http_client: Shared client. A short-lived one is created per call
            when ``None``.

    Raises:
        UnsupportedAccountTypeError: If *account* is not accepted by this
            request variant.
    """

    protocol: Optional[AuthProtocol] = None
    """Protocol of the accounts this variant accepts; ``None`` accepts none."""

    def __init__(
        self,
        method: str,
        url: str,
        parameters: Optional[dict[str, str]] = None,
        account: Optional[Account] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.method = method.upper()
        self.url = url
        self.parameters: dict[str, str] = dict(parameters or {})
        self.multipart_parts: list[MultipartPart] = []
        self._http_client = http_client
        self._account: Optional[Account] = None
        self.account = account

    @property
    def account(self) -> Optional[Account]:
        return self._account

    @account.setter
    def account(self, value: Optional[Account]) -> None:
        # Validate before assigning so a rejected account leaves the old one.
        if value is not None:
            self.check_account(value)
        self._account = value

    def check_account(self, account: Account) -> None:
        """Raise :class:`UnsupportedAccountTypeError` if *account* cannot sign this request."""
        if account.protocol is not self.protocol:
            raise UnsupportedAccountTypeError(
                f"{type(self).__name__} does not accept {account.protocol.value} accounts"
            )

    def add_multipart_data(
        self,
        name: str,
        data: Union[bytes, IO[bytes]],
        mime_type: str,
        filename: str = "",
    ) -> None:
        """Append a part; parts are sent in the order they were added."""
        self.multipart_parts.append(MultipartPart(name, data, mime_type, filename))

    @property
    def is_multipart(self) -> bool:
        return bool(self.multipart_parts) and self.method not in QUERY_METHODS

    @property
    def has_form_body(self) -> bool:
        """``True`` when parameters are sent as a url-encoded body."""
        return (
            self.method not in QUERY_METHODS
            and not self.multipart_parts
            and bool(self.parameters)
        )

    async def execute(self) -> Response:
        """Send the request.

        Returns:
            The :class:`~socialkit.client.response.Response`.

        Raises:
            ApiError: If the service answers with a status above 399.
            TransportError: On network failures.
        """
        logger.debug("%s %s (account=%s)", self.method, self.url, self._account.id if self._account else None)
        try:
            if self._http_client is None:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await self._send(client)
            else:
                response = await self._send(self._http_client)
        except httpx.HTTPError as exc:
            raise TransportError(f"{self.method} {self.url} failed: {exc}") from exc
        return self._check(response)

    async def _send(self, client: httpx.AsyncClient) -> Response:
        parameters = dict(self.parameters)
        kwargs: dict[str, Any] = {}
        form: Optional[dict[str, str]] = None
        if self.method in QUERY_METHODS:
            kwargs["params"] = parameters
        elif self.multipart_parts:
            kwargs["data"] = parameters
            kwargs["files"] = [
                (part.name, (part.filename or None, part.data, part.mime_type))
                for part in self.multipart_parts
            ]
        elif parameters:
            form = parameters
            kwargs["data"] = parameters

        request = client.build_request(self.method, self.url, **kwargs)
        if self._account is not None:
            self.authorize(request, self._account, form)
        response = await client.send(request)
        return Response.from_httpx(response)

    def authorize(
        self,
        request: httpx.Request,
        account: Account,
        form: Optional[dict[str, str]],
    ) -> None:
        """Attach *account*'s credentials to the outgoing *request*.

        Args:
            request: The built request; mutate its headers or URL in place.
            account: The validated account.
            form: The url-encoded body parameters, or ``None`` when the body
                is empty or multipart.
        """

    def _check(self, response: Response) -> Response:
        if response.status_code > 399:
            logger.debug("%s %s -> %d", self.method, self.url, response.status_code)
            raise ApiError(response.status_code, response.text)
        return response
