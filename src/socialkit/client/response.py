"""Response value returned by every request pipeline, plus its CLI rendering.

:class:`Response` is a transport-independent snapshot of an HTTP answer. It
is built from an :class:`httpx.Response` for OAuth calls and from a
:class:`~socialkit.auth.host.HostResponse` for calls the platform performs.

:func:`format_api_response` routes a response through the output system:
the status line goes to stderr, the body to stdout.

See Also:
    :mod:`socialkit.output` -- the output manager that renders data.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from socialkit.auth.host import HostResponse
from socialkit.output import get_output


@dataclass(frozen=True)
class Response:
    """An HTTP answer.

    Attributes:
        status_code: HTTP status.
        headers: Response headers; lookups are case-insensitive when built
            from httpx.
        content: Raw body bytes.
        url: Final URL of the call.
        encoding: Charset used by :attr:`text`.
    """

    status_code: int
    headers: Any = field(default_factory=dict)
    content: bytes = b""
    url: str = ""
    encoding: str = "utf-8"

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> Response:
        return cls(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
            url=str(response.url),
            encoding=response.encoding or "utf-8",
        )

    @classmethod
    def from_host(cls, response: HostResponse) -> Response:
        return cls(
            status_code=response.status_code,
            headers=httpx.Headers(response.headers),
            content=response.content,
            url=response.url,
        )

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding, errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)


def extract_response_data(response: Response) -> Any:
    """Return the decoded JSON body, the raw text, or ``None`` for an empty body."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def format_api_response(response: Response) -> None:
    """Print *response* using the global output system.

    Writes ``HTTP <status>`` to stderr, then renders the body to stdout.
    """
    output = get_output()
    output.info(f"HTTP {response.status_code}")

    content_type = response.headers.get("content-type", "application/json")
    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, content_type)
