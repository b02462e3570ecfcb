"""Request/response pipeline for socialkit.

Every call goes through a :class:`Request` variant that knows how to
authenticate one protocol family, and returns a :class:`Response`.

Classes:
    :class:`OAuth2Request` -- bearer token or access-token query parameter.
    :class:`OAuth1Request` -- OAuth 1.0a HMAC-SHA1 signature.
    :class:`HostManagedRequest` -- performed by the platform account store.

Requests are normally created by
:meth:`~socialkit.service.Service.create_request`, which picks the variant
and the shared :class:`httpx.AsyncClient`.

Example::

    request = service.create_request("GET", "https://graph.example/me", account=account)
    request.parameters["fields"] = "name"
    response = await request.execute()
"""

from socialkit.client.host import HostManagedRequest
from socialkit.client.oauth import OAuth1Request, OAuth2Request
from socialkit.client.request import MultipartPart, Request
from socialkit.client.response import Response

__all__ = [
    "HostManagedRequest",
    "MultipartPart",
    "OAuth1Request",
    "OAuth2Request",
    "Request",
    "Response",
]
