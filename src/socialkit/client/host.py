"""Request variant for host-managed accounts."""

from __future__ import annotations

import logging
from typing import Optional

from socialkit.auth.host import HostAccountBackend
from socialkit.client.request import Request
from socialkit.client.response import Response
from socialkit.exceptions import (
    NotSupportedError,
    SocialError,
    TransportError,
    UnsupportedAccountTypeError,
)
from socialkit.models import Account, AuthProtocol, HostAccount

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "DELETE")


class HostManagedRequest(Request):
    """Let the platform account store perform the call.

    Args:
        method: ``GET``, ``POST`` or ``DELETE``, in any case.
        url: Target URL.
        backend: The platform account store that signs and sends the call.
        parameters: Query or form parameters.
        account: A :class:`~socialkit.models.HostAccount`, or ``None``.

    Raises:
        NotSupportedError: For any other method.
    """

    protocol = AuthProtocol.HOST_MANAGED

    def __init__(
        self,
        method: str,
        url: str,
        backend: HostAccountBackend,
        parameters: Optional[dict[str, str]] = None,
        account: Optional[Account] = None,
    ) -> None:
        if method.upper() not in SUPPORTED_METHODS:
            raise NotSupportedError(
                f"{method.upper()} is not supported for platform-managed accounts"
            )
        self.backend = backend
        super().__init__(method, url, parameters, account)

    def check_account(self, account: Account) -> None:
        if not isinstance(account, HostAccount):
            raise UnsupportedAccountTypeError(
                "Only platform-managed accounts can be used with this service"
            )

    async def execute(self) -> Response:
        account = self.account
        handle = account.handle if isinstance(account, HostAccount) else None
        logger.debug("%s %s via platform account store", self.method, self.url)
        try:
            host_response = await self.backend.perform_request(
                handle,
                self.method,
                self.url,
                dict(self.parameters),
                list(self.multipart_parts),
            )
        except SocialError:
            raise
        except Exception as exc:
            raise TransportError(f"{self.method} {self.url} failed: {exc}") from exc
        return self._check(Response.from_host(host_response))
