"""Host-managed accounts: credentials owned by the platform account store.

On platforms that keep social accounts centrally (system settings), the
application never sees a token. It asks the platform for access, lists the
accounts the user granted, and lets the platform perform signed calls on
its behalf. This module defines that boundary:

- :class:`HostAccountBackend` -- the platform account-store interface.
- :class:`RenewResult` and :class:`HostResponse` -- its result types.
- :class:`HostManagedAuthenticator` -- the strategy adapting a backend to
  the :class:`~socialkit.auth.base.Authenticator` interface.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from socialkit.auth.base import AuthenticationUI, Authenticator
from socialkit.exceptions import (
    AuthenticationFailedError,
    NotSupportedError,
    UnsupportedAccountTypeError,
)
from socialkit.models import Account, AuthProtocol, HostAccount

logger = logging.getLogger(__name__)


class RenewResult(str, enum.Enum):
    """Outcome of asking the platform to renew an account's credentials."""

    RENEWED = "renewed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class HostResponse:
    """Raw response to a call the platform performed."""

    status_code: int
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""


class HostAccountBackend(ABC):
    """The platform account store.

    Handles are opaque to socialkit; they are only passed back to the
    backend that produced them.
    """

    @abstractmethod
    def find_accounts(self, account_type: str) -> Sequence[Any]:
        """Return the handles of accounts of *account_type* already granted."""
        ...

    @abstractmethod
    async def request_access(self, account_type: str, options: dict[str, Any]) -> bool:
        """Ask the user to grant access to *account_type* accounts.

        Returns:
            ``True`` when access was granted.
        """
        ...

    @abstractmethod
    async def renew_credentials(self, handle: Any) -> RenewResult:
        ...

    @abstractmethod
    async def perform_request(
        self,
        handle: Any,
        method: str,
        url: str,
        parameters: dict[str, str],
        parts: Sequence[Any],
    ) -> HostResponse:
        """Perform a signed call on behalf of the account behind *handle*.

        Args:
            handle: Account handle, or ``None`` for an unauthenticated call.
            method: ``GET``, ``POST`` or ``DELETE``.
            url: Target URL.
            parameters: Query or form parameters.
            parts: :class:`~socialkit.client.request.MultipartPart` values
                in the order they were added.

        Any exception other than a
        :class:`~socialkit.exceptions.SocialError` is reported to the caller
        as a :class:`~socialkit.exceptions.TransportError` carrying its
        message.
        """
        ...

    @abstractmethod
    def username_of(self, handle: Any) -> str:
        ...

    @abstractmethod
    def identifier_of(self, handle: Any) -> str:
        ...

    def close(self) -> None:
        """Release platform resources. The default does nothing."""


class HostManagedAuthenticator(Authenticator):
    """Adapt a :class:`HostAccountBackend` to the authenticator interface.

    Accounts cannot be created from inside the application; the user adds
    them in the platform settings. :meth:`begin_authentication` therefore
    always raises, while :meth:`list_accounts` and :meth:`reauthorize` go
    through the backend.

    Args:
        service_id: Identifier of the owning service.
        account_type: Platform account type identifier.
        backend: The platform account store.
        access_options: Extra options passed to
            :meth:`HostAccountBackend.request_access`.
    """

    protocol = AuthProtocol.HOST_MANAGED

    def __init__(
        self,
        service_id: str,
        account_type: str,
        backend: HostAccountBackend,
        access_options: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(service_id)
        self.account_type = account_type
        self.backend = backend
        self.access_options = access_options or {}

    @property
    def supports_authentication(self) -> bool:
        return False

    @property
    def supports_reauthorization(self) -> bool:
        return True

    async def begin_authentication(self, ui: AuthenticationUI) -> Account:
        raise NotSupportedError(
            f"Accounts for '{self.service_id}' are managed by the platform. "
            "Add one in the system account settings."
        )

    def wrap(self, handle: Any) -> HostAccount:
        """Build a :class:`~socialkit.models.HostAccount` around *handle*."""
        return HostAccount(
            handle=handle,
            id=self.backend.identifier_of(handle),
            properties={"username": self.backend.username_of(handle)},
            service_identifier=self.service_id,
        )

    async def list_accounts(self, allow_login_ui: bool) -> list[HostAccount]:
        """Return the accounts the platform exposes for this service.

        Without *allow_login_ui* the already-granted accounts are returned
        directly. Otherwise access is requested first, which may prompt the
        user; a denial yields an empty list.
        """
        if allow_login_ui:
            granted = await self.backend.request_access(self.account_type, self.access_options)
            if not granted:
                logger.warning("%s: access to %s accounts was denied", self.service_id, self.account_type)
                return []
        return [self.wrap(handle) for handle in self.backend.find_accounts(self.account_type)]

    async def reauthorize(self, account: Account) -> Account:
        if not isinstance(account, HostAccount):
            raise UnsupportedAccountTypeError(
                f"Only platform-managed accounts can be renewed by '{self.service_id}'"
            )
        result = await self.backend.renew_credentials(account.handle)
        if result is not RenewResult.RENEWED:
            raise AuthenticationFailedError(
                f"Platform could not renew account '{account.id}': {result.value}"
            )
        logger.debug("%s: renewed platform account %s", self.service_id, account.id)
        return account
