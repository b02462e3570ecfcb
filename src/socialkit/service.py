"""Service front door -- one configured provider plus its authenticator.

A :class:`Service` is composed from a :class:`~socialkit.models.ServiceConfig`
and an :class:`~socialkit.auth.base.Authenticator` value rather than
subclassed per protocol. It declares capabilities and share limits,
retrieves and persists accounts, and is the factory for
:class:`~socialkit.client.request.Request` objects bound to an account.

Services own their transport resources: the shared
:class:`httpx.AsyncClient` and, for host-managed services, the platform
account-store backend. Both are released by :meth:`Service.aclose`, so a
service is normally used as an async context manager::

    async with create_service(config, store=FileCredentialStore()) as service:
        accounts = await service.list_accounts()
        response = await service.create_request("GET", url, account=accounts[0]).execute()

See Also:
    :func:`~socialkit.registry.create_service` -- builds a service from
    configuration.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from socialkit.auth.base import AuthenticationUI, Authenticator
from socialkit.auth.host import HostAccountBackend, HostManagedAuthenticator
from socialkit.auth.store import CredentialStore
from socialkit.client.host import HostManagedRequest
from socialkit.client.oauth import OAuth1Request, OAuth2Request
from socialkit.client.request import Request
from socialkit.client.response import Response
from socialkit.exceptions import (
    ConfigurationError,
    InvalidItemError,
    NotSupportedError,
)
from socialkit.models import Account, AuthProtocol, HostAccount, Item, Limits, ServiceConfig

logger = logging.getLogger(__name__)


def build_request(
    config: ServiceConfig,
    method: str,
    url: str,
    parameters: Optional[dict[str, str]] = None,
    account: Optional[Account] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    host_backend: Optional[HostAccountBackend] = None,
) -> Request:
    """Create the request variant matching ``config.protocol``.

    Raises:
        ConfigurationError: For a host-managed service without a backend.
        UnsupportedAccountTypeError: If *account* does not fit the variant.
        NotSupportedError: For a method a host-managed service cannot send.
    """
    if config.protocol is AuthProtocol.OAUTH2:
        return OAuth2Request(
            method,
            url,
            parameters,
            account,
            http_client,
            token_placement=config.token_placement,
            access_token_parameter=config.access_token_parameter,
        )
    if config.protocol is AuthProtocol.OAUTH1:
        return OAuth1Request(
            method,
            url,
            config.consumer_key or "",
            config.consumer_secret or "",
            parameters,
            account,
            http_client,
        )
    if host_backend is None:
        raise ConfigurationError(
            f"Service '{config.service_id}' is host-managed but has no platform backend"
        )
    return HostManagedRequest(method, url, host_backend, parameters, account)


class Service:
    """A provider the user can authenticate against and call.

    Args:
        config: Static service configuration.
        authenticator: Strategy for the service's protocol.
        store: Credential store. Without one, accounts are never persisted
            and :attr:`supports_save` is ``False``.
        http_client: Shared transport, closed by :meth:`aclose`.
        host_backend: Platform account store for host-managed services.
            Taken from the authenticator when omitted.
        ui: Default interactive UI for :meth:`list_accounts` and
            :meth:`begin_authentication`.
    """

    def __init__(
        self,
        config: ServiceConfig,
        authenticator: Authenticator,
        *,
        store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        host_backend: Optional[HostAccountBackend] = None,
        ui: Optional[AuthenticationUI] = None,
    ) -> None:
        self.config = config
        self.authenticator = authenticator
        self.store = store
        self.http_client = http_client
        if host_backend is None and isinstance(authenticator, HostManagedAuthenticator):
            host_backend = authenticator.backend
        self.host_backend = host_backend
        self.ui = ui
        self._closed = False

    def __repr__(self) -> str:
        return f"Service({self.service_id!r}, protocol={self.protocol.value!r})"

    async def __aenter__(self) -> Service:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP client and platform backend. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.host_backend is not None:
            self.host_backend.close()

    # ------------------------------------------------------------------ #
    # Description
    # ------------------------------------------------------------------ #

    @property
    def service_id(self) -> str:
        return self.config.service_id

    @property
    def title(self) -> str:
        return self.config.title or self.config.service_id

    @property
    def protocol(self) -> AuthProtocol:
        return self.config.protocol

    @property
    def limits(self) -> Limits:
        return self.config.limits

    @property
    def max_text_length(self) -> Optional[int]:
        return self.config.limits.max_text_length

    @property
    def max_links(self) -> Optional[int]:
        return self.config.limits.max_links

    @property
    def max_images(self) -> Optional[int]:
        return self.config.limits.max_images

    @property
    def max_files(self) -> Optional[int]:
        return self.config.limits.max_files

    # ------------------------------------------------------------------ #
    # Capabilities
    # ------------------------------------------------------------------ #

    @property
    def is_host_managed(self) -> bool:
        return self.protocol is AuthProtocol.HOST_MANAGED

    @property
    def supports_authentication(self) -> bool:
        return self.authenticator.supports_authentication

    @property
    def supports_reauthorization(self) -> bool:
        return self.authenticator.supports_reauthorization

    @property
    def supports_save(self) -> bool:
        return self.store is not None and not self.is_host_managed

    @property
    def supports_delete(self) -> bool:
        return self.store is not None and not self.is_host_managed

    # ------------------------------------------------------------------ #
    # Accounts
    # ------------------------------------------------------------------ #

    async def list_accounts(self) -> list[Account]:
        """Return usable accounts, authenticating interactively if none are stored.

        Stored accounts that have expired are skipped. When nothing usable
        remains, ``allow_login_ui`` is set, and a UI is available, one
        interactive attempt is made and its account is saved before being
        returned.

        Raises:
            AuthenticationCancelledError: If the user aborted the login.
            AuthenticationFailedError: If the login failed.
            StorageError: If the credential store fails.
        """
        if isinstance(self.authenticator, HostManagedAuthenticator):
            return list(await self.authenticator.list_accounts(self.config.allow_login_ui))

        accounts: list[Account] = []
        if self.store is not None:
            for account in await self.store.load_all(self.service_id):
                if account.is_expired():
                    logger.warning("%s: skipping expired account %s", self.service_id, account.id)
                    continue
                accounts.append(account)
        if accounts:
            return accounts

        if not (self.config.allow_login_ui and self.ui is not None and self.supports_authentication):
            return []

        account = await self.begin_authentication()
        if self.supports_save:
            await self.save_account(account)
        return [account]

    async def begin_authentication(self, ui: Optional[AuthenticationUI] = None) -> Account:
        """Run one interactive authentication attempt. The account is not saved.

        Raises:
            NotSupportedError: For host-managed services.
            ConfigurationError: If no UI is given and none was configured.
        """
        ui = ui or self.ui
        if ui is None and self.supports_authentication:
            raise ConfigurationError(f"No login UI available for '{self.service_id}'")
        return await self.authenticator.begin_authentication(ui)  # type: ignore[arg-type]

    async def reauthorize(self, account: Account) -> Account:
        """Renew *account*; the replacement is saved when saving is supported."""
        renewed = await self.authenticator.reauthorize(account)
        if self.supports_save and not isinstance(renewed, HostAccount):
            await self.save_account(renewed)
        return renewed

    async def save_account(self, account: Account) -> None:
        if not self.supports_save or self.store is None:
            raise NotSupportedError(f"Service '{self.service_id}' does not support saving accounts")
        await self.store.save(self.service_id, account)
        logger.debug("%s: saved account %s", self.service_id, account.id)

    async def delete_account(self, account: Account) -> None:
        if not self.supports_delete or self.store is None:
            raise NotSupportedError(f"Service '{self.service_id}' does not support deleting accounts")
        await self.store.delete(self.service_id, account)
        logger.debug("%s: deleted account %s", self.service_id, account.id)

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def create_request(
        self,
        method: str,
        url: str,
        parameters: Optional[dict[str, str]] = None,
        account: Optional[Account] = None,
    ) -> Request:
        """Create a request bound to this service's protocol pipeline.

        Raises:
            UnsupportedAccountTypeError: If *account* does not fit the
                pipeline.
            NotSupportedError: For a method a host-managed service cannot
                send.
        """
        return build_request(
            self.config,
            method,
            url,
            parameters,
            account,
            self.http_client,
            self.host_backend,
        )

    async def share_item(self, item: Item, account: Account) -> Response:
        """Post *item* to ``share_url`` as *account*.

        The text, with links appended, goes in ``share_text_parameter``;
        every image and file becomes a multipart part named
        ``share_media_parameter``.

        Raises:
            NotSupportedError: For host-managed services or when no
                ``share_url`` is configured.
            InvalidItemError: If *item* exceeds the advertised limits.
        """
        if self.is_host_managed:
            raise NotSupportedError("Sharing items without a GUI is not supported")
        if not self.config.share_url:
            raise NotSupportedError(f"Service '{self.service_id}' has no share_url configured")

        problems = self.limits.violations(item)
        if problems:
            raise InvalidItemError("; ".join(problems))

        text = " ".join(part for part in (item.text, *item.links) if part)
        request = self.create_request(
            "POST",
            self.config.share_url,
            {self.config.share_text_parameter: text},
            account,
        )
        for attachment in [*item.images, *item.files]:
            request.add_multipart_data(
                self.config.share_media_parameter,
                attachment.data,
                attachment.mime_type,
                attachment.filename,
            )
        return await request.execute()
