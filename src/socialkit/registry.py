"""Service registry and the factory that builds services from configuration.

:func:`create_service` picks the authenticator for ``config.protocol`` and
wires it to a shared :class:`httpx.AsyncClient`. Authenticator constructors
validate their required fields, so an incomplete configuration fails here,
before any network I/O.

:class:`ServiceRegistry` keeps the services an application has created,
keyed by ``service_id``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from socialkit.auth.base import Authenticator, AuthenticationUI, UsernameResolver
from socialkit.auth.host import HostAccountBackend, HostManagedAuthenticator
from socialkit.auth.oauth1 import OAuth1Authenticator
from socialkit.auth.oauth2 import OAuth2Authenticator
from socialkit.auth.store import CredentialStore
from socialkit.exceptions import AuthenticationFailedError, ConfigurationError
from socialkit.models import Account, AuthProtocol, ServiceConfig
from socialkit.service import Service, build_request

logger = logging.getLogger(__name__)

WELL_KNOWN_USERNAME_KEYS = ("username", "screen_name", "user_name", "name", "user_id")
"""Token response properties tried, in order, when no ``username_url`` is set."""


def username_resolver(
    config: ServiceConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> UsernameResolver:
    """Build the default ``get_username`` callback for *config*.

    With a ``username_url``, the callback performs an authenticated GET
    using the fresh properties and reads ``username_field`` from the JSON
    answer. Otherwise the first well-known property present is used, and
    the service id as a last resort.
    """

    async def get_username(properties: dict[str, str]) -> str:
        if config.username_url:
            provisional = Account(
                id="",
                properties=properties,
                service_identifier=config.service_id,
                protocol=config.protocol,
            )
            request = build_request(
                config, "GET", config.username_url, account=provisional, http_client=http_client
            )
            response = await request.execute()
            try:
                value = response.json().get(config.username_field)
            except (ValueError, AttributeError) as exc:
                raise AuthenticationFailedError(
                    f"Username lookup at {config.username_url} did not return a JSON object"
                ) from exc
            if not value:
                raise AuthenticationFailedError(
                    f"Username lookup response has no '{config.username_field}' field"
                )
            return str(value)

        for key in WELL_KNOWN_USERNAME_KEYS:
            if properties.get(key):
                return properties[key]
        logger.warning(
            "%s: no username in the token response and no username_url; "
            "storing the account under the service id, so a later login replaces it",
            config.service_id,
        )
        return config.service_id

    return get_username


def build_http_client(config: ServiceConfig) -> httpx.AsyncClient:
    """Create the shared transport for *config* from its ``request`` settings."""
    return httpx.AsyncClient(
        timeout=config.request.timeout,
        verify=config.request.verify_ssl,
        follow_redirects=True,
    )


def create_service(
    config: ServiceConfig,
    *,
    store: Optional[CredentialStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    host_backend: Optional[HostAccountBackend] = None,
    ui: Optional[AuthenticationUI] = None,
    get_username: Optional[UsernameResolver] = None,
) -> Service:
    """Build a :class:`~socialkit.service.Service` for *config*.

    Args:
        config: Service configuration with secrets already resolved.
        store: Credential store for OAuth services.
        http_client: Transport to share; one is created from
            ``config.request`` when omitted. The service closes it.
        host_backend: Platform account store; required for host-managed
            services.
        ui: Default interactive login UI.
        get_username: Identity callback; defaults to
            :func:`username_resolver`.

    Raises:
        ConfigurationError: If a field the protocol requires is missing.
    """
    if config.protocol is AuthProtocol.HOST_MANAGED:
        if host_backend is None:
            raise ConfigurationError(
                f"Service '{config.service_id}' is host-managed and needs a platform backend"
            )
        if not config.account_type:
            raise ConfigurationError(f"Service '{config.service_id}' is missing: account_type")
        authenticator: Authenticator = HostManagedAuthenticator(
            config.service_id, config.account_type, host_backend
        )
        return Service(
            config,
            authenticator,
            store=store,
            http_client=http_client,
            host_backend=host_backend,
            ui=ui,
        )

    if http_client is None:
        http_client = build_http_client(config)
    resolver = get_username or username_resolver(config, http_client)
    if config.protocol is AuthProtocol.OAUTH2:
        authenticator = OAuth2Authenticator(config, resolver, http_client)
    else:
        authenticator = OAuth1Authenticator(config, resolver, http_client)
    logger.debug("Created %s service %s", config.protocol.value, config.service_id)
    return Service(config, authenticator, store=store, http_client=http_client, ui=ui)


class ServiceRegistry:
    """Services an application works with, keyed by ``service_id``.

    Example::

        registry = ServiceRegistry()
        registry.register(create_service(config, store=FileCredentialStore()))
        service = registry.get("facebook")
    """

    def __init__(self) -> None:
        self._services: dict[str, Service] = {}

    def register(self, service: Service) -> None:
        """Register *service*, replacing any service with the same id."""
        self._services[service.service_id] = service

    def get(self, service_id: str) -> Service:
        """Return the service registered as *service_id*.

        Raises:
            ConfigurationError: If no such service is registered.
        """
        service = self._services.get(service_id)
        if service is None:
            available = ", ".join(sorted(self._services)) or "(none)"
            raise ConfigurationError(
                f"No service registered as '{service_id}'. Available services: {available}"
            )
        return service

    def list_ids(self) -> list[str]:
        return sorted(self._services)

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._services

    async def aclose(self) -> None:
        """Close every registered service."""
        for service in self._services.values():
            await service.aclose()
