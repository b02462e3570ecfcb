"""socialkit -- authenticate against social services and call their APIs.

One protocol-agnostic interface over three authentication families: OAuth
2.0 (implicit and authorization-code grants), OAuth 1.0a, and accounts
managed by a platform account store. Callers ask a :class:`Service` for
accounts, then create requests bound to one; the request pipeline injects
whatever credential the account's protocol needs.

Typical usage::

    from socialkit import FileCredentialStore, PasteRedirectUI, create_service

    async with create_service(config, store=FileCredentialStore(), ui=PasteRedirectUI()) as service:
        account = (await service.list_accounts())[0]
        response = await service.create_request("GET", "https://graph.example/me", account=account).execute()

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and service management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    auth: Authenticator strategies, credential stores, and login UIs.
    client: Request/response pipeline.
    service: The service front door.
    registry: Service factory and registry.
"""

__version__ = "0.1.0"

from socialkit.auth import (  # noqa: E402
    FileCredentialStore,
    LoopbackBrowserUI,
    MemoryCredentialStore,
    PasteRedirectUI,
)
from socialkit.models import Account, AuthProtocol, Item, ServiceConfig  # noqa: E402
from socialkit.registry import ServiceRegistry, create_service  # noqa: E402
from socialkit.service import Service  # noqa: E402

__all__ = [
    "Account",
    "AuthProtocol",
    "FileCredentialStore",
    "Item",
    "LoopbackBrowserUI",
    "MemoryCredentialStore",
    "PasteRedirectUI",
    "Service",
    "ServiceConfig",
    "ServiceRegistry",
    "__version__",
    "create_service",
]
