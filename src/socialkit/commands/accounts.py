"""Account commands -- log in, list, renew, and forget accounts.

Provides the ``socialkit accounts`` sub-command group. Accounts are kept in
the file credential store under the data directory, one file per service.

Typical workflow::

    socialkit accounts login facebook          # browser or paste flow
    socialkit accounts list facebook           # stored accounts
    socialkit accounts reauthorize facebook jane
    socialkit accounts delete facebook jane
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Coroutine, Optional, TypeVar

import typer

from socialkit.auth.base import AuthenticationUI
from socialkit.auth.store import FileCredentialStore
from socialkit.auth.ui import LoopbackBrowserUI, PasteRedirectUI
from socialkit.config import load_global_config, load_service_config, resolve_service_id
from socialkit.exceptions import (
    AuthenticationCancelledError,
    ConfigurationError,
    SocialError,
)
from socialkit.exit_codes import EXIT_CANCELLED
from socialkit.models import Account, AuthProtocol, ServiceConfig
from socialkit.output import error, get_output, info, success, suggest
from socialkit.registry import build_http_client, create_service
from socialkit.service import Service

T = TypeVar("T")

accounts_app = typer.Typer(no_args_is_help=True)


# ------------------------------------------------------------------ #
# Helpers shared with the request command
# ------------------------------------------------------------------ #


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* to completion, turning socialkit errors into CLI exits."""
    try:
        return asyncio.run(coro)
    except AuthenticationCancelledError:
        info("Cancelled.")
        raise typer.Exit(code=EXIT_CANCELLED) from None
    except SocialError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def choose_ui(config: ServiceConfig, paste: bool = False) -> AuthenticationUI:
    """Use the browser flow for loopback redirect URLs, the paste flow otherwise."""
    if not paste and config.redirect_url:
        try:
            return LoopbackBrowserUI(config.redirect_url)
        except ConfigurationError:
            pass
    return PasteRedirectUI()


def open_service(config: ServiceConfig, ui: Optional[AuthenticationUI] = None) -> Service:
    """Create a file-backed service for *config*.

    Raises:
        ConfigurationError: For host-managed services, which need a
            platform backend the command line does not have.
    """
    if config.protocol is AuthProtocol.HOST_MANAGED:
        raise ConfigurationError(
            f"Service '{config.service_id}' is host-managed and cannot be used from the command line"
        )
    return create_service(
        config,
        store=FileCredentialStore(),
        http_client=build_http_client(config),
        ui=ui,
    )


async def find_account(service: Service, account_id: str) -> Account:
    """Return the stored account *account_id*, expired or not."""
    assert service.store is not None
    for account in await service.store.load_all(service.service_id):
        if account.id == account_id:
            return account
    raise ConfigurationError(f"No stored account '{account_id}' for service '{service.service_id}'")


def load_config(service_id: Optional[str]) -> ServiceConfig:
    try:
        return load_service_config(resolve_service_id(service_id))
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _expiry(account: Account) -> str:
    raw = account.properties.get("expires_at")
    if not raw:
        return "never"
    if account.is_expired():
        return "expired"
    try:
        return time.strftime("%Y-%m-%d %H:%M", time.localtime(float(raw)))
    except ValueError:
        return raw


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@accounts_app.command("list")
def accounts_list(
    service_id: Optional[str] = typer.Argument(None, metavar="SERVICE", help="Service id."),
    no_login: bool = typer.Option(
        False, "--no-login", help="Never open a login flow when nothing is stored."
    ),
) -> None:
    """List usable accounts, logging in first if none are stored.

    Expired accounts are skipped. Pass ``--no-login`` (or set
    ``allow_login_ui`` to false in the global config) to only show what is
    already stored.

    Example::

        socialkit accounts list facebook
        socialkit accounts list facebook --no-login --json
    """
    config = load_config(service_id)
    allow_ui = not no_login and load_global_config().allow_login_ui

    async def _list() -> list[Account]:
        ui = choose_ui(config) if allow_ui else None
        async with open_service(config, ui=ui) as service:
            accounts = await service.list_accounts()
            return accounts

    accounts = run(_list())
    if not accounts:
        info(f"No accounts for {config.service_id}.")
        suggest(f"Log in: socialkit accounts login {config.service_id}")
        return

    rows = [[a.id, a.username, a.protocol.value, _expiry(a)] for a in accounts]
    get_output().print_table(["ID", "Username", "Protocol", "Expires"], rows, title="Accounts")


@accounts_app.command("login")
def accounts_login(
    service_id: Optional[str] = typer.Argument(None, metavar="SERVICE", help="Service id."),
    paste: bool = typer.Option(
        False, "--paste", help="Paste the redirected URL instead of using a local listener."
    ),
) -> None:
    """Authenticate a new account and store it.

    Example::

        socialkit accounts login facebook
        socialkit accounts login twitter --paste
    """
    config = load_config(service_id)

    async def _login() -> Account:
        async with open_service(config, ui=choose_ui(config, paste)) as service:
            account = await service.begin_authentication()
            await service.save_account(account)
            return account

    account = run(_login())
    success(f'Logged in to {config.service_id} as "{account.username}".')


@accounts_app.command("reauthorize")
def accounts_reauthorize(
    service_id: str = typer.Argument(metavar="SERVICE", help="Service id."),
    account_id: str = typer.Argument(metavar="ID", help="Stored account id."),
) -> None:
    """Renew a stored account's token without logging in again.

    Example::

        socialkit accounts reauthorize facebook jane
    """
    config = load_config(service_id)

    async def _renew() -> Account:
        async with open_service(config) as service:
            account = await find_account(service, account_id)
            return await service.reauthorize(account)

    renewed = run(_renew())
    success(f'Renewed "{renewed.id}" (expires: {_expiry(renewed)}).')


@accounts_app.command("delete")
def accounts_delete(
    service_id: str = typer.Argument(metavar="SERVICE", help="Service id."),
    account_id: str = typer.Argument(metavar="ID", help="Stored account id."),
) -> None:
    """Remove a stored account.

    Example::

        socialkit accounts delete facebook jane
    """
    config = load_config(service_id)

    async def _delete() -> None:
        async with open_service(config) as service:
            account = await find_account(service, account_id)
            await service.delete_account(account)

    run(_delete())
    success(f'Deleted account "{account_id}" from {config.service_id}.')


@accounts_app.command("show")
def accounts_show(
    service_id: str = typer.Argument(metavar="SERVICE", help="Service id."),
    account_id: str = typer.Argument(metavar="ID", help="Stored account id."),
) -> None:
    """Show a stored account with its secrets masked.

    Example::

        socialkit accounts show facebook jane --json
    """
    from socialkit.output import format_response, redact_properties

    config = load_config(service_id)

    async def _find() -> Account:
        async with open_service(config) as service:
            return await find_account(service, account_id)

    account = run(_find())
    data: dict[str, Any] = account.model_dump(mode="json")
    data["properties"] = redact_properties(account.properties)
    format_response(data)
