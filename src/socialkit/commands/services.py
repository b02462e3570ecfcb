"""Service commands -- create, inspect, and remove service configurations.

Provides the ``socialkit services`` sub-command group. Each service is a
JSON file under ``<config_dir>/services/``. Secrets may be given as
``env:VAR`` or ``file:/path`` descriptors so that they are read at use time
instead of being stored in the file.

Typical workflow::

    socialkit services add facebook --protocol oauth2 --client-id env:FB_ID \\
        --scope email,public_profile --authorize-url https://www.facebook.com/dialog/oauth
    socialkit services show facebook
"""

from __future__ import annotations

from typing import Any, Optional

import typer
from pydantic import ValidationError

from socialkit.exceptions import ConfigurationError
from socialkit.models import DEFAULT_REDIRECT_URL, AuthProtocol, ServiceConfig
from socialkit.output import error, format_response, get_output, info, success, suggest

services_app = typer.Typer(no_args_is_help=True)


def _validate(config: ServiceConfig) -> None:
    """Fail fast on fields the protocol requires, without resolving secrets."""
    from socialkit.auth.oauth1 import OAuth1Authenticator
    from socialkit.auth.oauth2 import OAuth2Authenticator

    async def _unused(properties: dict[str, str]) -> str:
        return config.service_id

    if config.protocol is AuthProtocol.OAUTH2:
        OAuth2Authenticator(config, _unused)
    elif config.protocol is AuthProtocol.OAUTH1:
        OAuth1Authenticator(config, _unused)
    elif not config.account_type:
        raise ConfigurationError(f"Service '{config.service_id}' is missing: account_type")


def _masked(config: ServiceConfig) -> dict[str, Any]:
    from socialkit.config import SECRET_FIELDS, is_source_descriptor

    data = config.model_dump(mode="json", exclude_none=True)
    for name in SECRET_FIELDS:
        value = data.get(name)
        if value and name.endswith("secret") and not is_source_descriptor(value):
            data[name] = "****"
    return data


@services_app.command("list")
def services_list() -> None:
    """List configured services.

    Example::

        socialkit services list
        socialkit services list --json
    """
    from socialkit.config import list_service_ids, load_global_config, load_service_config

    ids = list_service_ids()
    if not ids:
        info("No services configured.")
        suggest("Add one: socialkit services add <id> --protocol oauth2 ...")
        return

    default = load_global_config().default_service
    rows: list[list[str]] = []
    for service_id in ids:
        try:
            config = load_service_config(service_id, resolve_secrets=False)
            rows.append([
                service_id,
                config.title or service_id,
                config.protocol.value,
                "*" if service_id == default else "",
            ])
        except ConfigurationError:
            rows.append([service_id, "", "error", ""])

    get_output().print_table(["ID", "Title", "Protocol", "Default"], rows, title="Services")


@services_app.command("show")
def services_show(
    service_id: str = typer.Argument(metavar="SERVICE", help="Service id."),
) -> None:
    """Show a service configuration with literal secrets masked.

    Example::

        socialkit services show facebook --json
    """
    from socialkit.config import load_service_config

    try:
        config = load_service_config(service_id, resolve_secrets=False)
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    format_response(_masked(config))


@services_app.command("add")
def services_add(
    service_id: str = typer.Argument(metavar="SERVICE", help="New service id."),
    protocol: AuthProtocol = typer.Option(..., "--protocol", help="oauth2, oauth1, or host_managed."),
    title: str = typer.Option("", "--title", help="Human-readable name."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="OAuth2 client id (or env:/file: source)."),
    client_secret: Optional[str] = typer.Option(None, "--client-secret", help="OAuth2 client secret (or env:/file: source)."),
    scope: Optional[str] = typer.Option(None, "--scope", help="Comma-separated scopes."),
    authorize_url: Optional[str] = typer.Option(None, "--authorize-url", help="Provider login page."),
    redirect_url: str = typer.Option(DEFAULT_REDIRECT_URL, "--redirect-url", help="Redirect URL."),
    access_token_url: Optional[str] = typer.Option(None, "--access-token-url", help="Token endpoint."),
    token_placement: str = typer.Option("header", "--token-placement", help="header or query."),
    consumer_key: Optional[str] = typer.Option(None, "--consumer-key", help="OAuth1 consumer key (or env:/file: source)."),
    consumer_secret: Optional[str] = typer.Option(None, "--consumer-secret", help="OAuth1 consumer secret (or env:/file: source)."),
    request_token_url: Optional[str] = typer.Option(None, "--request-token-url", help="OAuth1 request-token endpoint."),
    username_url: Optional[str] = typer.Option(None, "--username-url", help="Endpoint returning the current user."),
    username_field: str = typer.Option("name", "--username-field", help="Field holding the username."),
    share_url: Optional[str] = typer.Option(None, "--share-url", help="Endpoint for posting items."),
    account_type: Optional[str] = typer.Option(None, "--account-type", help="Platform account type."),
    set_default: bool = typer.Option(False, "--default", help="Make this the default service."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing service."),
) -> None:
    """Create a service configuration.

    The configuration is validated for the chosen protocol before it is
    written.

    Example::

        socialkit services add twitter --protocol oauth1 \\
            --consumer-key env:TW_KEY --consumer-secret env:TW_SECRET \\
            --request-token-url https://api.twitter.com/oauth/request_token \\
            --authorize-url https://api.twitter.com/oauth/authorize \\
            --access-token-url https://api.twitter.com/oauth/access_token \\
            --redirect-url http://127.0.0.1:8765/callback
    """
    from socialkit.config import load_global_config, save_global_config, save_service_config, service_exists

    if service_exists(service_id) and not force:
        error(f"Service '{service_id}' already exists. Use --force to overwrite.")
        raise typer.Exit(code=2)

    try:
        config = ServiceConfig(
            service_id=service_id,
            title=title,
            protocol=protocol,
            client_id=client_id,
            client_secret=client_secret,
            scope=scope,
            authorize_url=authorize_url,
            redirect_url=redirect_url,
            access_token_url=access_token_url,
            token_placement=token_placement,
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
            request_token_url=request_token_url,
            username_url=username_url,
            username_field=username_field,
            share_url=share_url,
            account_type=account_type,
        )
        _validate(config)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    save_service_config(config)
    if set_default:
        global_config = load_global_config()
        global_config.default_service = service_id
        save_global_config(global_config)

    success(f'Service "{service_id}" saved.')
    if protocol is not AuthProtocol.HOST_MANAGED:
        suggest(f"Log in: socialkit accounts login {service_id}")


@services_app.command("remove")
def services_remove(
    service_id: str = typer.Argument(metavar="SERVICE", help="Service id."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete a service configuration. Stored accounts are kept.

    Example::

        socialkit services remove facebook --force
    """
    from socialkit.config import delete_service_config, service_exists

    if not service_exists(service_id):
        error(f"Service '{service_id}' not found.")
        raise typer.Exit(code=2)

    if not force:
        confirmed = typer.confirm(f"Remove service '{service_id}'?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    delete_service_config(service_id)
    success(f'Service "{service_id}" removed.')
