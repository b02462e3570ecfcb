"""Request command -- send one authenticated API call.

Example::

    socialkit request facebook GET https://graph.facebook.com/me --param fields=name
    socialkit request twitter POST https://upload.example/1.1/media/upload.json \\
        --attach media=./photo.jpg
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Optional

import typer

from socialkit.client.response import Response, format_api_response
from socialkit.commands.accounts import find_account, load_config, open_service, run
from socialkit.exceptions import ConfigurationError
from socialkit.models import Account
from socialkit.output import error, warning
from socialkit.service import Service


def _split_pairs(values: list[str], option: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for value in values:
        key, sep, rest = value.partition("=")
        if not sep or not key:
            error(f"{option} expects key=value, got: {value}")
            raise typer.Exit(code=2)
        pairs.append((key, rest))
    return pairs


async def _pick_account(service: Service, account_id: Optional[str]) -> Optional[Account]:
    if account_id:
        return await find_account(service, account_id)
    assert service.store is not None
    stored = await service.store.load_all(service.service_id)
    usable = [account for account in stored if not account.is_expired()]
    if usable:
        return usable[0]
    # Expired accounts are renewed by the caller.
    if stored and service.supports_reauthorization:
        return stored[0]
    raise ConfigurationError(
        f"No usable account for '{service.service_id}'. "
        f"Log in first: socialkit accounts login {service.service_id}"
    )


def request_command(
    service_id: str = typer.Argument(metavar="SERVICE", help="Service id."),
    method: str = typer.Argument(help="HTTP method."),
    url: str = typer.Argument(help="Absolute URL."),
    param: list[str] = typer.Option(
        [], "--param", "-p", help="Parameter as key=value. Repeatable."
    ),
    attach: list[str] = typer.Option(
        [], "--attach", "-a", help="Multipart file as field=path. Repeatable."
    ),
    account_id: Optional[str] = typer.Option(
        None, "--account", help="Stored account id. Defaults to the first usable one."
    ),
    anonymous: bool = typer.Option(
        False, "--anonymous", help="Send the call without credentials."
    ),
) -> None:
    """Send one authenticated request and print the response.

    GET, DELETE and HEAD send parameters in the query string; other
    methods send them as a form body, or as multipart fields when files
    are attached.
    """
    config = load_config(service_id)
    parameters = dict(_split_pairs(param, "--param"))
    attachments = []
    for field, raw_path in _split_pairs(attach, "--attach"):
        path = Path(raw_path).expanduser()
        if not path.is_file():
            error(f"File not found: {path}")
            raise typer.Exit(code=2)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        attachments.append((field, path, mime_type))

    async def _send() -> Response:
        async with open_service(config) as service:
            account = None if anonymous else await _pick_account(service, account_id)
            if account is not None and account.is_expired():
                if not service.supports_reauthorization:
                    warning(f'Account "{account.id}" has expired; the call may be rejected.')
                else:
                    account = await service.reauthorize(account)
            request = service.create_request(method, url, parameters, account)
            for field, path, mime_type in attachments:
                request.add_multipart_data(field, path.read_bytes(), mime_type, path.name)
            return await request.execute()

    format_api_response(run(_send()))
