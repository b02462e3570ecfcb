"""Built-in CLI sub-commands for socialkit.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~socialkit.commands.services` -- create and inspect service
  configurations.
* :mod:`~socialkit.commands.accounts` -- log in, list, renew, and delete
  accounts.
* :mod:`~socialkit.commands.request` -- send one authenticated API call.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``services`` and ``accounts``) or a plain
callback function registered directly on the root app (``request``).
"""
