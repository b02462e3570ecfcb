"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~socialkit.exceptions.SocialError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from a
network outage without parsing stderr.

Example::

    $ socialkit request twitter GET https://api.twitter.com/1.1/account/settings.json
    $ echo $?
    7   # EXIT_API_ERROR -- the provider answered with an HTTP error
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIGURATION_ERROR = 2
"""A service is misconfigured, unknown, or the command was invoked incorrectly."""

EXIT_AUTH_FAILURE = 3
"""The authentication handshake was rejected or produced a malformed redirect."""

EXIT_UNSUPPORTED_ACCOUNT = 4
"""An account of the wrong protocol was used with a service pipeline."""

EXIT_NOT_SUPPORTED = 5
"""The service does not support the requested capability."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_API_ERROR = 7
"""The remote API answered with an HTTP status above 399."""

EXIT_STORAGE_ERROR = 8
"""The credential store could not be read or written."""

EXIT_CANCELLED = 130
"""The user cancelled an interactive operation (same code as Ctrl-C)."""
