"""Exception hierarchy for socialkit.

All exceptions inherit from :class:`SocialError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`socialkit.exit_codes`.
Library callers catch the specific subclasses; the CLI entry point in
:func:`socialkit.app.main` catches ``SocialError`` and exits with the
matching code.

Subclass hierarchy::

    SocialError                         (exit 1)
    +-- ConfigurationError              (exit 2)
    +-- InvalidItemError                (exit 2)
    +-- AuthenticationCancelledError    (exit 130)
    +-- AuthenticationFailedError       (exit 3)
    +-- UnsupportedAccountTypeError     (exit 4)
    +-- NotSupportedError               (exit 5)
    +-- TransportError                  (exit 6)
    +-- ApiError                        (exit 7)
    +-- StorageError                    (exit 8)

``AuthenticationCancelledError`` deliberately does not derive from
``AuthenticationFailedError``: a user closing the login window is a normal
outcome and callers usually handle it differently from a rejected handshake.
"""

from socialkit.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONFIGURATION_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_SUPPORTED,
    EXIT_STORAGE_ERROR,
    EXIT_UNSUPPORTED_ACCOUNT,
)


class SocialError(Exception):
    """Base exception for all socialkit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`socialkit.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(SocialError):
    """Raised when a required protocol parameter is missing or a service is unknown.

    Always raised synchronously, before any network I/O is attempted.
    """

    exit_code = EXIT_CONFIGURATION_ERROR


class InvalidItemError(SocialError):
    """Raised when a share payload exceeds the limits a service advertises."""

    exit_code = EXIT_CONFIGURATION_ERROR


class AuthenticationCancelledError(SocialError):
    """Raised when the user aborts an interactive authentication."""

    exit_code = EXIT_CANCELLED


class AuthenticationFailedError(SocialError):
    """Raised when the provider rejects the handshake or the redirect is malformed."""

    exit_code = EXIT_AUTH_FAILURE


class UnsupportedAccountTypeError(SocialError):
    """Raised when an account's protocol cannot be carried by a request pipeline."""

    exit_code = EXIT_UNSUPPORTED_ACCOUNT


class NotSupportedError(SocialError):
    """Raised for capabilities a service declares unsupported.

    Examples are headless sharing or saving accounts on a host-managed
    service, where the platform owns the account lifecycle.
    """

    exit_code = EXIT_NOT_SUPPORTED


class TransportError(SocialError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    The underlying :mod:`httpx` exception is chained as ``__cause__``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ApiError(SocialError):
    """Raised when a service answers with an HTTP status above 399.

    Args:
        status_code: The HTTP status returned by the service.
        body: The raw response body, decoded as text.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, status_code: int, body: str):
        super().__init__(f"{status_code}: {body}" if body else str(status_code))
        self.status_code = status_code
        self.body = body


class StorageError(SocialError):
    """Raised when the credential store cannot save, load, or delete an account."""

    exit_code = EXIT_STORAGE_ERROR
