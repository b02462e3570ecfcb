"""Strategy-based authentication for socialkit.

Every service pairs with one :class:`Authenticator` chosen by its
protocol family -- OAuth 2.0 (implicit or authorization-code grant),
OAuth 1.0a, or host-managed accounts owned by the platform account store.

The main entry points are:

- :class:`Authenticator` -- abstract strategy every protocol implements.
- :class:`AuthenticationUI` -- the interactive login boundary;
  :class:`LoopbackBrowserUI` and :class:`PasteRedirectUI` are the terminal
  implementations.
- :class:`CredentialStore` -- persistent per-service account storage, with
  :class:`FileCredentialStore` and :class:`MemoryCredentialStore`.

Typical usage::

    from socialkit.auth import OAuth2Authenticator, PasteRedirectUI

    authenticator = OAuth2Authenticator(config, get_username)
    account = await authenticator.begin_authentication(PasteRedirectUI())
"""

from socialkit.auth.base import AuthenticationState, AuthenticationUI, Authenticator
from socialkit.auth.host import (
    HostAccountBackend,
    HostManagedAuthenticator,
    HostResponse,
    RenewResult,
)
from socialkit.auth.oauth1 import OAuth1Authenticator
from socialkit.auth.oauth2 import OAuth2Authenticator
from socialkit.auth.store import CredentialStore, FileCredentialStore, MemoryCredentialStore
from socialkit.auth.ui import LoopbackBrowserUI, PasteRedirectUI

__all__ = [
    "AuthenticationState",
    "AuthenticationUI",
    "Authenticator",
    "CredentialStore",
    "FileCredentialStore",
    "HostAccountBackend",
    "HostManagedAuthenticator",
    "HostResponse",
    "LoopbackBrowserUI",
    "MemoryCredentialStore",
    "OAuth1Authenticator",
    "OAuth2Authenticator",
    "PasteRedirectUI",
    "RenewResult",
]
