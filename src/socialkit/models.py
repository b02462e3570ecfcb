"""Canonical Pydantic models shared across all socialkit modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Credentials** -- produced by authenticators and persisted by credential
stores:
    :class:`AuthProtocol`, :class:`Account`, and :class:`HostAccount`.

**Configuration** -- serialised as JSON in the user's config directory:
    :class:`Limits`, :class:`RequestConfig`, :class:`ServiceConfig`, and
    :class:`GlobalConfig`.

**Share payloads** -- handed to :meth:`~socialkit.service.Service.share_item`:
    :class:`ImageAttachment`, :class:`FileAttachment`, and :class:`Item`.

All models use Pydantic v2. :class:`ServiceConfig` uses ``extra="allow"`` so
that provider-specific keys survive a load/save round trip.
"""

from __future__ import annotations

import enum
import time
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, PrivateAttr

from socialkit.exceptions import ConfigurationError


DEFAULT_REDIRECT_URL = "http://www.facebook.com/connect/login_success.html"
"""Redirect URL used when a service does not configure its own."""

SCOPE_SEPARATOR = ","

UNBOUNDED = None
"""Marker for a limit with no upper bound."""


# --- Credentials ---


class AuthProtocol(str, enum.Enum):
    """Authentication protocol family. Tags both accounts and authenticators."""

    OAUTH1 = "oauth1"
    OAUTH2 = "oauth2"
    HOST_MANAGED = "host_managed"


class Account(BaseModel):
    """An authenticated identity on one service.

    Accounts are immutable once created. Token renewal produces a
    replacement via :meth:`renewed` that keeps the same :attr:`id`, so that
    saving it to a credential store overwrites the previous entry.

    The :attr:`properties` mapping is opaque to the request pipeline except
    for the well-known keys its protocol consumes (``access_token`` for
    OAuth2, ``oauth_token`` / ``oauth_token_secret`` for OAuth1).

    Example::

        account = Account(
            id="jane",
            properties={"access_token": "tok123"},
            service_identifier="facebook",
            protocol=AuthProtocol.OAUTH2,
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable identifier, usually the resolved username")
    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Protocol-specific secrets and metadata",
    )
    service_identifier: str = Field(description="service_id of the owning service")
    protocol: AuthProtocol

    @property
    def username(self) -> str:
        """Display identity: the ``username`` property, falling back to :attr:`id`."""
        return self.properties.get("username", self.id)

    def renewed(self, properties: Mapping[str, str]) -> Account:
        """Return a replacement account with *properties* merged over the current ones."""
        merged = {**self.properties, **properties}
        return self.model_copy(update={"properties": merged})

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check the ``expires_at`` property (epoch seconds) against *now*.

        Accounts without an ``expires_at`` property, or with an unparsable
        one, never expire.
        """
        raw = self.properties.get("expires_at")
        if not raw:
            return False
        try:
            expires_at = float(raw)
        except ValueError:
            return False
        if now is None:
            now = time.time()
        return now >= expires_at


class HostAccount(Account):
    """An account whose lifecycle is owned by the platform account store.

    Wraps an opaque platform handle. The handle is only meaningful while the
    backend that issued it is alive, so it is kept as a private attribute and
    never serialised.
    """

    protocol: AuthProtocol = AuthProtocol.HOST_MANAGED

    _handle: Any = PrivateAttr(default=None)

    def __init__(self, handle: Any = None, **data: Any) -> None:
        super().__init__(**data)
        self._handle = handle

    @property
    def handle(self) -> Any:
        """The platform handle this account wraps."""
        return self._handle


# --- Share payloads ---


class ImageAttachment(BaseModel):
    data: bytes
    mime_type: str = "image/jpeg"
    filename: str = "image.jpg"


class FileAttachment(BaseModel):
    data: bytes
    mime_type: str = "application/octet-stream"
    filename: str = "file"


class Item(BaseModel):
    """Something to share: text plus ordered links, images, and files.

    No limits are enforced at construction; see :meth:`Limits.violations`.
    """

    text: str = ""
    links: list[str] = Field(default_factory=list)
    images: list[ImageAttachment] = Field(default_factory=list)
    files: list[FileAttachment] = Field(default_factory=list)


# --- Configuration ---


class Limits(BaseModel):
    """Share limits a service advertises. ``None`` means unbounded."""

    max_text_length: Optional[PositiveInt] = UNBOUNDED
    max_links: Optional[PositiveInt] = UNBOUNDED
    max_images: Optional[PositiveInt] = UNBOUNDED
    max_files: Optional[PositiveInt] = UNBOUNDED

    def violations(self, item: Item) -> list[str]:
        """Return a message for every limit *item* exceeds.

        Args:
            item: The payload to check.

        Returns:
            A list of human-readable messages. Empty when the item fits.
        """
        problems: list[str] = []
        checks = (
            ("text length", len(item.text), self.max_text_length),
            ("links", len(item.links), self.max_links),
            ("images", len(item.images), self.max_images),
            ("files", len(item.files), self.max_files),
        )
        for label, actual, limit in checks:
            if limit is not None and actual > limit:
                problems.append(f"{label} {actual} exceeds the limit of {limit}")
        return problems


class RequestConfig(BaseModel):
    """HTTP transport settings applied to every call a service makes."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class ServiceConfig(BaseModel):
    """Static configuration of one service.

    Set once before first use. Which fields are required depends on
    :attr:`protocol`; authenticators validate their own subset when they
    are constructed and raise
    :class:`~socialkit.exceptions.ConfigurationError` for anything missing.

    Example::

        ServiceConfig(
            service_id="facebook",
            title="Facebook",
            protocol="oauth2",
            client_id="abc",
            scope="read,write",
            authorize_url="https://www.facebook.com/dialog/oauth",
        )
    """

    model_config = ConfigDict(extra="allow")

    service_id: str = Field(description="Unique identifier, also the credential namespace")
    title: str = Field(default="", description="Human-readable name")
    protocol: AuthProtocol

    # OAuth2
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scope: Optional[str] = Field(
        default=None, description="Comma-separated scope values"
    )
    authorize_url: Optional[str] = None
    redirect_url: Optional[str] = DEFAULT_REDIRECT_URL
    access_token_url: Optional[str] = Field(
        default=None,
        description="Token endpoint; when set the authorization-code grant is used",
    )
    token_placement: Literal["header", "query"] = Field(
        default="header", description="Where to send the access token: header, query"
    )
    access_token_parameter: str = Field(
        default="access_token", description="Query parameter name for query placement"
    )

    # OAuth1
    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = None
    request_token_url: Optional[str] = None

    # Identity lookup
    username_url: Optional[str] = Field(
        default=None,
        description=(
            "Endpoint returning the authenticated user as JSON. Without it, and with no "
            "username in the token response, every login is stored under the service id"
        ),
    )
    username_field: str = "name"

    # Sharing
    share_url: Optional[str] = None
    share_text_parameter: str = "status"
    share_media_parameter: str = "media[]"

    # Host-managed
    account_type: Optional[str] = Field(
        default=None, description="Platform account type identifier"
    )

    allow_login_ui: bool = Field(
        default=True,
        description="Whether account retrieval may show interactive UI",
    )
    limits: Limits = Field(default_factory=Limits)
    request: RequestConfig = Field(default_factory=RequestConfig)

    @property
    def scopes(self) -> list[str]:
        """The scope string split on commas."""
        if not self.scope:
            return []
        return self.scope.split(SCOPE_SEPARATOR)

    def with_scopes(self, scopes: list[str]) -> ServiceConfig:
        """Return a copy whose scope is *scopes* joined on commas.

        Raises:
            ConfigurationError: If a scope value itself contains a comma.
        """
        for value in scopes:
            if SCOPE_SEPARATOR in value:
                raise ConfigurationError(
                    f"Scope value '{value}' must not contain '{SCOPE_SEPARATOR}'"
                )
        return self.model_copy(update={"scope": SCOPE_SEPARATOR.join(scopes)})


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/socialkit/config.json``."""

    default_service: Optional[str] = Field(
        default=None, description="Service used when none is given on the command line"
    )
    allow_login_ui: bool = Field(
        default=True, description="Allow interactive login when no account is stored"
    )
