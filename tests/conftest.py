"""Shared test fixtures for socialkit.

Provides reusable fixtures for sample service configurations, isolated
config environments, output state, scripted login UIs, and running CLI
commands. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import httpx
import pytest

from socialkit.auth.base import AuthenticationUI, RedirectMatcher
from socialkit.auth.host import HostAccountBackend, HostResponse, RenewResult
from socialkit.models import AuthProtocol, ServiceConfig
from socialkit.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Scripted login UI
# ---------------------------------------------------------------------------


class FakeUI(AuthenticationUI):
    """Answers :meth:`present` with a canned redirect.

    *redirect* may be a string, ``None`` (the user cancelled), or a
    callable receiving the authorize URL, for flows whose redirect depends
    on a generated value such as ``state`` or the request token.
    """

    def __init__(self, redirect: Optional[str | Callable[[str], Optional[str]]]) -> None:
        self.redirect = redirect
        self.presented: list[str] = []

    async def present(self, authorize_url: str, is_redirect: RedirectMatcher) -> Optional[str]:
        self.presented.append(authorize_url)
        if callable(self.redirect):
            return self.redirect(authorize_url)
        return self.redirect


@pytest.fixture
def fake_ui() -> type[FakeUI]:
    return FakeUI


# ---------------------------------------------------------------------------
# Platform account store
# ---------------------------------------------------------------------------


class FakeBackend(HostAccountBackend):
    """In-memory platform account store.

    Handles are plain dicts with ``id`` and ``name`` keys.
    """

    def __init__(
        self,
        handles: Sequence[dict[str, str]] = (),
        grant: bool = True,
        renew_result: RenewResult = RenewResult.RENEWED,
    ) -> None:
        self.handles = list(handles)
        self.grant = grant
        self.renew_result = renew_result
        self.access_requests: list[tuple[str, dict[str, Any]]] = []
        self.renewed: list[Any] = []
        self.performed: list[tuple[Any, str, str, dict[str, str], list[Any]]] = []
        self.response = HostResponse(200, b'{"ok": true}', {"content-type": "application/json"})
        self.closed = False

    def find_accounts(self, account_type: str) -> Sequence[Any]:
        return list(self.handles)

    async def request_access(self, account_type: str, options: dict[str, Any]) -> bool:
        self.access_requests.append((account_type, options))
        return self.grant

    async def renew_credentials(self, handle: Any) -> RenewResult:
        self.renewed.append(handle)
        return self.renew_result

    async def perform_request(self, handle, method, url, parameters, parts) -> HostResponse:
        self.performed.append((handle, method, url, parameters, list(parts)))
        return self.response

    def username_of(self, handle: Any) -> str:
        return handle["name"]

    def identifier_of(self, handle: Any) -> str:
        return handle["id"]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_backend() -> FakeBackend:
    """A platform store holding two granted accounts, ``acc-1`` and ``acc-2``."""
    return FakeBackend([{"id": "acc-1", "name": "jane"}, {"id": "acc-2", "name": "joe"}])


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    """Factory for AsyncClients whose transport is a handler function."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


# ---------------------------------------------------------------------------
# Service configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def oauth2_config() -> ServiceConfig:
    """Implicit-grant OAuth2 service."""
    return ServiceConfig(
        service_id="example",
        title="Example",
        protocol=AuthProtocol.OAUTH2,
        client_id="abc",
        scope="read,write",
        authorize_url="https://auth.example/authorize",
        redirect_url="https://app.example/done",
    )


@pytest.fixture
def oauth2_code_config(oauth2_config: ServiceConfig) -> ServiceConfig:
    """Authorization-code OAuth2 service."""
    return oauth2_config.model_copy(
        update={
            "client_secret": "s3cret",
            "access_token_url": "https://auth.example/token",
        }
    )


@pytest.fixture
def oauth1_config() -> ServiceConfig:
    return ServiceConfig(
        service_id="birdsite",
        protocol=AuthProtocol.OAUTH1,
        consumer_key="ckey",
        consumer_secret="csecret",
        request_token_url="https://api.birdsite.example/oauth/request_token",
        authorize_url="https://api.birdsite.example/oauth/authorize",
        access_token_url="https://api.birdsite.example/oauth/access_token",
        redirect_url="https://app.example/callback",
    )


@pytest.fixture
def host_config() -> ServiceConfig:
    return ServiceConfig(
        service_id="platform",
        protocol=AuthProtocol.HOST_MANAGED,
        account_type="com.example.social",
        share_url="https://api.platform.example/share",
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config or credentials. Forces XDG path resolution, clears
    SOCIALKIT_SERVICE, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("socialkit.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("SOCIALKIT_SERVICE", raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
