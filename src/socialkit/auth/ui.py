"""Terminal-friendly :class:`~socialkit.auth.base.AuthenticationUI` implementations.

* :class:`LoopbackBrowserUI` -- opens the system browser and captures the
  redirect on a one-shot local HTTP server. Requires a loopback redirect URL
  (``http://127.0.0.1:<port>/...`` or ``http://localhost:<port>/...``).
* :class:`PasteRedirectUI` -- prints the authorize URL and asks the user to
  paste back the address the browser ended on. Works with any redirect URL,
  including the default one.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

import typer

from socialkit import output
from socialkit.auth.base import AuthenticationUI, RedirectMatcher
from socialkit.exceptions import AuthenticationFailedError, ConfigurationError

logger = logging.getLogger(__name__)

LOOPBACK_HOSTS = ("127.0.0.1", "localhost")
DEFAULT_LOGIN_TIMEOUT = 120.0

_RELAY_MARKER = "socialkit_fragment"

# Tokens delivered in the fragment never reach the server; this page sends
# them back as query parameters.
_RELAY_PAGE = f"""<html><body>
<h2>Completing sign-in...</h2>
<script>
var params = window.location.hash.substring(1);
window.location.replace(window.location.pathname + "?{_RELAY_MARKER}=1" + (params ? "&" + params : ""));
</script>
</body></html>"""

_DONE_PAGE = (
    "<html><body><h2>Sign-in complete. You can close this window "
    "and return to the terminal.</h2></body></html>"
)


class LoopbackBrowserUI(AuthenticationUI):
    """Capture the redirect on a local HTTP listener.

    Args:
        redirect_url: The service's redirect URL. Its host must be a
            loopback address and its port free.
        timeout: Seconds to wait for the redirect before treating the
            attempt as cancelled.
        open_browser: Callable opening a URL; :func:`webbrowser.open` by
            default.

    Raises:
        ConfigurationError: If *redirect_url* is not an ``http`` loopback URL.
    """

    def __init__(
        self,
        redirect_url: str,
        timeout: float = DEFAULT_LOGIN_TIMEOUT,
        open_browser: Optional[Callable[[str], Any]] = None,
    ) -> None:
        parts = urlsplit(redirect_url)
        if parts.scheme != "http" or parts.hostname not in LOOPBACK_HOSTS:
            raise ConfigurationError(
                f"Redirect URL {redirect_url!r} is not a loopback http URL; "
                "use the paste flow instead"
            )
        self.redirect_url = redirect_url
        self.host = parts.hostname or "127.0.0.1"
        self.port = parts.port or 80
        self.path = parts.path or "/"
        self._base = f"{parts.scheme}://{parts.netloc}{self.path}"
        self.timeout = timeout
        self._open_browser = open_browser or webbrowser.open

    async def present(self, authorize_url: str, is_redirect: RedirectMatcher) -> Optional[str]:
        try:
            server = HTTPServer((self.host, self.port), self._handler_class())
        except OSError as exc:
            raise AuthenticationFailedError(
                f"Cannot listen on {self.host}:{self.port} for the redirect: {exc}"
            ) from exc
        server.captured = None  # type: ignore[attr-defined]
        stop = threading.Event()

        threading.Thread(target=self._open_browser, args=(authorize_url,), daemon=True).start()
        output.info(f"Opened your browser to sign in. Waiting up to {int(self.timeout)}s...")
        try:
            captured = await asyncio.to_thread(self._serve, server, stop)
        finally:
            stop.set()

        if captured is None:
            logger.warning("No redirect received within %.0f seconds", self.timeout)
            return None
        if not is_redirect(captured):
            raise AuthenticationFailedError(f"Unexpected callback URL {captured!r}")
        return captured

    def _serve(self, server: HTTPServer, stop: threading.Event) -> Optional[str]:
        deadline = time.monotonic() + self.timeout
        # Short polls keep the loop responsive to cancellation.
        server.timeout = 0.5
        try:
            while server.captured is None and not stop.is_set():  # type: ignore[attr-defined]
                if time.monotonic() >= deadline:
                    return None
                server.handle_request()
        finally:
            server.server_close()
        return server.captured  # type: ignore[attr-defined]

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        expected_path = self.path
        base = self._base

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                parts = urlsplit(self.path)
                if (parts.path or "/") != expected_path:
                    self.send_error(404)
                    return

                params = parse_qsl(parts.query, keep_blank_values=True)
                if any(key == _RELAY_MARKER for key, _ in params):
                    relayed = [(k, v) for k, v in params if k != _RELAY_MARKER]
                    self.server.captured = f"{base}#{urlencode(relayed)}"  # type: ignore[attr-defined]
                    body = _DONE_PAGE
                elif params:
                    self.server.captured = f"{base}?{parts.query}"  # type: ignore[attr-defined]
                    body = _DONE_PAGE
                else:
                    body = _RELAY_PAGE

                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(body.encode("utf-8"))

            def log_message(self, format: str, *args: Any) -> None:
                logger.debug("callback server: " + format, *args)

        return CallbackHandler


class PasteRedirectUI(AuthenticationUI):
    """Ask the user to visit the authorize URL and paste the final address.

    An empty answer cancels the attempt.

    Args:
        prompt: Callable returning the user's answer. Defaults to
            :func:`typer.prompt`.
    """

    def __init__(self, prompt: Optional[Callable[[str], str]] = None) -> None:
        self._prompt = prompt or _prompt_for_url

    async def present(self, authorize_url: str, is_redirect: RedirectMatcher) -> Optional[str]:
        typer.echo("Open this URL in a browser and sign in:", err=True)
        typer.echo(authorize_url, err=True)
        answer = (await asyncio.to_thread(self._prompt, "Paste the address you were redirected to")).strip()
        if not answer:
            return None
        if not is_redirect(answer):
            raise AuthenticationFailedError(f"{answer!r} is not the redirect URL")
        return answer


def _prompt_for_url(text: str) -> str:
    return typer.prompt(text, default="", show_default=False, err=True)
