"""One-shot local HTTP listener receiving the OAuth2 redirect."""

from __future__ import annotations

import html
import logging
import queue
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

log = logging.getLogger(__name__)

DEFAULT_PORT = 8080
CALLBACK_PATH = "/callback"

_SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head><title>Authentication Successful</title></head>
<body>
<h1>Authentication Successful!</h1>
<p>You can close this window and return to the terminal.</p>
</body>
</html>"""

_FAILURE_PAGE = """<!DOCTYPE html>
<html>
<head><title>Authentication Failed</title></head>
<body>
<h1>Authentication Failed</h1>
<p>Error: {error}</p>
<p>You can close this window and try again.</p>
</body>
</html>"""


@dataclass
class CallbackResult:
    code: str = ""
    state: str = ""
    error: str = ""


def parse_callback_query(query: str) -> CallbackResult:
    params = parse_qs(query)
    code = params.get("code", [""])[0]
    state = params.get("state", [""])[0]
    if not code:
        return CallbackResult(state=state, error=params.get("error", ["missing authorization code"])[0])
    return CallbackResult(code=code, state=state)


class _Handler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self.send_error(404)
            return

        result = parse_callback_query(parsed.query)
        if result.error:
            self._respond(400, _FAILURE_PAGE.format(error=html.escape(result.error)))
        else:
            self._respond(200, _SUCCESS_PAGE)
        try:
            self.server.results.put_nowait(result)
        except queue.Full:
            log.debug("Ignoring repeated callback request")

    def _respond(self, status: int, body: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format: str, *args) -> None:
        log.debug("callback server: " + format, *args)


class _CallbackHTTPServer(HTTPServer):
    def __init__(self, address) -> None:
        super().__init__(address, _Handler)
        self.results: queue.Queue[CallbackResult] = queue.Queue(maxsize=1)


class CallbackServer:
    """Serves ``/callback`` on localhost until a result arrives or the server is closed.

    Binds ``port`` (8080 by default) and falls back to a random free port when it is taken.

    Example:
        with CallbackServer() as server:
            open_browser(make_url(server.redirect_uri))
            result = server.wait(timeout=300)
    """

    def __init__(self, port: int = DEFAULT_PORT, host: str = "127.0.0.1") -> None:
        try:
            self._httpd = _CallbackHTTPServer((host, port))
        except OSError:
            log.debug("Port %s unavailable, using a random port", port)
            self._httpd = _CallbackHTTPServer((host, 0))
        self.port = self._httpd.server_address[1]
        self._thread: Optional[threading.Thread] = None

    @property
    def redirect_uri(self) -> str:
        return f"http://localhost:{self.port}{CALLBACK_PATH}"

    def start(self) -> CallbackServer:
        self._thread = threading.Thread(target=self._httpd.serve_forever, kwargs={"poll_interval": 0.2}, daemon=True)
        self._thread.start()
        return self

    def wait(self, timeout: float) -> Optional[CallbackResult]:
        """Block until the redirect arrives. Returns None on timeout."""
        try:
            return self._httpd.results.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join(timeout=5)
            self._thread = None
        self._httpd.server_close()

    def __enter__(self) -> CallbackServer:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
