# assistant_client/callback_server.py
"""
Local HTTP endpoint receiving the OAuth redirect of one authorization attempt
"""

import html
import logging
import threading
from typing import Callable, Optional
from urllib.parse import parse_qs
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from .errors import AuthError

logger = logging.getLogger(__name__)

_PAGE = """<html><body><style>body{{background-color:black;color:white;}}</style>\
<h3>{title}</h3><p>{message}</p><footer>{footer}</footer></body></html>"""


def _page(title: str, message: str, footer: str) -> bytes:
    return _PAGE.format(title=title, message=message, footer=footer).encode("utf-8")


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        logger.debug("OAuth callback: " + format, *args)


class OAuthCallbackListener:
    """Serves the redirect URI on its own thread until ``shutdown()``.

    Each instance owns its server; nothing is registered process-wide.
    """

    def __init__(self, on_code: Callable[[str], object], host: str = "localhost", port: int = 8080):
        self._on_code = on_code
        self.host = host
        self._server: Optional[WSGIServer] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._requested_port = port

    @property
    def port(self) -> int:
        if self._server is not None:
            return self._server.server_port
        return self._requested_port

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}/"

    @property
    def running(self) -> bool:
        return self._server is not None

    def start(self) -> None:
        """Bind and start serving; raises OSError if the port is unavailable"""
        with self._lock:
            if self._server is not None:
                return
            self._server = make_server(self.host, self._requested_port, self._app, handler_class=_QuietHandler)
            self._thread = threading.Thread(
                target=self._server.serve_forever,
                name="oauth-callback",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"OAuth callback listening on {self.redirect_uri}")

    def shutdown(self) -> None:
        with self._lock:
            server, self._server = self._server, None
            thread, self._thread = self._thread, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if thread is not None:
            thread.join(timeout=5)
        logger.info("OAuth callback listener stopped")

    # ------------------------------------------------------------------ #
    def _app(self, environ, start_response):
        params = parse_qs(environ.get("QUERY_STRING", ""))
        code = (params.get("code") or [""])[0]
        denied = (params.get("error") or [""])[0]

        if not code:
            reason = f"Google returned: {html.escape(denied)}" if denied else "No authorization code received!"
            status = "400 Bad Request"
            body = _page("Authentication Failure", reason, "You should try logging in again.")
        else:
            try:
                self._on_code(code)
            except AuthError as exc:
                status = "500 Internal Server Error"
                body = _page(
                    "Authentication Failure",
                    f"The following error was provided: <strong>{html.escape(str(exc))}</strong>.",
                    "You should try logging in again.",
                )
            else:
                status = "200 OK"
                body = _page("Authentication Successful", "The assistant is now authorized.",
                             "You may safely close this page.")

        start_response(status, [("Content-Type", "text/html; charset=utf-8")])
        return [body]
