# assistant_client/auth.py
"""
Token providers.

The conversation manager only needs a source of OAuth credentials. Either
wrap credentials obtained elsewhere, or run the installed-app consent flow
where the user opens ``auth_url()`` in a browser and the redirect lands on a
local callback listener.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from .callback_server import OAuthCallbackListener
from .errors import AuthError

logger = logging.getLogger(__name__)

ASSISTANT_SCOPE = "https://www.googleapis.com/auth/assistant-sdk-prototype"

TokenCallback = Callable[[Credentials], None]


def _usable(credentials: Optional[Credentials]) -> bool:
    """Valid now, or refreshable"""
    if credentials is None:
        return False
    return bool(credentials.valid or getattr(credentials, "refresh_token", None))


def _refresh_if_needed(credentials: Credentials) -> Credentials:
    if credentials.valid:
        return credentials
    if not getattr(credentials, "refresh_token", None):
        raise AuthError("Access token expired and no refresh token is available")
    try:
        credentials.refresh(Request())
    except (RefreshError, TransportError) as exc:
        raise AuthError(f"Token refresh failed: {exc}") from exc
    logger.info("Access token refreshed")
    return credentials


class TokenProvider(ABC):
    """Source of OAuth credentials for the channel"""

    @abstractmethod
    def auth_url(self) -> str:
        """URL the user must visit to authorize, empty once authorized"""
        pass

    @abstractmethod
    def exchange(self, code: str) -> Credentials:
        """Trade an authorization code for credentials"""
        pass

    @abstractmethod
    def current_token(self) -> Credentials:
        """Credentials ready to use, refreshed if they had expired"""
        pass

    @abstractmethod
    def last_error(self) -> Optional[AuthError]:
        pass

    def close(self) -> None:
        """Release anything held for the authorization flow"""


class CredentialsTokenProvider(TokenProvider):
    """Credentials obtained elsewhere (a cached token, a service account...)"""

    def __init__(self, credentials: Credentials):
        self._credentials = credentials
        self._error: Optional[AuthError] = None
        self._lock = threading.Lock()

    def auth_url(self) -> str:
        return ""

    def exchange(self, code: str) -> Credentials:
        raise AuthError("No authorization flow configured for these credentials")

    def current_token(self) -> Credentials:
        with self._lock:
            try:
                credentials = _refresh_if_needed(self._credentials)
            except AuthError as exc:
                self._error = exc
                raise
            self._error = None
            return credentials

    def last_error(self) -> Optional[AuthError]:
        return self._error


class OAuthTokenProvider(TokenProvider):
    """Installed-app consent flow with a local redirect listener.

    If ``credentials`` are already usable nothing is started. Otherwise the
    listener serves the redirect URI until ``close()``; when the browser
    comes back with a code it is exchanged and ``on_token`` receives the new
    credentials (caching them is up to the caller).
    """

    def __init__(
        self,
        flow: Flow,
        credentials: Optional[Credentials] = None,
        on_token: Optional[TokenCallback] = None,
        callback_host: str = "localhost",
        callback_port: int = 8080,
        start_listener: bool = True,
    ):
        self._flow = flow
        self._credentials = credentials
        self._on_token = on_token
        self._error: Optional[AuthError] = None
        self._lock = threading.RLock()
        self._token_ready = threading.Event()
        self._auth_url = ""
        self.listener: Optional[OAuthCallbackListener] = None

        if _usable(credentials):
            self._token_ready.set()
            return

        redirect_uri = f"http://{callback_host}:{callback_port}/"
        if start_listener:
            self.listener = OAuthCallbackListener(self.exchange, host=callback_host, port=callback_port)
            try:
                self.listener.start()
                redirect_uri = self.listener.redirect_uri
            except OSError as exc:
                self._error = AuthError(f"Cannot listen for the OAuth callback on {callback_host}:{callback_port}: {exc}")
                logger.error(str(self._error))
                self.listener = None

        self._flow.redirect_uri = redirect_uri
        self._auth_url, _ = self._flow.authorization_url(access_type="offline", prompt="consent")

    @classmethod
    def from_client_secrets_file(
        cls,
        path: str,
        scopes: Iterable[str] = (ASSISTANT_SCOPE,),
        **kwargs: Any,
    ) -> "OAuthTokenProvider":
        """Build from the client secrets JSON downloaded from the cloud console"""
        flow = Flow.from_client_secrets_file(path, scopes=list(scopes))
        return cls(flow, **kwargs)

    @classmethod
    def from_client_config(
        cls,
        client_config: Dict[str, Any],
        scopes: Iterable[str] = (ASSISTANT_SCOPE,),
        **kwargs: Any,
    ) -> "OAuthTokenProvider":
        flow = Flow.from_client_config(client_config, scopes=list(scopes))
        return cls(flow, **kwargs)

    # ------------------------------------------------------------------ #
    def auth_url(self) -> str:
        with self._lock:
            if _usable(self._credentials):
                return ""
            return self._auth_url

    def exchange(self, code: str) -> Credentials:
        if not code:
            raise AuthError("Empty authorization code")
        with self._lock:
            try:
                self._flow.fetch_token(code=code)
            except Exception as exc:
                self._error = AuthError(f"Token exchange failed: {exc}")
                logger.error(str(self._error))
                self._token_ready.set()
                raise self._error from exc
            self._credentials = self._flow.credentials
            self._error = None
            self._token_ready.set()
            credentials = self._credentials
        logger.info("✅ Authorization complete")

        if self._on_token is not None:
            try:
                self._on_token(credentials)
            except Exception as e:
                logger.error(f"Token callback failed: {e}")
        return credentials

    def wait_for_token(self, timeout: Optional[float] = None) -> bool:
        """Block until an exchange finished (successfully or not)"""
        if not self._token_ready.wait(timeout):
            return False
        return _usable(self._credentials)

    def current_token(self) -> Credentials:
        with self._lock:
            if self._credentials is None:
                raise AuthError("Not authorized yet, visit the authorization URL first")
            try:
                return _refresh_if_needed(self._credentials)
            except AuthError as exc:
                self._error = exc
                raise

    def last_error(self) -> Optional[AuthError]:
        return self._error

    def close(self) -> None:
        if self.listener is not None:
            self.listener.shutdown()
            self.listener = None
