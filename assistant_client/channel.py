# assistant_client/channel.py
"""
Authenticated gRPC channels to the assistant service
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import grpc
from google.auth import credentials as google_credentials
from google.auth.transport import grpc as google_auth_grpc
from google.auth.transport.requests import Request

from .auth import TokenProvider
from .errors import AssistantConnectionError, AuthError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "embeddedassistant.googleapis.com:443"


class ChannelFactory(ABC):
    """Dials channels able to host new bidirectional streams"""

    @abstractmethod
    def dial(self, token_provider: TokenProvider, endpoint: str, scopes: Sequence[str]) -> Any:
        pass


class GrpcChannelFactory(ChannelFactory):
    """Secure channel authorized with the provider's OAuth credentials.

    When ``connect_timeout`` is set the channel must become ready within it,
    so network problems surface at dial time rather than on the first stream.
    """

    def __init__(self, connect_timeout: Optional[float] = 10.0, options: Optional[Sequence] = None):
        self.connect_timeout = connect_timeout
        self.options = list(options or [])

    def dial(self, token_provider: TokenProvider, endpoint: str, scopes: Sequence[str]) -> grpc.Channel:
        credentials = token_provider.current_token()
        credentials = google_credentials.with_scopes_if_required(credentials, list(scopes))

        try:
            channel = google_auth_grpc.secure_authorized_channel(
                credentials, Request(), endpoint, options=self.options or None
            )
        except AuthError:
            raise
        except Exception as exc:
            raise AssistantConnectionError(f"Failed to connect to {endpoint}: {exc}") from exc

        if self.connect_timeout:
            try:
                grpc.channel_ready_future(channel).result(timeout=self.connect_timeout)
            except grpc.FutureTimeoutError as exc:
                channel.close()
                raise AssistantConnectionError(
                    f"Channel to {endpoint} not ready after {self.connect_timeout}s"
                ) from exc

        logger.info(f"✅ Connected to {endpoint}")
        return channel
