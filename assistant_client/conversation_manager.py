"""
ConversationManager binds a token provider, a channel, the audio settings,
the dialog state and the device identity, and opens conversations on them.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Sequence

from .audio import AudioSettings
from .auth import ASSISTANT_SCOPE, TokenProvider, OAuthTokenProvider
from .backends import ConversationBackend, create_backend
from .channel import DEFAULT_ENDPOINT, ChannelFactory, GrpcChannelFactory
from .config import Config
from .conversation import Conversation
from .device import DeviceIdentity
from .errors import AuthError, ProtocolError
from .state import DialogState, carry_over
from .stream import StreamSession

log = logging.getLogger(__name__)

# Recommended deadline for a conversation carrying audio; text has none
DEFAULT_AUDIO_TIMEOUT = 240.0


class ConversationManager:
    """Entry point: one manager per assistant device, one turn at a time."""

    def __init__(
        self,
        token_provider: TokenProvider,
        device: DeviceIdentity,
        audio_settings: Optional[AudioSettings] = None,
        *,
        language_code: str = "en-US",
        backend: Optional[ConversationBackend] = None,
        channel_factory: Optional[ChannelFactory] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        scopes: Sequence[str] = (ASSISTANT_SCOPE,),
        dialog_state: Optional[DialogState] = None,
    ) -> None:
        self.token_provider = token_provider
        self.device = device
        self.audio_settings = audio_settings or AudioSettings.default()
        self.language_code = language_code
        self.backend = backend or create_backend()
        self.channel_factory = channel_factory or GrpcChannelFactory()
        self.endpoint = endpoint
        self.scopes = tuple(scopes)
        # carried over from an earlier manager, or a brand new conversation
        self.dialog_state = carry_over(dialog_state, language_code)

        self._channel = None
        self._conversations: set = set()
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        token_provider: Optional[TokenProvider] = None,
        **kwargs,
    ) -> "ConversationManager":
        """Build everything from environment-driven ``Config``"""
        if token_provider is None:
            token_provider = OAuthTokenProvider.from_client_secrets_file(
                config.oauth_client_secrets,
                scopes=(config.api_scope,),
                callback_host=config.oauth_callback_host,
                callback_port=config.oauth_callback_port,
            )
        kwargs.setdefault("backend", create_backend(config.api_revision))
        kwargs.setdefault("channel_factory", GrpcChannelFactory(connect_timeout=config.connect_timeout))
        return cls(
            token_provider,
            config.device(),
            config.audio_settings(),
            language_code=config.language_code,
            endpoint=config.api_endpoint,
            scopes=(config.api_scope,),
            **kwargs,
        )

    # ------------------------------------------------------------------ #
    # ---------------------------  lifecycle  -------------------------- #
    # ------------------------------------------------------------------ #
    def auth_url(self) -> str:
        """Where the user must sign in, or "" when no sign-in is needed"""
        return self.token_provider.auth_url()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def channel(self):
        return self._channel

    def _check_auth(self) -> None:
        error = self.token_provider.last_error()
        if error is not None:
            if isinstance(error, AuthError):
                raise error
            raise AuthError(str(error)) from error
        pending = self.token_provider.auth_url()
        if pending:
            raise AuthError(f"Authorization pending, sign in at {pending}")

    def open_conversation(self, timeout: Optional[float] = None) -> Conversation:
        """Open a conversation; ``timeout`` seconds bound all of its streams.

        ``None`` or 0 means no deadline (fine for text). Use
        ``DEFAULT_AUDIO_TIMEOUT`` for audio.
        """
        with self._lock:
            if self._closed:
                raise ProtocolError("Conversation manager is closed")
            self._check_auth()

            if self._channel is None:
                log.info(f"Dialing {self.endpoint} ({self.backend.revision})")
                self._channel = self.channel_factory.dial(self.token_provider, self.endpoint, self.scopes)

            deadline = None
            if timeout is not None and timeout > 0:
                deadline = time.monotonic() + timeout

            conversation = Conversation(self, StreamSession(self.backend, self._channel, deadline))
            self._conversations.add(conversation)

        log.info(f"Conversation opened (deadline: {timeout or 'none'}, {self.dialog_state})")
        return conversation

    def forget(self, conversation: Conversation) -> None:
        with self._lock:
            self._conversations.discard(conversation)

    def reset_dialog(self) -> None:
        """Start the next turn as a brand new conversation"""
        self.dialog_state.reset()

    def close(self) -> None:
        """Close open conversations, the channel and the OAuth listener"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            conversations = list(self._conversations)
            channel, self._channel = self._channel, None

        for conversation in conversations:
            try:
                conversation.close()
            except Exception as e:
                log.error(f"Error closing conversation: {e}")

        if channel is not None:
            channel.close()

        self.token_provider.close()
        log.info("Conversation manager closed")

    def __enter__(self) -> "ConversationManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
