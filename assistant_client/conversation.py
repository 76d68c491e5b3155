"""
A conversation opened by the manager: one stream session plus the transports
that take turns on it.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from .audio_transport import AudioTransport
from .errors import ProtocolError
from .stream import StreamSession
from .text_transport import TextTransport

if TYPE_CHECKING:
    from .conversation_manager import ConversationManager

log = logging.getLogger(__name__)


class Conversation:
    """Session handed out by ``ConversationManager.open_conversation``.

    Only one turn may be in flight at a time; the caller closes it.
    """

    def __init__(self, manager: "ConversationManager", session: StreamSession):
        self.manager = manager
        self.session = session
        self._active_turn: Optional[Any] = None
        self._turn_lock = threading.Lock()
        self._closed = False

    # shared state lives on the manager
    @property
    def backend(self):
        return self.manager.backend

    @property
    def audio_settings(self):
        return self.manager.audio_settings

    @property
    def dialog_state(self):
        return self.manager.dialog_state

    @property
    def device(self):
        return self.manager.device

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------ #
    def refresh(self) -> None:
        self.session.refresh()

    def audio_transport(self) -> AudioTransport:
        self._check_open()
        return AudioTransport(self)

    def text_transport(self) -> TextTransport:
        self._check_open()
        if not self.backend.supports_text:
            raise ProtocolError(f"API revision {self.backend.revision} has no text queries")
        return TextTransport(self)

    def _check_open(self) -> None:
        if self._closed:
            raise ProtocolError("Conversation is closed")

    # ------------------------------------------------------------------ #
    def begin_turn(self, transport: Any) -> None:
        with self._turn_lock:
            self._check_open()
            if self._active_turn is not None and self._active_turn is not transport:
                raise ProtocolError("Another turn is still in flight on this conversation")
            self._active_turn = transport

    def end_turn(self, transport: Any) -> None:
        with self._turn_lock:
            if self._active_turn is transport:
                self._active_turn = None

    @property
    def turn_in_flight(self) -> bool:
        with self._turn_lock:
            return self._active_turn is not None

    # ------------------------------------------------------------------ #
    def close(self) -> None:
        """Close the stream; blocked readers get a cancellation error"""
        with self._turn_lock:
            if self._closed:
                return
            self._closed = True
        self.session.close()
        self.manager.forget(self)
        log.info("Conversation closed")

    def __enter__(self) -> "Conversation":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
