# assistant_client/text_transport.py
"""
Text queries: one request, one answer, on a fresh stream every time
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .errors import AssistantError, ProtocolError, StreamCancelledError, StreamEndError
from .messages import DialogStateOut

if TYPE_CHECKING:
    from .conversation import Conversation

logger = logging.getLogger(__name__)


class TextTransport:
    """Sends text queries and returns the service's display text"""

    def __init__(self, conversation: "Conversation"):
        self.conversation = conversation
        self.last_query: Optional[str] = None
        self.last_response: Optional[str] = None

    def query(self, text: str) -> str:
        """Ask the assistant something and return its answer as text.

        The service sometimes ends a stream right after the request without
        answering; that is retried once on a new stream. A second stream end,
        or one after any response arrived, raises ``ProtocolError``.
        """
        conversation = self.conversation
        conversation.begin_turn(self)
        try:
            self.last_query = text
            response = self._exchange(text)
        finally:
            conversation.end_turn(self)
        self.last_response = response
        return response

    def _send(self, text: str) -> None:
        conversation = self.conversation
        # The service ends the stream after each answer, never reuse one
        conversation.session.refresh()
        request = conversation.backend.text_query_request(
            text,
            conversation.audio_settings,
            conversation.device,
            conversation.dialog_state.snapshot(),
        )
        try:
            conversation.session.send(request)
        except StreamCancelledError:
            raise
        except AssistantError as exc:
            raise ProtocolError(f"Error sending request: {exc}") from exc

    def _exchange(self, text: str) -> str:
        session = self.conversation.session
        self._send(text)
        retried = False
        received_any = False

        while True:
            try:
                response = session.receive()
            except StreamCancelledError:
                raise
            except StreamEndError as exc:
                if retried:
                    raise ProtocolError("No response after retry") from exc
                # only a stream that ended before its first response is retried
                if received_any:
                    raise ProtocolError("Stream ended before the dialog state") from exc
                retried = True
                logger.warning("Stream ended without a response, re-sending query once")
                self._send(text)
                continue

            received_any = True
            if response is None:
                raise ProtocolError("Empty response")

            if response.error:
                raise ProtocolError(f"Service reported an error: {response.error}")

            if response.dialog_state_out is not None:
                return self._complete(response.dialog_state_out)

    def _complete(self, dialog_state_out: DialogStateOut) -> str:
        conversation = self.conversation
        conversation.dialog_state.apply(dialog_state_out)
        conversation.audio_settings.apply_remote_volume(dialog_state_out.volume_pct)
        logger.info(f"💬 Response: {dialog_state_out.display_text[:100]}")
        return dialog_state_out.display_text
