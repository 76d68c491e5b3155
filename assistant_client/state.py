# assistant_client/state.py
"""
Cross-turn dialog state and the running transcription of an audio turn
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from .messages import DialogStateOut, SpeechResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DialogSnapshot:
    """Immutable copy of the dialog state sent with one request"""
    continuation_token: bytes
    is_new_conversation: bool
    language_code: str


class DialogState:
    """Continuation token and "fresh conversation" flag carried between turns.

    The token returned by turn N is sent with turn N+1. ``is_new_conversation``
    stays True only until the first successful response of the conversation.
    """

    def __init__(
        self,
        language_code: str = "en-US",
        continuation_token: bytes = b"",
        is_new_conversation: bool = True,
    ):
        self._lock = threading.Lock()
        self.language_code = language_code
        self._continuation_token = bytes(continuation_token)
        self._is_new_conversation = is_new_conversation

    @property
    def continuation_token(self) -> bytes:
        with self._lock:
            return self._continuation_token

    @property
    def is_new_conversation(self) -> bool:
        with self._lock:
            return self._is_new_conversation

    def snapshot(self) -> DialogSnapshot:
        with self._lock:
            return DialogSnapshot(
                continuation_token=self._continuation_token,
                is_new_conversation=self._is_new_conversation,
                language_code=self.language_code,
            )

    def apply(self, dialog_state_out: DialogStateOut) -> None:
        """Record a successful response from the service"""
        with self._lock:
            # replaced on every response, an empty token included
            self._continuation_token = bytes(dialog_state_out.continuation_token)
            if self._is_new_conversation:
                logger.debug("First response received, conversation is no longer new")
            self._is_new_conversation = False

    def reset(self) -> None:
        """Forget the continuation token and start a new conversation"""
        with self._lock:
            self._continuation_token = b""
            self._is_new_conversation = True
        logger.info("Dialog state reset")

    def __repr__(self) -> str:
        snap = self.snapshot()
        return (
            f"DialogState(token={snap.continuation_token.hex() or '-'}, "
            f"new={snap.is_new_conversation}, language={snap.language_code})"
        )


class TranscriptionResult:
    """What the user has said so far in the current audio turn.

    ``stability`` estimates how likely the service is to keep its guess:
    0.0 unset, 0.1 unstable, 1.0 final. A final result is never overwritten.
    """

    def __init__(self, text: str = "", stability: float = 0.0):
        self.text = text
        self.stability = stability

    @property
    def is_final(self) -> bool:
        return self.stability >= 1.0

    def update(self, segments: Sequence[SpeechResult]) -> bool:
        if self.is_final or not segments:
            return False
        if len(segments) == 1:
            self.text = segments[0].transcript
        else:
            self.text = " ".join(s.transcript for s in segments if s.transcript)
        self.stability = float(segments[-1].stability)
        return True

    def copy(self) -> "TranscriptionResult":
        return TranscriptionResult(self.text, self.stability)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TranscriptionResult):
            return NotImplemented
        return (self.text, self.stability) == (other.text, other.stability)

    def __repr__(self) -> str:
        return f"TranscriptionResult(text={self.text!r}, stability={self.stability})"


def carry_over(previous: Optional[DialogState], language_code: str) -> DialogState:
    """Dialog state for a new manager: reuse the previous one or start fresh"""
    if previous is not None:
        return previous
    return DialogState(language_code=language_code)
