# assistant_client/audio_transport.py
"""
Audio turn over a single bidirectional stream.

One thread writes microphone chunks with ``write()`` while another pulls
synthesized audio with ``read()``; both work on the same stream. The turn is
over once the receive side sees the stream end (or fail), after which every
call reports that terminal error.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, Optional

from .errors import AssistantError, ProtocolError, StreamCancelledError, StreamEndError
from .messages import DialogStateOut, EventType
from .state import TranscriptionResult

if TYPE_CHECKING:
    from .conversation import Conversation

logger = logging.getLogger(__name__)


class AudioTransportState(Enum):
    IDLE = "idle"
    CONFIGURED = "configured"
    STREAMING = "streaming"
    FINISHED = "finished"


class AudioTransport:
    """Drives one audio query: config frame, audio in, audio and transcripts out"""

    def __init__(self, conversation: "Conversation"):
        self.conversation = conversation
        self.response_text = ""
        self.follow_on = False
        self.end_of_utterance = threading.Event()

        self._state = AudioTransportState.IDLE
        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._error: Optional[AssistantError] = None
        self._on_finished: Optional[Callable[["AudioTransport"], None]] = None
        self._transcript = TranscriptionResult()
        self._pending = b""

    # ------------------------------------------------------------------ #
    @property
    def state(self) -> AudioTransportState:
        with self._lock:
            return self._state

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    @property
    def error(self) -> Optional[AssistantError]:
        """The terminal error once finished (StreamEndError on a normal end)"""
        return self._error

    def transcript(self) -> TranscriptionResult:
        with self._lock:
            return self._transcript.copy()

    def _terminal_error(self) -> AssistantError:
        err = self._error or StreamEndError("Audio turn finished")
        return type(err)(*err.args)

    # ------------------------------------------------------------------ #
    def start(
        self,
        on_finished: Optional[Callable[["AudioTransport"], None]] = None,
        wait: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        """Open the stream and send the config frame.

        ``on_finished`` is called once when the turn completes. With
        ``wait=True`` this blocks until then, so reading and writing must
        happen on other threads.
        """
        with self._lock:
            if self._state is not AudioTransportState.IDLE:
                raise ProtocolError(f"Audio transport already started (state: {self._state.value})")
            self._on_finished = on_finished

        conversation = self.conversation
        conversation.begin_turn(self)
        try:
            conversation.session.refresh()
            request = conversation.backend.audio_config_request(
                conversation.audio_settings,
                conversation.device,
                conversation.dialog_state.snapshot(),
            )
        except AssistantError as exc:
            self._finish(exc)
            raise
        except Exception as exc:
            self._finish(ProtocolError(f"Failed to build audio config: {exc}"))
            raise

        try:
            conversation.session.send(request)
        except AssistantError as exc:
            error = ProtocolError(f"Failed to send audio config: {exc}")
            self._finish(error)
            raise error from exc

        with self._lock:
            self._state = AudioTransportState.CONFIGURED
        logger.info(f"🎙️ Audio turn configured ({conversation.audio_settings})")

        if wait:
            self.wait(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the turn is finished; False if ``timeout`` ran out first"""
        return self._finished.wait(timeout)

    # ------------------------------------------------------------------ #
    def write(self, chunk: bytes) -> int:
        """Send one chunk of input audio immediately; returns its length"""
        with self._lock:
            state = self._state
        if state is AudioTransportState.IDLE:
            raise ProtocolError("Call start() before writing audio")
        if state is AudioTransportState.FINISHED:
            raise self._terminal_error()
        if not chunk:
            return 0

        conversation = self.conversation
        try:
            conversation.session.send(conversation.backend.audio_in_request(chunk))
        except AssistantError:
            if self.finished:
                raise self._terminal_error() from None
            raise

        with self._lock:
            if self._state is AudioTransportState.CONFIGURED:
                self._state = AudioTransportState.STREAMING
        return len(chunk)

    def end_audio(self) -> None:
        """No more input audio; the service answers and then ends the stream"""
        logger.debug("End of audio input, half-closing stream")
        self.conversation.session.close_send()

    # ------------------------------------------------------------------ #
    def read(self) -> bytes:
        """Block until the next chunk of output audio and return it"""
        if self._pending:
            data, self._pending = self._pending, b""
            return data
        return self._receive_audio()

    def readinto(self, buffer) -> int:
        """Copy the next chunk into ``buffer``; bytes that don't fit are kept"""
        data = self._pending or self._receive_audio()
        n = min(len(buffer), len(data))
        buffer[:n] = data[:n]
        self._pending = data[n:]
        return n

    def __iter__(self) -> Iterator[bytes]:
        """Output audio chunks until the service ends the turn"""
        while True:
            try:
                yield self.read()
            except StreamCancelledError:
                raise
            except StreamEndError:
                return

    def _receive_audio(self) -> bytes:
        with self._lock:
            state = self._state
        if state is AudioTransportState.IDLE:
            raise ProtocolError("Call start() before reading audio")
        if state is AudioTransportState.FINISHED:
            raise self._terminal_error()

        session = self.conversation.session
        while True:
            try:
                response = session.receive()
            except AssistantError as exc:
                self._finish(exc)
                raise

            if response is None:
                continue

            if response.error:
                error = ProtocolError(f"Service reported an error: {response.error}")
                self._finish(error)
                raise error

            if response.event_type is EventType.END_OF_UTTERANCE and not self.end_of_utterance.is_set():
                logger.debug("End of utterance detected by the service")
                self.end_of_utterance.set()

            if response.dialog_state_out is not None:
                self._apply_dialog_state(response.dialog_state_out)

            if response.audio_out:
                return response.audio_out

            with self._lock:
                if self._transcript.update(response.speech_results):
                    logger.debug(f"Transcript: {self._transcript}")

    def _apply_dialog_state(self, dialog_state_out: DialogStateOut) -> None:
        conversation = self.conversation
        conversation.dialog_state.apply(dialog_state_out)
        conversation.audio_settings.apply_remote_volume(dialog_state_out.volume_pct)
        if dialog_state_out.display_text:
            self.response_text = dialog_state_out.display_text
        self.follow_on = not dialog_state_out.is_final

    def _finish(self, error: AssistantError) -> None:
        with self._lock:
            if self._state is AudioTransportState.FINISHED:
                return
            self._state = AudioTransportState.FINISHED
            self._error = error
            callback = self._on_finished

        if isinstance(error, StreamCancelledError) or not isinstance(error, StreamEndError):
            logger.warning(f"Audio turn ended: {error}")
        else:
            logger.info("✅ Audio turn complete")

        self._finished.set()
        self.conversation.end_turn(self)
        if callback is not None:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"on_finished callback failed: {e}")
