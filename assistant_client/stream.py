# assistant_client/stream.py
"""
Bidirectional stream handling.

A ``BidiStream`` wraps one gRPC streaming call. Outbound frames go through a
queue-backed request iterator that gRPC drains on its own thread, so sending
never waits on receiving and the two directions can be driven from different
threads. ``StreamSession`` owns at most one such stream at a time.
"""

import logging
import queue
import threading
import time
from typing import Any, Optional

import grpc

from .backends.base import ConversationBackend
from .errors import (
    AssistantConnectionError,
    AuthError,
    ProtocolError,
    StreamCancelledError,
    StreamEndError,
)
from .messages import AssistResponse

logger = logging.getLogger(__name__)

_END_OF_INPUT = object()

_CANCEL_CODES = (grpc.StatusCode.CANCELLED, grpc.StatusCode.DEADLINE_EXCEEDED)
_AUTH_CODES = (grpc.StatusCode.UNAUTHENTICATED, grpc.StatusCode.PERMISSION_DENIED)


def translate_rpc_error(exc: grpc.RpcError) -> Exception:
    """Map a gRPC failure onto the client's error taxonomy"""
    code = exc.code() if callable(getattr(exc, "code", None)) else None
    details = exc.details() if callable(getattr(exc, "details", None)) else str(exc)
    name = code.name if code is not None else "UNKNOWN"
    message = f"{name}: {details}"
    if code in _CANCEL_CODES:
        return StreamCancelledError(message)
    if code in _AUTH_CODES:
        return AuthError(message)
    return AssistantConnectionError(message)


class BidiStream:
    """One live bidirectional call"""

    def __init__(self, backend: ConversationBackend, channel: Any, timeout: Optional[float] = None):
        self._backend = backend
        self._requests: "queue.Queue[Any]" = queue.Queue()
        self._send_lock = threading.Lock()
        self._send_closed = False
        self._call = backend.open_stream(channel, self._request_iterator(), timeout=timeout)

    def _request_iterator(self):
        while True:
            request = self._requests.get()
            if request is _END_OF_INPUT:
                return
            yield request

    def _call_done(self) -> bool:
        done = getattr(self._call, "done", None)
        return bool(done and done())

    @property
    def send_closed(self) -> bool:
        return self._send_closed

    def send(self, request: Any) -> None:
        """Queue one frame; it's either accepted whole or an error is raised"""
        with self._send_lock:
            if self._send_closed:
                raise StreamEndError("Cannot send on a half-closed stream")
            if self._call_done():
                raise StreamEndError("Cannot send, the stream has already finished")
            self._requests.put(request)

    def close_send(self) -> None:
        """Half-close: tell the remote no more input is coming"""
        with self._send_lock:
            if self._send_closed:
                return
            self._send_closed = True
            self._requests.put(_END_OF_INPUT)

    def recv(self) -> Optional[AssistResponse]:
        """Block for the next response frame"""
        try:
            raw = next(self._call)
        except StopIteration:
            raise StreamEndError("Stream closed by the remote") from None
        except grpc.RpcError as exc:
            raise translate_rpc_error(exc) from exc
        return self._backend.parse_response(raw)

    def cancel(self) -> None:
        self.close_send()
        cancel = getattr(self._call, "cancel", None)
        if cancel is not None:
            cancel()


class StreamSession:
    """Holds the current stream of a conversation and replaces it on refresh"""

    def __init__(self, backend: ConversationBackend, channel: Any, deadline: Optional[float] = None):
        self.backend = backend
        self.channel = channel
        self.deadline = deadline  # time.monotonic() value, None = unlimited
        self.running = False
        self.streams_opened = 0
        self._stream: Optional[BidiStream] = None
        self._closed = False
        self._lock = threading.RLock()

    @property
    def closed(self) -> bool:
        return self._closed

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        left = self.deadline - time.monotonic()
        if left <= 0:
            raise StreamCancelledError("DEADLINE_EXCEEDED: conversation deadline has passed")
        return left

    def refresh(self) -> None:
        """Close the current stream (if any) and open a new one"""
        with self._lock:
            if self._closed:
                raise ProtocolError("Stream session is closed and cannot be reused")
            self._discard()
            timeout = self.remaining()
            try:
                self._stream = BidiStream(self.backend, self.channel, timeout=timeout)
            except grpc.RpcError as exc:
                raise translate_rpc_error(exc) from exc
            except ValueError as exc:
                # grpc raises ValueError when the channel has been closed
                raise AssistantConnectionError(f"Cannot open stream: {exc}") from exc
            self.running = True
            self.streams_opened += 1
            logger.debug(f"Opened stream #{self.streams_opened}")

    def _discard(self) -> None:
        stream, self._stream = self._stream, None
        self.running = False
        if stream is not None:
            stream.close_send()
            stream.cancel()

    def _current(self) -> BidiStream:
        with self._lock:
            if self._stream is None:
                if self._closed:
                    raise StreamCancelledError("CANCELLED: stream session closed")
                raise ProtocolError("No open stream, call refresh() first")
            return self._stream

    def send(self, request: Any) -> None:
        self._current().send(request)

    def receive(self) -> Optional[AssistResponse]:
        # Never hold the lock while blocked, close() must be able to cancel
        return self._current().recv()

    def close_send(self) -> None:
        with self._lock:
            if self._stream is not None:
                self._stream.close_send()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._discard()
        logger.debug("Stream session closed")
