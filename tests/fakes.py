"""
Test doubles standing in for the network: a scripted streaming call, a
backend that passes neutral messages through, a channel factory and a
token provider.
"""

import queue
import threading

import grpc

from assistant_client.audio import AudioSettings
from assistant_client.auth import TokenProvider
from assistant_client.backends.base import ConversationBackend
from assistant_client.channel import ChannelFactory
from assistant_client.conversation_manager import ConversationManager
from assistant_client.device import DeviceIdentity
from assistant_client.messages import (
    AssistResponse,
    DialogStateOut,
    EventType,
    MicrophoneMode,
    SpeechResult,
)

STREAM_END = object()  # script item: the remote ends the stream


class FakeRpcError(grpc.RpcError):
    def __init__(self, code, details=""):
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self):
        return self._code

    def details(self):
        return self._details


class FakeCall:
    """Scripted bidirectional call.

    Requests are drained on a background thread the way gRPC does it.
    Responses are handed out from ``script`` once the first request arrived;
    more can be pushed later with ``push()``.
    """

    def __init__(self, requests, script, timeout=None):
        self.timeout = timeout
        self.requests = []
        self.half_closed = False
        self.cancelled = False
        self._cond = threading.Condition()
        self._script = queue.Queue()
        self._terminal = None
        for item in script:
            self._script.put(item)
        self._drain = threading.Thread(target=self._consume, args=(requests,), daemon=True)
        self._drain.start()

    def _consume(self, requests):
        for request in requests:
            with self._cond:
                self.requests.append(request)
                self._cond.notify_all()
        with self._cond:
            self.half_closed = True
            self._cond.notify_all()

    def wait_for_requests(self, count, timeout=2.0):
        with self._cond:
            return self._cond.wait_for(lambda: len(self.requests) >= count, timeout)

    def wait_for_half_close(self, timeout=2.0):
        with self._cond:
            return self._cond.wait_for(lambda: self.half_closed, timeout)

    def push(self, item):
        self._script.put(item)

    def __iter__(self):
        return self

    def __next__(self):
        if self._terminal is not None:
            return self._raise(self._terminal)
        self.wait_for_requests(1)
        try:
            item = self._script.get(timeout=5)
        except queue.Empty:
            raise AssertionError("FakeCall ran out of scripted responses") from None
        if item is STREAM_END or isinstance(item, grpc.RpcError):
            self._terminal = item
            return self._raise(item)
        return item

    @staticmethod
    def _raise(item):
        if item is STREAM_END:
            raise StopIteration
        raise item

    def done(self):
        return self._terminal is not None

    def cancel(self):
        self.cancelled = True
        if self._terminal is None:
            self._script.put(FakeRpcError(grpc.StatusCode.CANCELLED, "Locally cancelled"))


class FakeBackend(ConversationBackend):
    """Requests are plain dicts, responses are already ``AssistResponse``"""

    revision = "fake"
    supports_text = True

    def __init__(self, *scripts, supports_text=True):
        self.scripts = list(scripts)
        self.calls = []
        self.live_at_open = []
        self.supports_text = supports_text

    def open_stream(self, channel, requests, timeout=None):
        self.live_at_open.append(sum(1 for c in self.calls if not (c.cancelled or c.done())))
        script = self.scripts.pop(0) if self.scripts else []
        call = FakeCall(requests, script, timeout=timeout)
        self.calls.append(call)
        return call

    def audio_config_request(self, settings, device, dialog):
        return {
            "type": "audio_config",
            "in_encoding": settings.in_encoding,
            "in_rate": settings.in_sample_rate_hz,
            "out_encoding": settings.out_encoding,
            "out_rate": settings.out_sample_rate_hz,
            "volume": settings.out_volume_pct,
            "device": device,
            "dialog": dialog,
        }

    def audio_in_request(self, chunk):
        return {"type": "audio_in", "data": bytes(chunk)}

    def text_query_request(self, text, settings, device, dialog):
        return {
            "type": "text_query",
            "text": text,
            "volume": settings.out_volume_pct,
            "device": device,
            "dialog": dialog,
        }

    def parse_response(self, raw):
        return raw


class FakeChannel:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeChannelFactory(ChannelFactory):
    def __init__(self, error=None):
        self.error = error
        self.dials = []
        self.channels = []

    def dial(self, token_provider, endpoint, scopes):
        self.dials.append((endpoint, tuple(scopes)))
        if self.error is not None:
            raise self.error
        channel = FakeChannel()
        self.channels.append(channel)
        return channel


class FakeTokenProvider(TokenProvider):
    def __init__(self, url="", error=None):
        self.url = url
        self.error = error
        self.closed = 0

    def auth_url(self):
        return self.url

    def exchange(self, code):
        self.url = ""
        return object()

    def current_token(self):
        return object()

    def last_error(self):
        return self.error

    def close(self):
        self.closed += 1


# ---------------------------------------------------------------------- #
def dialog_out(text="", token=b"", volume=0, mode=MicrophoneMode.CLOSE_MICROPHONE):
    return AssistResponse(
        dialog_state_out=DialogStateOut(
            continuation_token=token,
            volume_pct=volume,
            display_text=text,
            microphone_mode=mode,
        )
    )


def speech(*segments):
    return AssistResponse(speech_results=[SpeechResult(t, s) for t, s in segments])


def audio(data):
    return AssistResponse(audio_out=data)


def end_of_utterance():
    return AssistResponse(event_type=EventType.END_OF_UTTERANCE)


DEVICE = DeviceIdentity("device-0001", "assistant-model")


def make_manager(*scripts, backend=None, **kwargs):
    backend = backend or FakeBackend(*scripts)
    factory = kwargs.pop("channel_factory", None) or FakeChannelFactory()
    provider = kwargs.pop("token_provider", None) or FakeTokenProvider()
    manager = ConversationManager(
        provider,
        DEVICE,
        kwargs.pop("audio_settings", None) or AudioSettings(),
        backend=backend,
        channel_factory=factory,
        **kwargs,
    )
    return manager, backend, factory, provider
