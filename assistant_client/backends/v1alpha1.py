# assistant_client/backends/v1alpha1.py
"""
Backend for the v1alpha1 ``Converse`` RPC.

The first revision only understands audio queries; it has no device config,
no language code and reports transcripts in a single final ``result``.
"""

import logging
from typing import Any, Iterator, Optional

from ..audio import AudioSettings
from ..device import DeviceIdentity
from ..errors import ProtocolError
from ..messages import AssistResponse, DialogStateOut, EventType, MicrophoneMode, SpeechResult
from ..state import DialogSnapshot
from .base import ConversationBackend
from .util import coerce_enum

logger = logging.getLogger(__name__)


class V1Alpha1Backend(ConversationBackend):
    """Embedded assistant API, revision v1alpha1 (audio only)"""

    revision = "v1alpha1"
    supports_text = False

    def __init__(self, pb2=None, pb2_grpc=None):
        self._pb2 = pb2
        self._pb2_grpc = pb2_grpc

    def _modules(self):
        if self._pb2 is None or self._pb2_grpc is None:
            from google.assistant.embedded.v1alpha1 import (
                embedded_assistant_pb2,
                embedded_assistant_pb2_grpc,
            )
            self._pb2 = self._pb2 or embedded_assistant_pb2
            self._pb2_grpc = self._pb2_grpc or embedded_assistant_pb2_grpc
        return self._pb2, self._pb2_grpc

    def open_stream(self, channel: Any, requests: Iterator[Any], timeout: Optional[float] = None) -> Any:
        _, pb2_grpc = self._modules()
        stub = pb2_grpc.EmbeddedAssistantStub(channel)
        logger.debug(f"Opening Converse stream (timeout={timeout})")
        return stub.Converse(requests, timeout=timeout)

    def audio_config_request(self, settings: AudioSettings, device: DeviceIdentity, dialog: DialogSnapshot) -> Any:
        pb2, _ = self._modules()
        fields = dict(
            audio_in_config=pb2.AudioInConfig(
                encoding=int(settings.in_encoding),
                sample_rate_hertz=settings.in_sample_rate_hz,
            ),
            audio_out_config=pb2.AudioOutConfig(
                encoding=int(settings.out_encoding),
                sample_rate_hertz=settings.out_sample_rate_hz,
                volume_percentage=settings.out_volume_pct,
            ),
        )
        # Only continuing conversations carry a converse state
        if dialog.continuation_token:
            fields["converse_state"] = pb2.ConverseState(conversation_state=dialog.continuation_token)
        config = pb2.ConverseConfig(**fields)
        return pb2.ConverseRequest(config=config)

    def audio_in_request(self, chunk: bytes) -> Any:
        pb2, _ = self._modules()
        return pb2.ConverseRequest(audio_in=bytes(chunk))

    def text_query_request(self, text: str, settings: AudioSettings, device: DeviceIdentity, dialog: DialogSnapshot) -> Any:
        raise ProtocolError("The v1alpha1 API does not support text queries")

    def parse_response(self, raw: Any) -> Optional[AssistResponse]:
        if raw is None:
            return None

        kind = raw.WhichOneof("converse_response")
        if kind == "error":
            return AssistResponse(error=f"{raw.error.code}: {raw.error.message}")
        if kind == "event_type":
            return AssistResponse(event_type=coerce_enum(EventType, raw.event_type))
        if kind == "audio_out":
            data = bytes(raw.audio_out.audio_data)
            return AssistResponse(audio_out=data or None)
        if kind == "result":
            result = raw.result
            speech_results = []
            if result.spoken_request_text:
                speech_results.append(SpeechResult(result.spoken_request_text, 1.0))
            return AssistResponse(
                speech_results=speech_results,
                dialog_state_out=DialogStateOut(
                    continuation_token=bytes(result.conversation_state),
                    volume_pct=int(result.volume_percentage),
                    display_text=result.spoken_response_text,
                    microphone_mode=coerce_enum(MicrophoneMode, result.microphone_mode),
                ),
            )
        return AssistResponse()
