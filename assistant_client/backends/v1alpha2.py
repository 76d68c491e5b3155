# assistant_client/backends/v1alpha2.py
"""
Backend for the v1alpha2 ``Assist`` RPC (text and audio queries)
"""

import logging
from typing import Any, Iterator, Optional

from ..audio import AudioSettings
from ..device import DeviceIdentity
from ..messages import AssistResponse, DialogStateOut, EventType, MicrophoneMode, SpeechResult
from ..state import DialogSnapshot
from .base import ConversationBackend
from .util import coerce_enum

logger = logging.getLogger(__name__)


class V1Alpha2Backend(ConversationBackend):
    """Embedded assistant API, revision v1alpha2"""

    revision = "v1alpha2"
    supports_text = True

    def __init__(self, pb2=None, pb2_grpc=None):
        # Generated modules are imported on first use unless injected
        self._pb2 = pb2
        self._pb2_grpc = pb2_grpc

    def _modules(self):
        if self._pb2 is None or self._pb2_grpc is None:
            from google.assistant.embedded.v1alpha2 import (
                embedded_assistant_pb2,
                embedded_assistant_pb2_grpc,
            )
            self._pb2 = self._pb2 or embedded_assistant_pb2
            self._pb2_grpc = self._pb2_grpc or embedded_assistant_pb2_grpc
        return self._pb2, self._pb2_grpc

    # ------------------------------------------------------------------ #
    def open_stream(self, channel: Any, requests: Iterator[Any], timeout: Optional[float] = None) -> Any:
        _, pb2_grpc = self._modules()
        stub = pb2_grpc.EmbeddedAssistantStub(channel)
        logger.debug(f"Opening Assist stream (timeout={timeout})")
        return stub.Assist(requests, timeout=timeout)

    def _audio_out_config(self, settings: AudioSettings):
        pb2, _ = self._modules()
        return pb2.AudioOutConfig(
            encoding=int(settings.out_encoding),
            sample_rate_hertz=settings.out_sample_rate_hz,
            volume_percentage=settings.out_volume_pct,
        )

    def _device_config(self, device: DeviceIdentity):
        pb2, _ = self._modules()
        return pb2.DeviceConfig(
            device_id=device.device_id,
            device_model_id=device.device_model_id,
        )

    def _dialog_state_in(self, dialog: DialogSnapshot):
        pb2, _ = self._modules()
        return pb2.DialogStateIn(
            conversation_state=dialog.continuation_token,
            language_code=dialog.language_code,
            is_new_conversation=dialog.is_new_conversation,
        )

    def audio_config_request(self, settings: AudioSettings, device: DeviceIdentity, dialog: DialogSnapshot) -> Any:
        pb2, _ = self._modules()
        config = pb2.AssistConfig(
            audio_in_config=pb2.AudioInConfig(
                encoding=int(settings.in_encoding),
                sample_rate_hertz=settings.in_sample_rate_hz,
            ),
            audio_out_config=self._audio_out_config(settings),
            device_config=self._device_config(device),
            dialog_state_in=self._dialog_state_in(dialog),
        )
        return pb2.AssistRequest(config=config)

    def audio_in_request(self, chunk: bytes) -> Any:
        pb2, _ = self._modules()
        return pb2.AssistRequest(audio_in=bytes(chunk))

    def text_query_request(self, text: str, settings: AudioSettings, device: DeviceIdentity, dialog: DialogSnapshot) -> Any:
        pb2, _ = self._modules()
        config = pb2.AssistConfig(
            text_query=text,
            audio_out_config=self._audio_out_config(settings),
            device_config=self._device_config(device),
            dialog_state_in=self._dialog_state_in(dialog),
        )
        return pb2.AssistRequest(config=config)

    # ------------------------------------------------------------------ #
    def parse_response(self, raw: Any) -> Optional[AssistResponse]:
        if raw is None:
            return None

        speech_results = [
            SpeechResult(transcript=r.transcript, stability=float(r.stability))
            for r in raw.speech_results
        ]

        audio_out = None
        if raw.HasField("audio_out") and raw.audio_out.audio_data:
            audio_out = bytes(raw.audio_out.audio_data)

        dialog_state_out = None
        if raw.HasField("dialog_state_out"):
            d = raw.dialog_state_out
            dialog_state_out = DialogStateOut(
                continuation_token=bytes(d.conversation_state),
                volume_pct=int(d.volume_percentage),
                display_text=d.supplemental_display_text,
                microphone_mode=coerce_enum(MicrophoneMode, d.microphone_mode),
            )

        return AssistResponse(
            event_type=coerce_enum(EventType, raw.event_type),
            speech_results=speech_results,
            audio_out=audio_out,
            dialog_state_out=dialog_state_out,
        )
