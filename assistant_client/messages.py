# assistant_client/messages.py
"""
Protocol-neutral view of the messages exchanged with the service.

Backends translate the generated protobuf types of their API revision into
these records so transports never depend on a particular revision.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional


class EventType(IntEnum):
    UNSPECIFIED = 0
    END_OF_UTTERANCE = 1


class MicrophoneMode(IntEnum):
    UNSPECIFIED = 0
    CLOSE_MICROPHONE = 1
    DIALOG_FOLLOW_ON = 2


@dataclass(frozen=True)
class SpeechResult:
    transcript: str
    stability: float = 0.0


@dataclass(frozen=True)
class DialogStateOut:
    continuation_token: bytes = b""
    volume_pct: int = 0  # 0 = unchanged
    display_text: str = ""
    microphone_mode: MicrophoneMode = MicrophoneMode.UNSPECIFIED

    @property
    def is_final(self) -> bool:
        """False when the service expects a follow-on query without a hotword"""
        return self.microphone_mode != MicrophoneMode.DIALOG_FOLLOW_ON


@dataclass(frozen=True)
class AssistResponse:
    event_type: EventType = EventType.UNSPECIFIED
    speech_results: List[SpeechResult] = field(default_factory=list)
    audio_out: Optional[bytes] = None
    dialog_state_out: Optional[DialogStateOut] = None
    error: Optional[str] = None
