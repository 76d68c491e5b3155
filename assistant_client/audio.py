# assistant_client/audio.py
"""
Audio settings shared by every transport of a conversation manager
"""

import logging
import threading
from enum import IntEnum
from typing import Union

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 16000
DEFAULT_CHUNK_SECONDS = 0.25


class AudioInEncoding(IntEnum):
    """Input encodings understood by the service (passed through, never decoded)"""
    ENCODING_UNSPECIFIED = 0
    LINEAR16 = 1  # signed 16-bit little-endian PCM
    FLAC = 2


class AudioOutEncoding(IntEnum):
    """Output encodings the service can synthesize"""
    ENCODING_UNSPECIFIED = 0
    LINEAR16 = 1
    MP3 = 2
    OPUS_IN_OGG = 3


def parse_encoding(value: Union[str, int], enum_cls):
    """Accept an enum member name ("LINEAR16") or its number ("1", 1)"""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, int):
        return enum_cls(value)
    text = str(value).strip()
    if text.isdigit():
        return enum_cls(int(text))
    try:
        return enum_cls[text.upper()]
    except KeyError:
        raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}") from None


class AudioSettings:
    """Encoding, sample rates and output volume of a conversation.

    Everything is fixed at construction except the output volume, which the
    service may change during a turn ("turn the volume down").
    """

    __slots__ = (
        "_in_encoding",
        "_in_sample_rate_hz",
        "_out_encoding",
        "_out_sample_rate_hz",
        "_out_volume_pct",
        "_lock",
    )

    def __init__(
        self,
        in_encoding: AudioInEncoding = AudioInEncoding.LINEAR16,
        in_sample_rate_hz: int = DEFAULT_SAMPLE_RATE,
        out_encoding: AudioOutEncoding = AudioOutEncoding.LINEAR16,
        out_sample_rate_hz: int = DEFAULT_SAMPLE_RATE,
        out_volume_pct: int = 100,
    ):
        if in_sample_rate_hz <= 0 or out_sample_rate_hz <= 0:
            raise ValueError("Sample rates must be positive")
        self._in_encoding = AudioInEncoding(in_encoding)
        self._in_sample_rate_hz = int(in_sample_rate_hz)
        self._out_encoding = AudioOutEncoding(out_encoding)
        self._out_sample_rate_hz = int(out_sample_rate_hz)
        self._lock = threading.Lock()
        self._out_volume_pct = self._check_volume(out_volume_pct)

    @classmethod
    def default(cls) -> "AudioSettings":
        return cls()

    @staticmethod
    def _check_volume(value: int) -> int:
        value = int(value)
        if not 0 <= value <= 100:
            raise ValueError(f"Volume must be within 0-100, got {value}")
        return value

    @property
    def in_encoding(self) -> AudioInEncoding:
        return self._in_encoding

    @property
    def in_sample_rate_hz(self) -> int:
        return self._in_sample_rate_hz

    @property
    def out_encoding(self) -> AudioOutEncoding:
        return self._out_encoding

    @property
    def out_sample_rate_hz(self) -> int:
        return self._out_sample_rate_hz

    @property
    def out_volume_pct(self) -> int:
        with self._lock:
            return self._out_volume_pct

    @out_volume_pct.setter
    def out_volume_pct(self, value: int):
        value = self._check_volume(value)
        with self._lock:
            if value != self._out_volume_pct:
                logger.info(f"🔊 Output volume {self._out_volume_pct}% → {value}%")
            self._out_volume_pct = value

    def apply_remote_volume(self, value: int) -> bool:
        """Apply a volume reported by the service; 0 means "unchanged".

        Returns True when the stored volume was updated.
        """
        if not value:
            return False
        self.out_volume_pct = max(0, min(100, int(value)))
        return True

    def chunk_size(self, duration: float = DEFAULT_CHUNK_SECONDS) -> int:
        """Bytes of 16-bit mono input audio covering ``duration`` seconds.

        Only a pacing hint for callers; the transport sends whatever it's given.
        """
        if duration <= 0:
            raise ValueError("Chunk duration must be positive")
        samples = max(1, int(self._in_sample_rate_hz * duration))
        return samples * 2

    def __repr__(self) -> str:
        return (
            f"AudioSettings(in={self._in_encoding.name}@{self._in_sample_rate_hz}Hz, "
            f"out={self._out_encoding.name}@{self._out_sample_rate_hz}Hz, "
            f"volume={self.out_volume_pct}%)"
        )
