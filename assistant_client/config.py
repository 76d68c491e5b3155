# assistant_client/config.py
"""
Configuration management for the assistant client
"""

import os
import sys
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

from .audio import AudioInEncoding, AudioOutEncoding, AudioSettings, parse_encoding
from .auth import ASSISTANT_SCOPE
from .channel import DEFAULT_ENDPOINT
from .device import DeviceIdentity

# Load environment variables
load_dotenv()


def _optional_float(value: Optional[str]) -> Optional[float]:
    """Empty or non-positive means "no limit" """
    if value is None or not value.strip():
        return None
    number = float(value)
    return number if number > 0 else None


@dataclass
class Config:
    """Configuration settings for the assistant client"""
    # === SERVICE ===
    api_endpoint: str
    api_scope: str
    api_revision: str
    language_code: str

    # === DEVICE ===
    device_id: str
    device_model_id: str

    # === AUDIO CONFIGURATION ===
    audio_in_encoding: AudioInEncoding
    audio_in_sample_rate: int
    audio_out_encoding: AudioOutEncoding
    audio_out_sample_rate: int
    audio_out_volume: int
    audio_chunk_seconds: float

    # === DEADLINES (seconds, None = unlimited) ===
    audio_timeout: Optional[float]
    text_timeout: Optional[float]
    connect_timeout: Optional[float]

    # === OAUTH ===
    oauth_client_secrets: str
    oauth_callback_host: str
    oauth_callback_port: int

    # === LOGGING CONFIGURATION ===
    log_level: str
    log_file: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables"""
        return cls(
            # === SERVICE ===
            api_endpoint=os.getenv("ASSISTANT_API_ENDPOINT", DEFAULT_ENDPOINT),
            api_scope=os.getenv("ASSISTANT_API_SCOPE", ASSISTANT_SCOPE),
            api_revision=os.getenv("ASSISTANT_API_REVISION", "v1alpha2").lower(),
            language_code=os.getenv("LANGUAGE_CODE", "en-US"),

            # === DEVICE ===
            device_id=os.getenv("DEVICE_ID", ""),
            device_model_id=os.getenv("DEVICE_MODEL_ID", ""),

            # === AUDIO CONFIGURATION ===
            audio_in_encoding=parse_encoding(os.getenv("AUDIO_IN_ENCODING", "LINEAR16"), AudioInEncoding),
            audio_in_sample_rate=int(os.getenv("AUDIO_IN_SAMPLE_RATE", "16000")),
            audio_out_encoding=parse_encoding(os.getenv("AUDIO_OUT_ENCODING", "LINEAR16"), AudioOutEncoding),
            audio_out_sample_rate=int(os.getenv("AUDIO_OUT_SAMPLE_RATE", "16000")),
            audio_out_volume=int(os.getenv("AUDIO_OUT_VOLUME", "100")),
            # ~250ms chunks keep audio flowing in real time
            audio_chunk_seconds=float(os.getenv("AUDIO_CHUNK_SECONDS", "0.25")),

            # === DEADLINES ===
            audio_timeout=_optional_float(os.getenv("AUDIO_TIMEOUT", "240")),
            text_timeout=_optional_float(os.getenv("TEXT_TIMEOUT", "")),
            connect_timeout=_optional_float(os.getenv("CONNECT_TIMEOUT", "10")),

            # === OAUTH ===
            oauth_client_secrets=os.getenv("OAUTH_CLIENT_SECRETS", "client_secret.json"),
            oauth_callback_host=os.getenv("OAUTH_CALLBACK_HOST", "localhost"),
            oauth_callback_port=int(os.getenv("OAUTH_CALLBACK_PORT", "8080")),

            # === LOGGING CONFIGURATION ===
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", ""),
        )

    def audio_settings(self) -> AudioSettings:
        return AudioSettings(
            in_encoding=self.audio_in_encoding,
            in_sample_rate_hz=self.audio_in_sample_rate,
            out_encoding=self.audio_out_encoding,
            out_sample_rate_hz=self.audio_out_sample_rate,
            out_volume_pct=self.audio_out_volume,
        )

    def device(self) -> DeviceIdentity:
        return DeviceIdentity(self.device_id, self.device_model_id)

    def chunk_bytes(self) -> int:
        """Size of one paced input chunk for the configured sample rate"""
        return self.audio_settings().chunk_size(self.audio_chunk_seconds)

    def timeout_for(self, mode: str) -> Optional[float]:
        """Conversation deadline for "audio" or "text" turns"""
        if mode == "audio":
            return self.audio_timeout
        if mode == "text":
            return self.text_timeout
        raise ValueError(f"Unknown conversation mode: {mode!r}")


def setup_logging(config: Config):
    """Configure console logging, plus a UTF-8 log file when LOG_FILE is set"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True  # Reconfigure even if already configured
    )

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("grpc").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)
    logging.getLogger("oauthlib").setLevel(logging.WARNING)
    logging.getLogger("requests_oauthlib").setLevel(logging.WARNING)
