# assistant_client/backends/base.py
"""
Base interface for protocol revisions of the embedded assistant API
"""

from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional

from ..audio import AudioSettings
from ..device import DeviceIdentity
from ..messages import AssistResponse
from ..state import DialogSnapshot


class ConversationBackend(ABC):
    """Builds request frames and reads response frames for one API revision"""

    revision: str = ""
    supports_text: bool = False

    @abstractmethod
    def open_stream(
        self,
        channel: Any,
        requests: Iterator[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """Start the bidirectional RPC and return the call (an iterator of raw responses)"""
        pass

    @abstractmethod
    def audio_config_request(
        self,
        settings: AudioSettings,
        device: DeviceIdentity,
        dialog: DialogSnapshot,
    ) -> Any:
        """Config frame opening an audio turn"""
        pass

    @abstractmethod
    def audio_in_request(self, chunk: bytes) -> Any:
        """Data frame carrying one chunk of input audio"""
        pass

    @abstractmethod
    def text_query_request(
        self,
        text: str,
        settings: AudioSettings,
        device: DeviceIdentity,
        dialog: DialogSnapshot,
    ) -> Any:
        """Config frame carrying a text query"""
        pass

    @abstractmethod
    def parse_response(self, raw: Any) -> Optional[AssistResponse]:
        """Translate a raw response; None stays None"""
        pass
