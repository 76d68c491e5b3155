# assistant_client/__init__.py
"""
Assistant Client Package
"""

from .config import Config, setup_logging
from .audio import AudioSettings, AudioInEncoding, AudioOutEncoding
from .device import DeviceIdentity
from .state import DialogState, TranscriptionResult
from .auth import TokenProvider, CredentialsTokenProvider, OAuthTokenProvider
from .channel import ChannelFactory, GrpcChannelFactory
from .backends import ConversationBackend, create_backend
from .stream import StreamSession
from .audio_transport import AudioTransport, AudioTransportState
from .text_transport import TextTransport
from .conversation import Conversation
from .conversation_manager import ConversationManager, DEFAULT_AUDIO_TIMEOUT
from .errors import (
    AssistantError,
    AuthError,
    AssistantConnectionError,
    ProtocolError,
    StreamEndError,
    StreamCancelledError,
)

__all__ = [
    'Config',
    'setup_logging',
    'AudioSettings',
    'AudioInEncoding',
    'AudioOutEncoding',
    'DeviceIdentity',
    'DialogState',
    'TranscriptionResult',
    'TokenProvider',
    'CredentialsTokenProvider',
    'OAuthTokenProvider',
    'ChannelFactory',
    'GrpcChannelFactory',
    'ConversationBackend',
    'create_backend',
    'StreamSession',
    'AudioTransport',
    'AudioTransportState',
    'TextTransport',
    'Conversation',
    'ConversationManager',
    'DEFAULT_AUDIO_TIMEOUT',
    'AssistantError',
    'AuthError',
    'AssistantConnectionError',
    'ProtocolError',
    'StreamEndError',
    'StreamCancelledError',
]
