# assistant_client/errors.py
"""
Exception taxonomy for the assistant client
"""


class AssistantError(Exception):
    """Base class for every error raised by the client"""


class AuthError(AssistantError):
    """Token missing, invalid, or the authorization code exchange failed"""


class AssistantConnectionError(AssistantError, ConnectionError):
    """The channel could not be dialed or the transport failed mid-stream"""


class ProtocolError(AssistantError):
    """Unexpected message sequence, empty response or exhausted retry"""


class StreamEndError(AssistantError):
    """The remote closed the stream.

    Audio turns treat this as "turn complete". Text queries retry once on it.
    """


class StreamCancelledError(StreamEndError):
    """The stream was cancelled locally (deadline exceeded or close())"""
