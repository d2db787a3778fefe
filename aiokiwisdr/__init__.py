"""Async client for KiwiSDR software-defined-radio servers."""

from .adpcm import ImaAdpcmDecoder
from .audio import AudioPacketDecoder
from .client import AudioStream, ClientIdAllocator, DialLimiter, KiwiClient, KiwiConnector
from .errors import (
    BadPasswordError,
    ConfigDecodeError,
    DecodeError,
    FrameTooShortError,
    KiwiError,
    ProtocolError,
    ServerDownError,
    ServerTooBusyError,
    ShortAudioPacketError,
    TransportError,
)
from .models import AudioPacket, ConnectionKind, Frame, Mode, SessionConfig, Tuning

__all__ = [
    "AudioPacket",
    "AudioPacketDecoder",
    "AudioStream",
    "BadPasswordError",
    "ClientIdAllocator",
    "ConfigDecodeError",
    "ConnectionKind",
    "DecodeError",
    "DialLimiter",
    "Frame",
    "FrameTooShortError",
    "ImaAdpcmDecoder",
    "KiwiClient",
    "KiwiConnector",
    "KiwiError",
    "Mode",
    "ProtocolError",
    "ServerDownError",
    "ServerTooBusyError",
    "SessionConfig",
    "ShortAudioPacketError",
    "TransportError",
    "Tuning",
]
