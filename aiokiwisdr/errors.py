"""Error types raised by the KiwiSDR client."""

from __future__ import annotations


class KiwiError(Exception):
    """Base class for all KiwiSDR client errors."""


class TransportError(KiwiError):
    """Raised when the websocket cannot be opened, read or written."""


class ProtocolError(KiwiError):
    """Raised when the server sends something that ends the session."""


class FrameTooShortError(ProtocolError):
    """Raised when an inbound frame is shorter than its 3 byte tag."""


class ServerTooBusyError(ProtocolError):
    """The server has no free receiver channel."""


class BadPasswordError(ProtocolError):
    """The server rejected the password."""


class ServerDownError(ProtocolError):
    """The server reports that it is down."""


class DecodeError(KiwiError):
    """Raised when a single frame cannot be decoded; the session stays usable."""


class ShortAudioPacketError(DecodeError):
    """Raised when an SND payload is shorter than the audio header."""


class ConfigDecodeError(KiwiError):
    """Raised when a load_cfg value is not percent-encoded JSON."""


__all__ = [
    "BadPasswordError",
    "ConfigDecodeError",
    "DecodeError",
    "FrameTooShortError",
    "KiwiError",
    "ProtocolError",
    "ServerDownError",
    "ServerTooBusyError",
    "ShortAudioPacketError",
    "TransportError",
]
