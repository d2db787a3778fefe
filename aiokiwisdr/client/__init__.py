"""Public interface for the KiwiSDR client package."""

from .client import KiwiClient
from .connector import ClientIdAllocator, DialLimiter, KiwiConnector
from .stream import AudioStream

__all__ = [
    "AudioStream",
    "ClientIdAllocator",
    "DialLimiter",
    "KiwiClient",
    "KiwiConnector",
]
