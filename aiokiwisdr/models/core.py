"""
Core models for the KiwiSDR client.

This module contains the session configuration and tuning supplied by the caller,
and the values produced while a session runs: inbound frames and decoded audio
packets.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin

from aiokiwisdr.errors import KiwiError

from .types import NONE, ConnectionKind, Mode

DEFAULT_MAN_GAIN = 50
"""Manual gain used when the configuration leaves it at zero."""


@dataclass(frozen=True)
class SessionConfig(DataClassORJSONMixin):
    """Connection settings, fixed for the life of a session."""

    server_host: str
    """Server address as host:port."""
    password: str = ""
    """Server password, empty for public receivers."""
    kind: ConnectionKind = ConnectionKind.SND
    """Kind of stream to open."""
    identify: str = ""
    """Identity shown to the server operator."""
    compress: bool = False
    """Request IMA ADPCM compressed audio."""
    no_waterfall: bool = True
    """The session does not want waterfall data."""
    agc: bool = True
    """Enable automatic gain control in the receiver."""
    man_gain: int = 0
    """Manual receiver gain used when AGC is off; 0 selects the default."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if not self.server_host:
            raise ValueError("server_host must not be empty")
        if self.man_gain < 0:
            raise ValueError(f"man_gain must not be negative, got {self.man_gain}")

    @property
    def effective_man_gain(self) -> int:
        """Return the manual gain sent to the server."""
        return self.man_gain or DEFAULT_MAN_GAIN

    class Config(BaseConfig):
        """Config for parsing configuration files."""

        omit_default = True


@dataclass(frozen=True)
class Tuning(DataClassORJSONMixin):
    """Frequency and mode to tune the receiver to."""

    freq: int = 0
    """Frequency in Hz; 0 leaves the receiver where it is."""
    mode: Mode = NONE
    """Demodulation mode and passband."""

    @property
    def dial_khz(self) -> float:
        """Return the frequency sent to the server, in kHz with the mode offset applied."""
        return (self.freq + self.mode.offset) / 1000.0


@dataclass(frozen=True, slots=True)
class Frame:
    """One inbound websocket message, or the terminal error that ended the stream."""

    tag: str = ""
    """3 character tag selecting how the payload is interpreted."""
    payload: bytes = b""
    """Bytes following the tag."""
    error: KiwiError | None = None
    """Set on the last event of a stream when the session failed."""

    @property
    def is_error(self) -> bool:
        """Return True if this event carries a terminal error."""
        return self.error is not None


@dataclass(slots=True)
class AudioPacket:
    """Decoded SND frame."""

    flag: int
    """Flag byte."""
    sequence: int
    """Packet sequence number."""
    smeter: int
    """Signal meter reading reported by the server."""
    samples: list[int] = field(default_factory=list)
    """Signed 16 bit mono samples."""

    def to_pcm_s16le(self) -> bytes:
        """Return the samples as raw signed 16 bit little-endian PCM."""
        return struct.pack(f"<{len(self.samples)}h", *self.samples)
