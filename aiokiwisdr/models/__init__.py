"""Models for the KiwiSDR streaming protocol."""

from __future__ import annotations

__all__ = [
    "AM",
    "AM_3500",
    "AM_NARROW",
    "AUDIO_HEADER_SIZE",
    "CW",
    "CW_3500",
    "CW_NARROW",
    "LSB",
    "LSB_3500",
    "LSB_NARROW",
    "MODES",
    "NONE",
    "TAG_SIZE",
    "USB",
    "USB_3500",
    "USB_NARROW",
    "AudioHeader",
    "AudioPacket",
    "ConnectionKind",
    "Frame",
    "FrameTag",
    "Mode",
    "SessionConfig",
    "Tuning",
    "core",
    "pack_audio_header",
    "types",
    "unpack_audio_header",
]
import struct
from typing import NamedTuple

from . import core, types
from .core import AudioPacket, Frame, SessionConfig, Tuning
from .types import (
    AM,
    AM_3500,
    AM_NARROW,
    CW,
    CW_3500,
    CW_NARROW,
    LSB,
    LSB_3500,
    LSB_NARROW,
    MODES,
    NONE,
    USB,
    USB_3500,
    USB_NARROW,
    ConnectionKind,
    FrameTag,
    Mode,
)

TAG_SIZE = 3
"""Every inbound frame starts with a 3 byte ASCII tag."""

# SND payload header, after the tag: flag(1) + sequence(4, little-endian) + smeter(2,
# big-endian) = 7 bytes. The sequence and smeter use different byte orders, so the
# header is unpacked in two steps.
_FLAG_SEQUENCE_FORMAT = "<Bi"
_SMETER_FORMAT = ">H"
_SMETER_OFFSET = struct.calcsize(_FLAG_SEQUENCE_FORMAT)
AUDIO_HEADER_SIZE = _SMETER_OFFSET + struct.calcsize(_SMETER_FORMAT)


# Helpers for SND payloads
class AudioHeader(NamedTuple):
    """Header structure of an SND payload."""

    flag: int  # flag byte (B - unsigned char)
    sequence: int  # sequence number (i - little-endian signed int)
    smeter: int  # signal meter (H - big-endian unsigned short)


def unpack_audio_header(data: bytes) -> AudioHeader:
    """
    Unpack the audio header from an SND payload.

    Args:
        data: SND payload (tag removed), at least 7 bytes

    Returns:
        AudioHeader with typed fields

    Raises:
        ValueError: If data is shorter than the header
    """
    if len(data) < AUDIO_HEADER_SIZE:
        raise ValueError(f"Expected at least {AUDIO_HEADER_SIZE} bytes, got {len(data)}")

    flag, sequence = struct.unpack_from(_FLAG_SEQUENCE_FORMAT, data, 0)
    (smeter,) = struct.unpack_from(_SMETER_FORMAT, data, _SMETER_OFFSET)
    return AudioHeader(flag=flag, sequence=sequence, smeter=smeter)


def pack_audio_header(header: AudioHeader) -> bytes:
    """
    Pack an audio header into bytes.

    Args:
        header: AudioHeader to pack

    Returns:
        7-byte packed audio header
    """
    return struct.pack(_FLAG_SEQUENCE_FORMAT, header.flag, header.sequence) + struct.pack(
        _SMETER_FORMAT, header.smeter
    )
