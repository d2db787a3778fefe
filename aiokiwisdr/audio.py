"""Decoding of SND frame payloads into audio packets."""

from __future__ import annotations

import struct

from aiokiwisdr.adpcm import ImaAdpcmDecoder
from aiokiwisdr.errors import ShortAudioPacketError
from aiokiwisdr.models import AUDIO_HEADER_SIZE, AudioPacket, unpack_audio_header


class AudioPacketDecoder:
    """
    Decode SND payloads of one audio stream.

    With compression enabled the payloads carry IMA ADPCM nibbles and the decoder
    keeps the ADPCM state across packets, so use one instance per session.
    """

    def __init__(self, *, compression: bool = False) -> None:
        """
        Create a decoder.

        Args:
            compression: True if the session requested compressed audio.
        """
        self._compression = compression
        self._adpcm = ImaAdpcmDecoder() if compression else None

    @property
    def compression(self) -> bool:
        """Return True if payloads are decoded as IMA ADPCM."""
        return self._compression

    def decode(self, payload: bytes) -> AudioPacket:
        """
        Decode one SND payload (tag removed).

        Raises:
            ShortAudioPacketError: If the payload is shorter than the audio header.
        """
        if len(payload) < AUDIO_HEADER_SIZE:
            raise ShortAudioPacketError(
                f"short audio packet: expected at least {AUDIO_HEADER_SIZE} bytes, "
                f"got {len(payload)}"
            )
        header = unpack_audio_header(payload)

        if self._adpcm is not None:
            samples = self._adpcm.decode(payload, AUDIO_HEADER_SIZE)
        else:
            count = (len(payload) - AUDIO_HEADER_SIZE) // 2
            end = AUDIO_HEADER_SIZE + 2 * count
            samples = list(struct.unpack(f">{count}h", payload[AUDIO_HEADER_SIZE:end]))

        return AudioPacket(
            flag=header.flag,
            sequence=header.sequence,
            smeter=header.smeter,
            samples=samples,
        )
