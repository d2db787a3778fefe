"""Models for enum types and constant data used by the KiwiSDR protocol."""

from dataclasses import dataclass
from enum import Enum

from mashumaro.mixins.orjson import DataClassORJSONMixin

# Enums


class ConnectionKind(Enum):
    """Kind of stream requested in the connection path."""

    SND = "SND"
    """Audio stream."""
    W_F = "W_F"
    """Waterfall stream."""


class FrameTag(Enum):
    """Tags of inbound frames understood by the client."""

    MSG = "MSG"
    """Control/status frame carrying space separated key=value parameters."""
    SND = "SND"
    """Audio data frame."""


# Receiver modes


@dataclass(frozen=True)
class Mode(DataClassORJSONMixin):
    """Demodulation mode with its passband."""

    name: str
    """Mode name understood by the server ("am", "cw", "lsb", "usb", "nbfm", "iq")."""
    low_cut: int
    """Low edge of the passband in Hz, relative to the carrier."""
    high_cut: int
    """High edge of the passband in Hz, relative to the carrier."""
    offset: int = 0
    """Offset in Hz added to the tuned frequency."""

    def __post_init__(self) -> None:
        """Validate the passband."""
        if self.low_cut > self.high_cut:
            raise ValueError(
                f"low_cut must not exceed high_cut, got {self.low_cut} > {self.high_cut}"
            )


NONE = Mode("", 0, 0, 0)
AM = Mode("am", -4900, 4900, 0)
CW = Mode("cw", 300, 700, -500)
LSB = Mode("lsb", -2700, -300, 0)
USB = Mode("usb", 300, 2700, 0)
AM_NARROW = Mode("am", -2500, 2500, 0)
CW_NARROW = Mode("cw", 470, 530, -500)
LSB_NARROW = Mode("lsb", -2200, -300, 0)
USB_NARROW = Mode("usb", 300, 2200, 0)
AM_3500 = Mode("am", -3500, 3500, 0)
CW_3500 = Mode("cw", 200, 3500, -500)
LSB_3500 = Mode("lsb", -3500, -200, 0)
USB_3500 = Mode("usb", 200, 3500, 0)

MODES: dict[str, Mode] = {
    "am": AM,
    "cw": CW,
    "lsb": LSB,
    "usb": USB,
    "am_narrow": AM_NARROW,
    "cw_narrow": CW_NARROW,
    "lsb_narrow": LSB_NARROW,
    "usb_narrow": USB_NARROW,
    "am_3500": AM_3500,
    "cw_3500": CW_3500,
    "lsb_3500": LSB_3500,
    "usb_3500": USB_3500,
}
"""Preset modes by name."""
