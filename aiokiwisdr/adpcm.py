"""4-bit IMA ADPCM decoder matching the KiwiSDR audio encoder."""

from __future__ import annotations

STEP_SIZE_TABLE: tuple[int, ...] = (
    7, 8, 9, 10, 11, 12, 13, 14, 16, 17, 19, 21, 23, 25, 28, 31, 34,
    37, 41, 45, 50, 55, 60, 66, 73, 80, 88, 97, 107, 118, 130, 143,
    157, 173, 190, 209, 230, 253, 279, 307, 337, 371, 408, 449, 494,
    544, 598, 658, 724, 796, 876, 963, 1060, 1166, 1282, 1411, 1552,
    1707, 1878, 2066, 2272, 2499, 2749, 3024, 3327, 3660, 4026,
    4428, 4871, 5358, 5894, 6484, 7132, 7845, 8630, 9493, 10442,
    11487, 12635, 13899, 15289, 16818, 18500, 20350, 22385, 24623,
    27086, 29794, 32767,
)  # fmt: skip

INDEX_ADJUST_TABLE: tuple[int, ...] = (
    -1, -1, -1, -1,  # +0 - +3, decrease the step size
    2, 4, 6, 8,  # +4 - +7, increase the step size
    -1, -1, -1, -1,  # -0 - -3, decrease the step size
    2, 4, 6, 8,  # -4 - -7, increase the step size
)  # fmt: skip

_MAX_INDEX = len(STEP_SIZE_TABLE) - 1
_SAMPLE_MIN = -32768
_SAMPLE_MAX = 32767


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


class ImaAdpcmDecoder:
    """
    Stateful IMA ADPCM decoder.

    The step index and previous sample carry over from one call to the next, so a
    single decoder must be used for the whole audio stream of a session.
    """

    __slots__ = ("index", "prev")

    def __init__(self) -> None:
        """Create a decoder at the start of a stream."""
        self.index = 0
        self.prev = 0

    def reset(self) -> None:
        """Return to the initial state."""
        self.index = 0
        self.prev = 0

    def decode(self, data: bytes, skip: int = 0) -> list[int]:
        """
        Decode the bytes of data from offset skip onward.

        Each byte yields two samples, low nibble first.
        """
        samples: list[int] = []
        append = samples.append
        for byte in data[skip:]:
            append(self.decode_sample(byte & 0x0F))
            append(self.decode_sample(byte >> 4))
        return samples

    def decode_sample(self, code: int) -> int:
        """Decode one 4-bit code into a signed 16 bit sample."""
        step = STEP_SIZE_TABLE[self.index]
        self.index = _clamp(self.index + INDEX_ADJUST_TABLE[code], 0, _MAX_INDEX)

        difference = step >> 3
        if code & 1:
            difference += step >> 2
        if code & 2:
            difference += step >> 1
        if code & 4:
            difference += step
        if code & 8:
            difference = -difference

        sample = _clamp(self.prev + difference, _SAMPLE_MIN, _SAMPLE_MAX)
        self.prev = sample
        return sample
