"""Core data types shared by detection, description, and matching."""

from dataclasses import dataclass

import numpy as np


@dataclass
class Keypoint:
    """A detected corner.

    Attributes:
        row: Pixel row (y), inside the detector border margin.
        col: Pixel column (x), inside the detector border margin.
        score: Corner response (sum of absolute arc differences).
        orientation: Dominant angle in radians. Zero until orientation
            estimation has run.
    """

    row: int
    col: int
    score: float
    orientation: float = 0.0

    @property
    def position(self) -> tuple[int, int]:
        """Pixel position as (x, y) for drawing routines."""
        return self.col, self.row


@dataclass(frozen=True, eq=False)
class BinaryDescriptor:
    """Packed bit vector computed around one oriented keypoint.

    Attributes:
        keypoint: Keypoint the descriptor was computed from.
        bits: Packed bits, shape (pattern_size // 8,), uint8. Bit i lives in
            byte i // 8 at position i % 8 (least significant bit first).
        pattern_fingerprint: Fingerprint of the sampling pattern used.
    """

    keypoint: Keypoint
    bits: np.ndarray
    pattern_fingerprint: str

    @property
    def num_bits(self) -> int:
        """Descriptor length in bits."""
        return int(self.bits.shape[0]) * 8

    def unpack(self) -> np.ndarray:
        """Return the individual bits in pattern order, shape (num_bits,), uint8."""
        return np.unpackbits(self.bits, bitorder="little")


@dataclass(frozen=True)
class Match:
    """Accepted correspondence between two descriptor sequences.

    Attributes:
        query_index: Index into the first descriptor sequence.
        train_index: Index into the second descriptor sequence.
        distance: Hamming distance between the two descriptors.
    """

    query_index: int
    train_index: int
    distance: int
