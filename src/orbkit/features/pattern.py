"""Fixed sampling pattern of point pairs for binary descriptors.

The default pattern is part of the descriptor's binary contract: descriptors
are only comparable when computed with the same pattern. It is generated
from NumPy's legacy ``RandomState`` (whose stream is frozen) as follows:

1. Draw a point as ``randint(-r, r + 1, size=2)`` giving (drow, dcol).
2. Reject it if drow^2 + dcol^2 > r^2, otherwise it is accepted.
3. Two consecutive accepted points form a pair (first, second); pairs with
   identical endpoints are dropped and drawing continues.

Defaults: 256 pairs, radius 15, seed 45551.
"""

import hashlib
from dataclasses import dataclass, field

import numpy as np

DEFAULT_PATTERN_SIZE = 256
DEFAULT_PATTERN_RADIUS = 15
DEFAULT_PATTERN_SEED = 45551


@dataclass(frozen=True, eq=False)
class SamplingPattern:
    """Immutable table of offset pairs.

    Attributes:
        pairs: Offsets, shape (N, 2, 2), int16. ``pairs[i, 0]`` is the first
            point (drow, dcol) of pair i and ``pairs[i, 1]`` the second.
        radius: Patch radius every offset lies within.
        fingerprint: SHA-1 hex digest of the offset table.
    """

    pairs: np.ndarray
    radius: int
    fingerprint: str = field(init=False)

    def __post_init__(self):
        pairs = np.array(self.pairs, dtype=np.int16)
        if pairs.ndim != 3 or pairs.shape[1:] != (2, 2):
            raise ValueError(f"Expected pairs with shape (N, 2, 2), got {pairs.shape}")
        if pairs.shape[0] == 0 or pairs.shape[0] % 8 != 0:
            raise ValueError(
                f"Pattern size must be a positive multiple of 8, got {pairs.shape[0]}"
            )
        sq = pairs.astype(np.int64) ** 2
        if np.any(sq.sum(axis=-1) > self.radius**2):
            raise ValueError(f"All offsets must lie within radius {self.radius}")

        pairs.setflags(write=False)
        object.__setattr__(self, "pairs", pairs)
        object.__setattr__(
            self, "fingerprint", hashlib.sha1(pairs.tobytes()).hexdigest()
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, SamplingPattern):
            return NotImplemented
        return self.radius == other.radius and self.fingerprint == other.fingerprint

    def __hash__(self) -> int:
        return hash((self.radius, self.fingerprint))

    def __len__(self) -> int:
        return int(self.pairs.shape[0])

    @property
    def num_bytes(self) -> int:
        """Packed descriptor length in bytes."""
        return len(self) // 8

    @classmethod
    def from_pairs(cls, pairs, radius: int | None = None) -> "SamplingPattern":
        """Build a pattern from an explicit table.

        Args:
            pairs: Sequence of ((drow_a, dcol_a), (drow_b, dcol_b)).
            radius: Patch radius. If None, the smallest radius that
                contains every offset.

        Returns:
            A new SamplingPattern.
        """
        arr = np.asarray(pairs, dtype=np.int64)
        if radius is None:
            radius = int(np.ceil(np.sqrt((arr**2).sum(axis=-1).max()))) if arr.size else 0
        return cls(pairs=arr, radius=radius)


def generate_pattern(
    size: int = DEFAULT_PATTERN_SIZE,
    radius: int = DEFAULT_PATTERN_RADIUS,
    seed: int = DEFAULT_PATTERN_SEED,
) -> SamplingPattern:
    """Generate the deterministic sampling pattern.

    See the module docstring for the exact procedure.

    Args:
        size: Number of pairs (bits). Positive multiple of 8.
        radius: Patch radius in pixels.
        seed: RandomState seed.

    Returns:
        SamplingPattern with ``size`` pairs.
    """
    if size <= 0 or size % 8 != 0:
        raise ValueError(f"size must be a positive multiple of 8, got {size}")
    if radius < 1:
        raise ValueError(f"radius must be at least 1, got {radius}")

    rng = np.random.RandomState(seed)
    r2 = radius * radius

    def draw_point() -> tuple[int, int]:
        while True:
            drow, dcol = rng.randint(-radius, radius + 1, size=2)
            if drow * drow + dcol * dcol <= r2:
                return int(drow), int(dcol)

    pairs = []
    while len(pairs) < size:
        first = draw_point()
        second = draw_point()
        if first != second:
            pairs.append((first, second))

    return SamplingPattern(pairs=np.array(pairs, dtype=np.int16), radius=radius)
