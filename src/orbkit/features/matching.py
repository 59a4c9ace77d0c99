"""Brute-force Hamming matching of binary descriptors."""

import logging

import numpy as np
import torch

from ..config import MatchingConfig
from ..types import BinaryDescriptor, Match
from .description import stack_descriptors

logger = logging.getLogger(__name__)


def popcount_uint8(x: torch.Tensor) -> torch.Tensor:
    """Branchless per-byte population count (SWAR).

    Args:
        x: uint8 tensor of any shape.

    Returns:
        uint8 tensor of the same shape holding the set-bit count of each byte.
    """
    x = x - ((x >> 1) & 0x55)
    x = (x & 0x33) + ((x >> 2) & 0x33)
    return (x + (x >> 4)) & 0x0F


def _as_uint8_tensor(data: np.ndarray | torch.Tensor, device: str) -> torch.Tensor:
    if isinstance(data, np.ndarray):
        if data.dtype != np.uint8:
            raise ValueError(f"Expected uint8 descriptor array, got {data.dtype}")
        # Descriptor bits are read-only; torch.from_numpy needs a writable buffer
        data = torch.from_numpy(np.array(data, copy=True, order="C"))
    elif data.dtype != torch.uint8:
        raise ValueError(f"Expected uint8 descriptor tensor, got {data.dtype}")
    if data.dim() != 2:
        raise ValueError(f"Expected descriptors with shape (N, B), got {tuple(data.shape)}")
    return data.to(device)


def distance_matrix(
    desc_a: np.ndarray | torch.Tensor,
    desc_b: np.ndarray | torch.Tensor,
    device: str = "cpu",
    chunk_size: int = 1024,
) -> torch.Tensor:
    """Compute all pairwise Hamming distances.

    Rows are processed in chunks of ``chunk_size`` to bound the size of the
    intermediate (chunk, M, B) XOR tensor.

    Args:
        desc_a: Packed descriptors, shape (N, B), uint8.
        desc_b: Packed descriptors, shape (M, B), uint8.
        device: Device to compute on.
        chunk_size: Number of rows of ``desc_a`` per chunk.

    Returns:
        Distances, shape (N, M), int32, on ``device``.

    Raises:
        ValueError: If the descriptor byte lengths differ.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    a = _as_uint8_tensor(desc_a, device)
    b = _as_uint8_tensor(desc_b, device)
    if a.shape[1] != b.shape[1]:
        raise ValueError(
            f"Descriptor length mismatch: {a.shape[1] * 8} bits vs {b.shape[1] * 8} bits"
        )

    n, m = a.shape[0], b.shape[0]
    distances = torch.empty((n, m), dtype=torch.int32, device=a.device)
    for start in range(0, n, chunk_size):
        stop = min(start + chunk_size, n)
        xor = torch.bitwise_xor(a[start:stop, None, :], b[None, :, :])
        distances[start:stop] = popcount_uint8(xor).sum(dim=-1, dtype=torch.int32)

    return distances


def hamming_distance(first: BinaryDescriptor, second: BinaryDescriptor) -> int:
    """Number of differing bits between two descriptors.

    Raises:
        ValueError: If the descriptors differ in length or sampling pattern.
    """
    _check_compatible([first], [second])
    dist = distance_matrix(first.bits[None, :], second.bits[None, :])
    return int(dist[0, 0])


def _first_argmin(distances: torch.Tensor, dim: int) -> tuple[torch.Tensor, torch.Tensor]:
    """Minimum along ``dim`` with ties resolved to the lowest index.

    The tie-break is applied on the complete reduced axis, so the result does
    not depend on how the distance matrix was produced.
    """
    minimum = distances.min(dim=dim).values
    size = distances.shape[dim]
    positions = torch.arange(size, device=distances.device)
    if dim == 1:
        is_min = distances == minimum[:, None]
        candidates = torch.where(is_min, positions[None, :], size)
    else:
        is_min = distances == minimum[None, :]
        candidates = torch.where(is_min, positions[:, None], size)
    return minimum, candidates.min(dim=dim).values


def match_descriptor_arrays(
    desc_a: np.ndarray | torch.Tensor,
    desc_b: np.ndarray | torch.Tensor,
    max_distance: int,
    cross_check: bool = True,
    device: str = "cpu",
    chunk_size: int = 1024,
) -> list[Match]:
    """Nearest-neighbour matching of packed descriptor arrays.

    For each row of ``desc_a`` the closest row of ``desc_b`` is found (ties go
    to the lowest index). The pair is accepted when its distance is at most
    ``max_distance`` and, with ``cross_check``, when the ``desc_b`` row's own
    nearest neighbour in ``desc_a`` is the same row.

    Args:
        desc_a: Packed descriptors, shape (N, B), uint8.
        desc_b: Packed descriptors, shape (M, B), uint8.
        max_distance: Largest accepted Hamming distance (inclusive).
        cross_check: Require mutual nearest neighbours.
        device: Device to compute on.
        chunk_size: Row chunk size for the distance computation.

    Returns:
        Matches in ascending ``query_index`` order.
    """
    if max_distance < 0:
        raise ValueError(f"max_distance must be non-negative, got {max_distance}")

    distances = distance_matrix(desc_a, desc_b, device=device, chunk_size=chunk_size)
    n, m = distances.shape
    if n == 0 or m == 0:
        return []

    best_dist, best_b = _first_argmin(distances, dim=1)
    accept = best_dist <= max_distance

    if cross_check:
        _, best_a = _first_argmin(distances, dim=0)
        accept &= best_a[best_b] == torch.arange(n, device=distances.device)

    query = torch.nonzero(accept).flatten().cpu().tolist()
    train = best_b.cpu().tolist()
    dist = best_dist.cpu().tolist()

    return [Match(query_index=i, train_index=train[i], distance=dist[i]) for i in query]


def _check_compatible(
    descriptors_a: list[BinaryDescriptor], descriptors_b: list[BinaryDescriptor]
) -> None:
    fingerprints = {d.pattern_fingerprint for d in descriptors_a} | {
        d.pattern_fingerprint for d in descriptors_b
    }
    if len(fingerprints) > 1:
        raise ValueError(
            "Descriptors were computed with different sampling patterns "
            f"(fingerprints: {sorted(fingerprints)})"
        )
    lengths = {d.bits.shape[0] for d in descriptors_a} | {
        d.bits.shape[0] for d in descriptors_b
    }
    if len(lengths) > 1:
        raise ValueError(
            f"Descriptor length mismatch (bits): {sorted(n * 8 for n in lengths)}"
        )


def match_descriptors(
    descriptors_a: list[BinaryDescriptor],
    descriptors_b: list[BinaryDescriptor],
    max_distance: int = 64,
    cross_check: bool = True,
    device: str = "cpu",
    chunk_size: int = 1024,
) -> list[Match]:
    """Match two descriptor sequences.

    Args:
        descriptors_a: Query descriptors.
        descriptors_b: Train descriptors.
        max_distance: Largest accepted Hamming distance (inclusive).
        cross_check: Require mutual nearest neighbours.
        device: Device to compute on.
        chunk_size: Row chunk size for the distance computation.

    Returns:
        Matches in ascending ``query_index`` order. Indices refer to
        positions in ``descriptors_a`` and ``descriptors_b``.

    Raises:
        ValueError: If the two sequences were produced with different
            sampling patterns or descriptor lengths.
    """
    _check_compatible(descriptors_a, descriptors_b)
    if not descriptors_a or not descriptors_b:
        return []

    matches = match_descriptor_arrays(
        stack_descriptors(descriptors_a),
        stack_descriptors(descriptors_b),
        max_distance=max_distance,
        cross_check=cross_check,
        device=device,
        chunk_size=chunk_size,
    )
    logger.debug(
        "Matched %d of %d descriptors against %d (max_distance=%d, cross_check=%s)",
        len(matches),
        len(descriptors_a),
        len(descriptors_b),
        max_distance,
        cross_check,
    )
    return matches


def match_pair(
    descriptors_a: list[BinaryDescriptor],
    descriptors_b: list[BinaryDescriptor],
    config: MatchingConfig,
    device: str = "cpu",
) -> list[Match]:
    """Match two descriptor sequences using a MatchingConfig.

    Args:
        descriptors_a: Query descriptors.
        descriptors_b: Train descriptors.
        config: Matching configuration.
        device: Device to compute on.

    Returns:
        Matches in ascending ``query_index`` order.
    """
    return match_descriptors(
        descriptors_a,
        descriptors_b,
        max_distance=config.max_distance,
        cross_check=config.cross_check,
        device=device,
        chunk_size=config.chunk_size,
    )


def matches_to_arrays(
    matches: list[Match],
    descriptors_a: list[BinaryDescriptor],
    descriptors_b: list[BinaryDescriptor],
) -> dict[str, np.ndarray]:
    """Gather matched keypoint positions for downstream consumers.

    Args:
        matches: Matches produced from ``descriptors_a`` and ``descriptors_b``.
        descriptors_a: Query descriptors.
        descriptors_b: Train descriptors.

    Returns:
        Dict with keys:
            "ref_keypoints": shape (M, 2), float32 -- (x, y) in the first image
            "src_keypoints": shape (M, 2), float32 -- (x, y) in the second image
            "distances": shape (M,), int32 -- Hamming distances
    """
    ref = np.array(
        [descriptors_a[m.query_index].keypoint.position for m in matches],
        dtype=np.float32,
    ).reshape(-1, 2)
    src = np.array(
        [descriptors_b[m.train_index].keypoint.position for m in matches],
        dtype=np.float32,
    ).reshape(-1, 2)
    distances = np.array([m.distance for m in matches], dtype=np.int32)
    return {"ref_keypoints": ref, "src_keypoints": src, "distances": distances}
