"""Rotated binary descriptors from pairwise intensity comparisons."""

from dataclasses import replace

import numpy as np

from ..types import BinaryDescriptor, Keypoint
from .pattern import SamplingPattern


def rotated_offsets(pattern: SamplingPattern, angles: np.ndarray) -> np.ndarray:
    """Rotate and round the pattern offsets for each angle.

    Uses col' = col*cos - row*sin and row' = col*sin + row*cos, in the
    image frame (rows grow downward), then rounds half up with
    floor(v + 0.5).

    Args:
        pattern: Sampling pattern.
        angles: Rotation angles in radians, shape (N,).

    Returns:
        Integer offsets, shape (N, P, 2, 2), int64, last axis (drow, dcol).
    """
    angles = np.asarray(angles, dtype=np.float64)
    cos = np.cos(angles)[:, None, None]
    sin = np.sin(angles)[:, None, None]

    drow = pattern.pairs[None, :, :, 0].astype(np.float64)
    dcol = pattern.pairs[None, :, :, 1].astype(np.float64)

    rot_col = dcol * cos - drow * sin
    rot_row = dcol * sin + drow * cos

    rounded = np.stack([np.floor(rot_row + 0.5), np.floor(rot_col + 0.5)], axis=-1)
    return rounded.astype(np.int64)


def compute_descriptor_bits(
    image: np.ndarray, keypoints: list[Keypoint], pattern: SamplingPattern
) -> np.ndarray:
    """Compute packed descriptor bits for a batch of keypoints.

    Bit i is 1 when the intensity at the rotated first offset of pair i is
    strictly less than at the rotated second offset. Sample coordinates
    that fall outside the image are clamped to the nearest edge pixel.

    Args:
        image: Grayscale image, shape (H, W), uint8.
        keypoints: Oriented keypoints.
        pattern: Sampling pattern.

    Returns:
        Packed bits, shape (N, len(pattern) // 8), uint8, LSB-first.
    """
    image = np.asarray(image)
    if image.ndim != 2:
        raise ValueError(f"Expected grayscale image with shape (H, W), got {image.shape}")

    n = len(keypoints)
    if n == 0:
        return np.zeros((0, pattern.num_bytes), dtype=np.uint8)

    h, w = image.shape
    rows = np.array([kp.row for kp in keypoints], dtype=np.int64)
    cols = np.array([kp.col for kp in keypoints], dtype=np.int64)
    angles = np.array([kp.orientation for kp in keypoints], dtype=np.float64)

    offsets = rotated_offsets(pattern, angles)
    sample_rows = np.clip(rows[:, None, None] + offsets[..., 0], 0, h - 1)
    sample_cols = np.clip(cols[:, None, None] + offsets[..., 1], 0, w - 1)

    values = image[sample_rows, sample_cols]  # (N, P, 2)
    bits = values[..., 0] < values[..., 1]

    return np.packbits(bits, axis=1, bitorder="little")


def compute_descriptors(
    image: np.ndarray, keypoints: list[Keypoint], pattern: SamplingPattern
) -> list[BinaryDescriptor]:
    """Describe every keypoint, preserving input order.

    Args:
        image: Grayscale image, shape (H, W), uint8.
        keypoints: Oriented keypoints.
        pattern: Sampling pattern shared by every descriptor that will be
            compared against these.

    Returns:
        One BinaryDescriptor per keypoint, each holding a copy of its
        keypoint.
    """
    packed = compute_descriptor_bits(image, keypoints, pattern)
    descriptors = []
    for kp, bits in zip(keypoints, packed):
        bits = bits.copy()
        bits.setflags(write=False)
        descriptors.append(
            BinaryDescriptor(
                keypoint=replace(kp),
                bits=bits,
                pattern_fingerprint=pattern.fingerprint,
            )
        )
    return descriptors


def stack_descriptors(descriptors: list[BinaryDescriptor]) -> np.ndarray:
    """Stack descriptor bits into one array.

    Args:
        descriptors: Descriptors of identical length.

    Returns:
        Array of shape (N, B), uint8. (0, 0) when empty.

    Raises:
        ValueError: If descriptor lengths differ.
    """
    if not descriptors:
        return np.zeros((0, 0), dtype=np.uint8)

    lengths = {d.bits.shape[0] for d in descriptors}
    if len(lengths) != 1:
        raise ValueError(f"Descriptors have mixed lengths (bytes): {sorted(lengths)}")
    return np.stack([d.bits for d in descriptors]).astype(np.uint8, copy=False)
