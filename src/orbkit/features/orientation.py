"""Keypoint orientation from the intensity centroid of a circular patch."""

import numpy as np

from ..types import Keypoint


def disk_offsets(radius: int) -> tuple[np.ndarray, np.ndarray]:
    """Integer (drow, dcol) offsets inside a disk of the given radius.

    Args:
        radius: Disk radius in pixels. Offsets satisfy drow^2 + dcol^2 <= r^2.

    Returns:
        Tuple of (drow, dcol) arrays, each shape (P,), int64, in row-major order.
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    drow, dcol = np.mgrid[-radius : radius + 1, -radius : radius + 1]
    inside = drow**2 + dcol**2 <= radius**2
    return drow[inside].astype(np.int64), dcol[inside].astype(np.int64)


def compute_orientations(
    image: np.ndarray, keypoints: list[Keypoint], patch_radius: int
) -> np.ndarray:
    """Compute intensity-centroid angles without touching the keypoints.

    The angle is atan2(m01, m10), where m01 and m10 are the first-order
    intensity moments in row and column over the disk patch. Moments are
    accumulated in integers, so symmetric patches give exactly zero.

    Args:
        image: Grayscale image, shape (H, W), uint8.
        keypoints: Keypoints at least ``patch_radius`` pixels from every edge.
        patch_radius: Radius of the circular patch.

    Returns:
        Angles in radians, shape (N,), float64, in (-pi, pi].

    Raises:
        ValueError: If a patch would leave the image.
    """
    if not keypoints:
        return np.zeros(0, dtype=np.float64)

    h, w = image.shape
    rows = np.array([kp.row for kp in keypoints], dtype=np.int64)
    cols = np.array([kp.col for kp in keypoints], dtype=np.int64)
    if (
        rows.min() < patch_radius
        or cols.min() < patch_radius
        or rows.max() >= h - patch_radius
        or cols.max() >= w - patch_radius
    ):
        raise ValueError(
            f"Orientation patch of radius {patch_radius} leaves the image; "
            "patch_radius must not exceed the detection border"
        )

    drow, dcol = disk_offsets(patch_radius)
    # (N, P) intensities, one row per keypoint
    patch = image[rows[:, None] + drow[None, :], cols[:, None] + dcol[None, :]].astype(
        np.int64
    )
    m01 = patch @ drow
    m10 = patch @ dcol

    return np.arctan2(m01, m10).astype(np.float64)


def assign_orientations(
    image: np.ndarray, keypoints: list[Keypoint], patch_radius: int
) -> list[Keypoint]:
    """Set the orientation of each keypoint in place.

    Position and score are unchanged.

    Args:
        image: Grayscale image, shape (H, W), uint8.
        keypoints: Keypoints to orient.
        patch_radius: Radius of the circular patch.

    Returns:
        The same list, for chaining.
    """
    angles = compute_orientations(image, keypoints, patch_radius)
    for kp, angle in zip(keypoints, angles):
        kp.orientation = float(angle)
    return keypoints
