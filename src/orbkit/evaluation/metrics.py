"""Metrics for match correctness."""

import numpy as np

from ..features.matching import matches_to_arrays
from ..types import BinaryDescriptor, Match


def transform_points(points: np.ndarray, transform: np.ndarray) -> np.ndarray:
    """Apply a (2, 3) affine transform to (x, y) points.

    Args:
        points: Points, shape (N, 2).
        transform: Affine matrix, shape (2, 3).

    Returns:
        Transformed points, shape (N, 2), float64.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    transform = np.asarray(transform, dtype=np.float64)
    return points @ transform[:, :2].T + transform[:, 2]


def match_accuracy(
    matches: list[Match],
    descriptors_a: list[BinaryDescriptor],
    descriptors_b: list[BinaryDescriptor],
    transform: np.ndarray,
    tolerance: float = 2.0,
) -> dict[str, float]:
    """Score matches against a known transform from image A to image B.

    A match is correct when the first keypoint, mapped through
    ``transform``, lands within ``tolerance`` pixels of the second.

    Args:
        matches: Matches between ``descriptors_a`` and ``descriptors_b``.
        descriptors_a: Descriptors of image A.
        descriptors_b: Descriptors of image B.
        transform: (2, 3) affine matrix mapping A (x, y) to B (x, y).
        tolerance: Maximum reprojection error in pixels.

    Returns:
        Dict with keys:
            "num_matches": float -- number of matches scored
            "num_correct": float -- matches within tolerance
            "precision": float -- num_correct / num_matches (0 when empty)
            "mean_error": float -- mean reprojection error in pixels
                (NaN when empty)
    """
    arrays = matches_to_arrays(matches, descriptors_a, descriptors_b)
    projected = transform_points(arrays["ref_keypoints"], transform)
    errors = np.linalg.norm(projected - arrays["src_keypoints"], axis=1)

    n = len(matches)
    num_correct = int(np.count_nonzero(errors <= tolerance))
    return {
        "num_matches": float(n),
        "num_correct": float(num_correct),
        "precision": num_correct / n if n else 0.0,
        "mean_error": float(errors.mean()) if n else float("nan"),
    }
