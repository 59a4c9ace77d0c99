"""Segment-test corner detection with score-based non-maximum suppression."""

import logging

import numpy as np

from ..types import Keypoint

logger = logging.getLogger(__name__)

# 16-pixel Bresenham circle of radius 3 as (drow, dcol), clockwise from north.
RING_OFFSETS = np.array(
    [
        (-3, 0),
        (-3, 1),
        (-2, 2),
        (-1, 3),
        (0, 3),
        (1, 3),
        (2, 2),
        (3, 1),
        (3, 0),
        (3, -1),
        (2, -2),
        (1, -3),
        (0, -3),
        (-1, -3),
        (-2, -2),
        (-3, -1),
    ],
    dtype=np.int64,
)
RING_RADIUS = 3

# With 16 ring pixels, arcs of 9+ are unique per polarity.
MIN_ARC_LENGTH = 9
MAX_ARC_LENGTH = 12


def _validate_image(image: np.ndarray) -> np.ndarray:
    image = np.asarray(image)
    if image.ndim != 2:
        raise ValueError(f"Expected grayscale image with shape (H, W), got {image.shape}")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected uint8 image, got {image.dtype}")
    return image


def _longest_arc(diffs: list[np.ndarray], threshold: int) -> tuple[np.ndarray, np.ndarray]:
    """Find the longest circular run of ring differences above threshold.

    Walks the ring twice so that runs wrapping past the starting pixel are
    seen in full. Runs longer than the ring only occur when every pixel
    passes, in which case the first full lap already holds the answer.

    Args:
        diffs: Signed ring-minus-center differences, one (H, W) array per
            ring pixel, already multiplied by the polarity being tested.
        threshold: Strict lower bound a difference must exceed.

    Returns:
        Tuple of (run_length, run_sum) arrays, both (H, W) int32.
    """
    n = len(diffs)
    shape = diffs[0].shape
    run = np.zeros(shape, dtype=np.int32)
    acc = np.zeros(shape, dtype=np.int32)
    best_run = np.zeros(shape, dtype=np.int32)
    best_acc = np.zeros(shape, dtype=np.int32)

    for i in range(2 * n):
        diff = diffs[i % n]
        passing = diff > threshold
        run = np.where(passing, run + 1, 0)
        acc = np.where(passing, acc + diff, 0)
        longer = (run > best_run) & (run <= n)
        best_run = np.where(longer, run, best_run)
        best_acc = np.where(longer, acc, best_acc)

    return best_run, best_acc


def corner_scores(
    image: np.ndarray,
    threshold: int,
    arc_length: int = MIN_ARC_LENGTH,
    border: int = RING_RADIUS,
) -> np.ndarray:
    """Compute the segment-test corner response for every pixel.

    A pixel is a corner candidate when at least ``arc_length`` contiguous ring
    pixels are all brighter than ``center + threshold`` or all darker than
    ``center - threshold``. Its score is the sum of absolute differences over
    that arc.

    Args:
        image: Grayscale image, shape (H, W), uint8.
        threshold: Brightness difference threshold (0-255).
        arc_length: Minimum contiguous arc length (9-12).
        border: Pixels within this margin of the image edge are never
            candidates. Must be at least the ring radius.

    Returns:
        Score map, shape (H, W), int32. Zero where there is no candidate.

    Raises:
        ValueError: If the image or parameters are invalid.
    """
    image = _validate_image(image)
    if not MIN_ARC_LENGTH <= arc_length <= MAX_ARC_LENGTH:
        raise ValueError(
            f"arc_length must be in [{MIN_ARC_LENGTH}, {MAX_ARC_LENGTH}], got {arc_length}"
        )
    if border < RING_RADIUS:
        raise ValueError(f"border must be at least {RING_RADIUS}, got {border}")
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")

    h, w = image.shape
    scores = np.zeros((h, w), dtype=np.int32)
    if h < 2 * border or w < 2 * border:
        return scores

    img = image.astype(np.int32)
    center = img[border : h - border, border : w - border]
    if center.size == 0:
        return scores

    ring = [
        img[border + dr : h - border + dr, border + dc : w - border + dc]
        for dr, dc in RING_OFFSETS
    ]

    interior = np.zeros(center.shape, dtype=np.int32)
    for polarity in (1, -1):
        diffs = [(pixel - center) * polarity for pixel in ring]
        run, acc = _longest_arc(diffs, threshold)
        interior = np.maximum(interior, np.where(run >= arc_length, acc, 0))

    scores[border : h - border, border : w - border] = interior
    return scores


def non_max_suppression(scores: np.ndarray, radius: int = 1) -> np.ndarray:
    """Keep candidates that are the maximum of their local window.

    A candidate is suppressed by any neighbour within the (2r+1)x(2r+1)
    window with a strictly higher score, or an equal score at an earlier
    row-major position.

    Args:
        scores: Score map, shape (H, W). Non-candidates must be zero.
        radius: Half-size of the square suppression window.

    Returns:
        Boolean mask of surviving candidates, shape (H, W).
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")

    keep = scores > 0
    if radius == 0:
        return keep

    h, w = scores.shape
    padded = np.pad(scores, radius, mode="constant", constant_values=-1)

    for dr in range(-radius, radius + 1):
        for dc in range(-radius, radius + 1):
            if dr == 0 and dc == 0:
                continue
            neighbor = padded[radius + dr : radius + dr + h, radius + dc : radius + dc + w]
            if (dr, dc) < (0, 0):
                # Earlier in row-major order: wins ties
                keep &= neighbor < scores
            else:
                keep &= neighbor <= scores

    return keep


def detect_keypoints(
    image: np.ndarray,
    max_keypoints: int,
    threshold: int,
    border: int,
    arc_length: int = MIN_ARC_LENGTH,
    nms_radius: int = 1,
) -> list[Keypoint]:
    """Detect, suppress, and rank corner keypoints.

    Args:
        image: Grayscale image, shape (H, W), uint8.
        max_keypoints: Maximum number of keypoints to return.
        threshold: Brightness difference threshold for the segment test.
        border: Margin excluded from detection on every side.
        arc_length: Minimum contiguous arc length (9-12).
        nms_radius: Half-size of the non-maximum suppression window.

    Returns:
        Keypoints sorted by score descending, ties in row-major order.
        Fewer than ``max_keypoints`` (possibly none) if the image does not
        contain enough corners. Orientation is left at zero.
    """
    if max_keypoints < 0:
        raise ValueError(f"max_keypoints must be non-negative, got {max_keypoints}")

    scores = corner_scores(image, threshold, arc_length=arc_length, border=border)
    keep = non_max_suppression(scores, nms_radius)

    # np.nonzero yields row-major order; a stable sort preserves it for ties
    rows, cols = np.nonzero(keep)
    values = scores[rows, cols]
    order = np.argsort(-values, kind="stable")[:max_keypoints]

    keypoints = [
        Keypoint(row=int(rows[i]), col=int(cols[i]), score=float(values[i]))
        for i in order
    ]
    logger.debug(
        "Detected %d candidates, %d after suppression, kept %d",
        int(np.count_nonzero(scores)),
        len(rows),
        len(keypoints),
    )
    return keypoints
