"""Synthetic image transforms with known ground truth."""

import cv2
import numpy as np


def rotate_about_center(
    image: np.ndarray, angle: float, border_value: int = 0
) -> tuple[np.ndarray, np.ndarray]:
    """Rotate an image about its center with nearest-neighbour sampling.

    The output keeps the input size; uncovered pixels take ``border_value``.

    Args:
        image: Grayscale (H, W) or BGR (H, W, 3) uint8 image.
        angle: Rotation angle in radians. Positive values rotate
            counter-clockwise as displayed (OpenCV convention).
        border_value: Fill intensity for pixels outside the source.

    Returns:
        Tuple of (rotated_image, transform) where transform is the (2, 3)
        affine matrix mapping source (x, y) to rotated (x, y).
    """
    h, w = image.shape[:2]
    center = (w / 2.0, h / 2.0)
    transform = cv2.getRotationMatrix2D(center, float(np.degrees(angle)), 1.0)
    rotated = cv2.warpAffine(
        image,
        transform,
        (w, h),
        flags=cv2.INTER_NEAREST,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=border_value,
    )
    return rotated, transform
