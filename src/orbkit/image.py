"""Image loading and grayscale conversion."""

import logging
from pathlib import Path

import cv2
import numpy as np
import torch

logger = logging.getLogger(__name__)


def to_grayscale(image: torch.Tensor | np.ndarray) -> np.ndarray:
    """Convert an image to a contiguous (H, W) uint8 intensity array.

    Args:
        image: Image as tensor or array. Supported formats:
            - (H, W) grayscale, uint8 or float
            - (H, W, 3) BGR, uint8 or float
            Float images with max <= 1.0 are treated as [0, 1] range,
            otherwise as [0, 255].

    Returns:
        Grayscale uint8 array of shape (H, W).

    Raises:
        ValueError: If the image shape is not supported.
    """
    if isinstance(image, torch.Tensor):
        image = image.detach().cpu().numpy()

    if image.ndim == 3 and image.shape[-1] == 3:
        if image.dtype != np.uint8:
            image = _float_to_uint8(image)
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    elif image.ndim == 2:
        gray = image if image.dtype == np.uint8 else _float_to_uint8(image)
    else:
        raise ValueError(
            f"Expected image with shape (H, W) or (H, W, 3), got {image.shape}"
        )

    return np.ascontiguousarray(gray)


def _float_to_uint8(image: np.ndarray) -> np.ndarray:
    """Scale a non-uint8 image to uint8, clamping to the valid range."""
    image = image.astype(np.float64)
    if image.size and image.max() <= 1.0:
        image = image * 255.0
    return np.clip(np.rint(image), 0, 255).astype(np.uint8)


def load_image(path: str | Path, grayscale: bool = True) -> np.ndarray:
    """Load an image from disk.

    Args:
        path: Image file path.
        grayscale: If True, return (H, W) uint8; otherwise (H, W, 3) BGR uint8.

    Returns:
        Decoded image array.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If OpenCV cannot decode the file.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image file does not exist: {path}")

    flags = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    image = cv2.imread(str(path), flags)
    if image is None:
        raise ValueError(f"Failed to decode image: {path}")

    logger.debug("Loaded %s with shape %s", path, image.shape)
    return image


def save_image(image: np.ndarray, path: str | Path) -> None:
    """Write an image to disk, creating parent directories.

    Args:
        image: (H, W) or (H, W, 3) BGR uint8 array.
        path: Output path; the extension selects the format.

    Raises:
        ValueError: If OpenCV fails to encode or write the file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), image):
        raise ValueError(f"Failed to write image: {path}")
