"""Shared pytest fixtures for orbkit tests."""

import cv2
import numpy as np
import pytest
import torch


@pytest.fixture(params=["cpu", "cuda"])
def device(request):
    """Parametrized device fixture for CPU and CUDA testing.

    Args:
        request: pytest fixture request object.

    Returns:
        str: Device to use for testing.

    Raises:
        pytest.skip: If CUDA is requested but not available.
    """
    if request.param == "cuda" and not torch.cuda.is_available():
        pytest.skip("CUDA not available")
    return request.param


def create_square_image(
    size: int = 64, top: int = 20, bottom: int = 40, value: int = 255
) -> np.ndarray:
    """Create a dark image with one bright square.

    The square covers rows and columns [top, bottom).

    Returns:
        Grayscale uint8 array of shape (size, size).
    """
    image = np.zeros((size, size), dtype=np.uint8)
    image[top:bottom, top:bottom] = value
    return image


def create_block_image(size: int = 128, block: int = 8, seed: int = 0) -> np.ndarray:
    """Create a random block mosaic with low-amplitude noise.

    Blocks have random intensities, so block junctions are strong corners.
    The added noise stays below the default detection threshold but breaks
    score ties, making keypoint positions unambiguous.

    Returns:
        Grayscale uint8 array of shape (size, size).
    """
    rng = np.random.default_rng(seed)
    cells = rng.integers(0, 248, size=(size // block, size // block), dtype=np.uint8)
    image = cv2.resize(cells, (size, size), interpolation=cv2.INTER_NEAREST)
    noise = rng.integers(0, 8, size=image.shape, dtype=np.uint8)
    return image + noise


@pytest.fixture
def square_image() -> np.ndarray:
    """64x64 dark image with a bright square covering [20, 40)."""
    return create_square_image()


@pytest.fixture
def block_image() -> np.ndarray:
    """128x128 random block mosaic."""
    return create_block_image()


@pytest.fixture
def make_square_image():
    """Factory fixture for square images with custom geometry."""
    return create_square_image


@pytest.fixture
def make_block_image():
    """Factory fixture for block mosaics with custom size or seed."""
    return create_block_image
