"""Detect, orient, and describe keypoints in one call."""

import logging
from pathlib import Path

import numpy as np
import torch
from tqdm import tqdm

from ..config import DescriptorConfig, PipelineConfig
from ..image import to_grayscale
from ..types import BinaryDescriptor, Keypoint
from .description import compute_descriptors, stack_descriptors
from .detection import detect_keypoints
from .orientation import assign_orientations
from .pattern import SamplingPattern, generate_pattern

logger = logging.getLogger(__name__)


def create_pattern(config: DescriptorConfig) -> SamplingPattern:
    """Create the sampling pattern described by a DescriptorConfig.

    Args:
        config: Descriptor configuration.

    Returns:
        Deterministic SamplingPattern.
    """
    pattern = generate_pattern(
        size=config.pattern_size, radius=config.patch_radius, seed=config.seed
    )
    logger.debug(
        "Generated sampling pattern: %d pairs, radius %d, fingerprint %s",
        len(pattern),
        pattern.radius,
        pattern.fingerprint[:12],
    )
    return pattern


def extract_features(
    image: torch.Tensor | np.ndarray,
    config: PipelineConfig,
    pattern: SamplingPattern | None = None,
) -> list[BinaryDescriptor]:
    """Extract oriented binary descriptors from a single image.

    Args:
        image: Image as tensor or array, (H, W) or (H, W, 3) BGR.
            Converted to uint8 grayscale internally.
        config: Pipeline configuration (detection, orientation, description).
        pattern: Pre-generated sampling pattern. If None, one is created
            from ``config.description``.

    Returns:
        Descriptors ordered by keypoint score descending. Empty if the image
        is smaller than twice the detection border or has no corners.
    """
    gray = to_grayscale(image)

    if pattern is None:
        pattern = create_pattern(config.description)

    det = config.detection
    keypoints: list[Keypoint] = detect_keypoints(
        gray,
        max_keypoints=det.max_keypoints,
        threshold=det.fast_threshold,
        border=det.border,
        arc_length=det.arc_length,
        nms_radius=det.nms_radius,
    )
    assign_orientations(gray, keypoints, config.orientation.patch_radius)

    return compute_descriptors(gray, keypoints, pattern)


def extract_features_batch(
    images: dict[str, torch.Tensor | np.ndarray],
    config: PipelineConfig,
    pattern: SamplingPattern | None = None,
) -> dict[str, list[BinaryDescriptor]]:
    """Extract features from multiple images with one shared pattern.

    Args:
        images: Image name to image tensor/array mapping.
        config: Pipeline configuration.
        pattern: Pre-generated sampling pattern. If None, one is created once
            for all images.

    Returns:
        Image name to descriptor list mapping.
    """
    if pattern is None:
        pattern = create_pattern(config.description)

    features = {}
    for name, image in tqdm(
        images.items(), desc="Extracting", disable=config.runtime.quiet
    ):
        features[name] = extract_features(image, config, pattern=pattern)
        logger.debug("%s: %d descriptors", name, len(features[name]))

    return features


def save_features(descriptors: list[BinaryDescriptor], path: str | Path) -> None:
    """Save descriptors and their keypoints to a .pt file.

    Args:
        descriptors: Descriptors from one image, all from the same pattern.
        path: Output file path (should end with .pt).

    Raises:
        ValueError: If descriptors mix sampling patterns or lengths.
    """
    fingerprints = {d.pattern_fingerprint for d in descriptors}
    if len(fingerprints) > 1:
        raise ValueError("Cannot save descriptors computed with different patterns")

    bits = stack_descriptors(descriptors)
    features = {
        "keypoints": torch.tensor(
            [[d.keypoint.row, d.keypoint.col] for d in descriptors], dtype=torch.int64
        ).reshape(-1, 2),
        "scores": torch.tensor(
            [d.keypoint.score for d in descriptors], dtype=torch.float32
        ),
        "orientations": torch.tensor(
            [d.keypoint.orientation for d in descriptors], dtype=torch.float64
        ),
        "descriptors": torch.from_numpy(bits),
        "pattern_fingerprint": fingerprints.pop() if fingerprints else "",
    }
    torch.save(features, path)


def load_features(path: str | Path) -> list[BinaryDescriptor]:
    """Load descriptors saved by save_features.

    Args:
        path: Path to .pt file.

    Returns:
        Descriptors with their keypoints, in saved order.
    """
    features = torch.load(path, weights_only=True)

    keypoints = features["keypoints"].tolist()
    scores = features["scores"].tolist()
    orientations = features["orientations"].tolist()
    bits = features["descriptors"].numpy()
    fingerprint = features["pattern_fingerprint"]

    descriptors = []
    for (row, col), score, angle, packed in zip(keypoints, scores, orientations, bits):
        packed = packed.copy()
        packed.setflags(write=False)
        descriptors.append(
            BinaryDescriptor(
                keypoint=Keypoint(row=row, col=col, score=score, orientation=angle),
                bits=packed,
                pattern_fingerprint=fingerprint,
            )
        )
    return descriptors
