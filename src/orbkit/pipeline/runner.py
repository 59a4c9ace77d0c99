"""Pipeline runner: extraction and matching for image pairs."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import torch

from ..config import PipelineConfig
from ..features import extract_features, match_pair, matches_to_arrays
from ..image import load_image
from ..types import BinaryDescriptor, Match
from ..visualization import render_matches
from .builder import build_pipeline_context
from .context import PipelineContext

logger = logging.getLogger(__name__)


@dataclass
class PairResult:
    """Descriptors and matches for one image pair, with stage timings.

    Attributes:
        descriptors_a: Descriptors of the first image.
        descriptors_b: Descriptors of the second image.
        matches: Accepted matches, indices into the two descriptor lists.
        extraction_seconds: Wall time spent extracting both descriptor sets.
        matching_seconds: Wall time spent matching.
    """

    descriptors_a: list[BinaryDescriptor]
    descriptors_b: list[BinaryDescriptor]
    matches: list[Match]
    extraction_seconds: float
    matching_seconds: float

    @property
    def num_descriptors(self) -> int:
        """Total number of descriptors across both images."""
        return len(self.descriptors_a) + len(self.descriptors_b)

    @property
    def seconds_per_descriptor(self) -> float:
        """Average extraction time per descriptor (0 when there are none)."""
        if self.num_descriptors == 0:
            return 0.0
        return self.extraction_seconds / self.num_descriptors


def match_images(
    image_a: torch.Tensor | np.ndarray,
    image_b: torch.Tensor | np.ndarray,
    ctx: PipelineContext,
) -> PairResult:
    """Extract descriptors from two images and match them.

    Args:
        image_a: First image, (H, W) or (H, W, 3) BGR.
        image_b: Second image, (H, W) or (H, W, 3) BGR.
        ctx: Precomputed pipeline context from setup_pipeline().

    Returns:
        PairResult with descriptors, matches, and timings.
    """
    config = ctx.config

    start = time.perf_counter()
    descriptors_a = extract_features(image_a, config, pattern=ctx.pattern)
    descriptors_b = extract_features(image_b, config, pattern=ctx.pattern)
    extraction_seconds = time.perf_counter() - start
    logger.info(
        "Extracted %d + %d descriptors in %.3fs",
        len(descriptors_a),
        len(descriptors_b),
        extraction_seconds,
    )

    start = time.perf_counter()
    matches = match_pair(descriptors_a, descriptors_b, config.matching, device=ctx.device)
    matching_seconds = time.perf_counter() - start
    logger.info("Matched %d pairs in %.3fs", len(matches), matching_seconds)

    return PairResult(
        descriptors_a=descriptors_a,
        descriptors_b=descriptors_b,
        matches=matches,
        extraction_seconds=extraction_seconds,
        matching_seconds=matching_seconds,
    )


def run_pair(
    first_path: str | Path,
    second_path: str | Path,
    output_path: str | Path,
    config: PipelineConfig,
    ctx: PipelineContext | None = None,
) -> PairResult:
    """Match two image files and write a side-by-side composite.

    The composite shows both color images next to each other with one line
    per accepted match.

    Args:
        first_path: First input image.
        second_path: Second input image.
        output_path: Output composite image path.
        config: Pipeline configuration.
        ctx: Precomputed context. If None, one is built from ``config``.

    Returns:
        PairResult for the pair.

    Raises:
        FileNotFoundError: If an input file does not exist.
        ValueError: If an input file cannot be decoded.
    """
    first_path, second_path = Path(first_path), Path(second_path)
    for path in (first_path, second_path):
        if not path.is_file():
            raise FileNotFoundError(f"Image file does not exist: {path}")

    if ctx is None:
        ctx = build_pipeline_context(config)

    # Decoded once in color; extraction converts to grayscale itself
    color_a = load_image(first_path, grayscale=False)
    color_b = load_image(second_path, grayscale=False)
    result = match_images(color_a, color_b, ctx)

    arrays = matches_to_arrays(result.matches, result.descriptors_a, result.descriptors_b)
    render_matches(
        color_a,
        color_b,
        arrays["ref_keypoints"],
        arrays["src_keypoints"],
        output_path=output_path,
        color=tuple(config.runtime.line_color),
    )
    logger.info("Composite saved to %s", output_path)

    return result


class Pipeline:
    """Binary feature matching pipeline.

    Primary programmatic entry point for orbkit. The sampling pattern is
    generated once on construction.

    Example:
        pipeline = Pipeline(config)
        result = pipeline.match(image_a, image_b)
    """

    def __init__(self, config: PipelineConfig | None = None):
        """Initialize the pipeline with configuration.

        Args:
            config: Full pipeline configuration. Defaults are used if None.
        """
        self.config = config if config is not None else PipelineConfig()
        self.context = build_pipeline_context(self.config)

    def extract(self, image: torch.Tensor | np.ndarray) -> list[BinaryDescriptor]:
        """Extract descriptors from one image."""
        return extract_features(image, self.config, pattern=self.context.pattern)

    def match(
        self,
        image_a: torch.Tensor | np.ndarray,
        image_b: torch.Tensor | np.ndarray,
    ) -> PairResult:
        """Extract and match descriptors for an image pair."""
        return match_images(image_a, image_b, self.context)

    def run(
        self,
        first_path: str | Path,
        second_path: str | Path,
        output_path: str | Path,
    ) -> PairResult:
        """Match two image files and write the composite."""
        return run_pair(
            first_path, second_path, output_path, self.config, ctx=self.context
        )
