"""Pipeline context builder for one-time initialization."""

import logging

import torch

from ..config import PipelineConfig
from ..features import create_pattern
from .context import PipelineContext

logger = logging.getLogger(__name__)


def build_pipeline_context(config: PipelineConfig) -> PipelineContext:
    """Perform one-time pipeline initialization.

    Generates the sampling pattern and resolves the compute device.

    Args:
        config: Full pipeline configuration.

    Returns:
        PipelineContext with all precomputed data.
    """
    device = config.runtime.device
    if device == "cuda" and not torch.cuda.is_available():
        logger.warning("CUDA requested but not available, falling back to CPU")
        device = "cpu"

    logger.info(
        "Generating sampling pattern (%d pairs, radius %d, seed %d)",
        config.description.pattern_size,
        config.description.patch_radius,
        config.description.seed,
    )
    pattern = create_pattern(config.description)

    return PipelineContext(config=config, pattern=pattern, device=device)


# Shorter alias used by the public API
setup_pipeline = build_pipeline_context
