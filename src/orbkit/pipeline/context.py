"""Pipeline context dataclass for precomputed data."""

from dataclasses import dataclass

from ..config import PipelineConfig
from ..features.pattern import SamplingPattern


@dataclass
class PipelineContext:
    """Precomputed data that is constant across all images.

    Created once by setup_pipeline() and reused for every image, so every
    descriptor produced through one context shares the same pattern.
    """

    config: PipelineConfig
    pattern: SamplingPattern
    device: str
