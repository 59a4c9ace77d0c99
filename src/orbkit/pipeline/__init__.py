"""Pipeline orchestration: one-time setup, image pair matching, composites."""

from .builder import build_pipeline_context, setup_pipeline
from .context import PipelineContext
from .runner import PairResult, Pipeline, match_images, run_pair

__all__ = [
    "PairResult",
    "Pipeline",
    "PipelineContext",
    "build_pipeline_context",
    "setup_pipeline",
    "match_images",
    "run_pair",
]
