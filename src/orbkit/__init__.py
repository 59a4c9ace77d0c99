"""Oriented binary feature detection, description, and matching."""

from .config import (
    DescriptorConfig,
    DetectionConfig,
    MatchingConfig,
    OrientationConfig,
    PipelineConfig,
    RuntimeConfig,
)
from .features import (
    SamplingPattern,
    assign_orientations,
    compute_descriptors,
    detect_keypoints,
    extract_features,
    generate_pattern,
    hamming_distance,
    load_features,
    match_descriptors,
    save_features,
)
from .pipeline import (
    PairResult,
    Pipeline,
    PipelineContext,
    match_images,
    run_pair,
    setup_pipeline,
)
from .types import BinaryDescriptor, Keypoint, Match

__version__ = "0.1.0"

__all__ = [
    "PipelineConfig",
    "DetectionConfig",
    "OrientationConfig",
    "DescriptorConfig",
    "MatchingConfig",
    "RuntimeConfig",
    "Keypoint",
    "BinaryDescriptor",
    "Match",
    "SamplingPattern",
    "generate_pattern",
    "detect_keypoints",
    "assign_orientations",
    "compute_descriptors",
    "extract_features",
    "save_features",
    "load_features",
    "hamming_distance",
    "match_descriptors",
    "PairResult",
    "Pipeline",
    "PipelineContext",
    "setup_pipeline",
    "match_images",
    "run_pair",
]
