"""Keypoint detection, binary description, and matching."""

from .description import compute_descriptors, stack_descriptors
from .detection import corner_scores, detect_keypoints, non_max_suppression
from .extraction import (
    create_pattern,
    extract_features,
    extract_features_batch,
    load_features,
    save_features,
)
from .matching import (
    distance_matrix,
    hamming_distance,
    match_descriptor_arrays,
    match_descriptors,
    match_pair,
    matches_to_arrays,
)
from .orientation import assign_orientations, compute_orientations
from .pattern import SamplingPattern, generate_pattern

__all__ = [
    "SamplingPattern",
    "generate_pattern",
    "create_pattern",
    "corner_scores",
    "non_max_suppression",
    "detect_keypoints",
    "compute_orientations",
    "assign_orientations",
    "compute_descriptors",
    "stack_descriptors",
    "extract_features",
    "extract_features_batch",
    "save_features",
    "load_features",
    "distance_matrix",
    "hamming_distance",
    "match_descriptor_arrays",
    "match_descriptors",
    "match_pair",
    "matches_to_arrays",
]
