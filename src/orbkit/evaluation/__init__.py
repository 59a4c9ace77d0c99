"""Evaluation utilities for match correctness under known transforms."""

from .metrics import match_accuracy, transform_points
from .synthetic import rotate_about_center

__all__ = [
    "match_accuracy",
    "rotate_about_center",
    "transform_points",
]
