"""Visualization outputs for keypoints and matches."""

from .features import compose_side_by_side, render_keypoints, render_matches

__all__ = [
    "compose_side_by_side",
    "render_keypoints",
    "render_matches",
]
