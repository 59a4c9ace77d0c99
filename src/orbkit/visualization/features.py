"""Keypoint and match overlay rendering."""

import math
from pathlib import Path

import cv2
import numpy as np

from ..image import save_image


def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image.copy()


def _distance_color(distance: float, max_distance: float) -> tuple[int, int, int]:
    # Green (identical) to red (at the acceptance threshold), BGR
    d = min(distance / max_distance, 1.0) if max_distance > 0 else 0.0
    return (0, int(255 * (1 - d)), int(255 * d))


def render_keypoints(
    image: np.ndarray,
    keypoints: np.ndarray,
    orientations: np.ndarray | None = None,
    output_path: str | Path | None = None,
    marker_size: int = 3,
    color: tuple[int, int, int] = (0, 255, 0),
) -> np.ndarray:
    """Draw keypoint markers on an image.

    Args:
        image: Grayscale (H, W) or BGR (H, W, 3) uint8 image.
        keypoints: Pixel coordinates, shape (N, 2), (x, y) format.
        orientations: Optional angles in radians, shape (N,). When given, a
            tick is drawn from each marker in the keypoint's direction.
        output_path: If given, save the result.
        marker_size: Radius of circle markers in pixels.
        color: BGR marker color.

    Returns:
        Annotated BGR image, shape (H, W, 3), uint8.
    """
    vis = _to_bgr(image)
    tick = 3 * marker_size

    for i in range(len(keypoints)):
        u, v = int(round(keypoints[i, 0])), int(round(keypoints[i, 1]))
        cv2.circle(vis, (u, v), marker_size, color, thickness=1, lineType=cv2.LINE_AA)
        if orientations is not None:
            angle = float(orientations[i])
            end = (
                int(round(u + tick * math.cos(angle))),
                int(round(v + tick * math.sin(angle))),
            )
            cv2.line(vis, (u, v), end, color, 1, lineType=cv2.LINE_AA)

    if output_path is not None:
        save_image(vis, output_path)
    return vis


def compose_side_by_side(image_ref: np.ndarray, image_src: np.ndarray) -> np.ndarray:
    """Place two images next to each other on a black canvas.

    Args:
        image_ref: Left image, grayscale or BGR uint8.
        image_src: Right image, grayscale or BGR uint8.

    Returns:
        Canvas of shape (max(H1, H2), W1 + W2, 3), uint8.
    """
    image_ref = _to_bgr(image_ref)
    image_src = _to_bgr(image_src)
    h_ref, w_ref = image_ref.shape[:2]
    h_src, w_src = image_src.shape[:2]

    canvas = np.zeros((max(h_ref, h_src), w_ref + w_src, 3), dtype=np.uint8)
    canvas[:h_ref, :w_ref] = image_ref
    canvas[:h_src, w_ref:] = image_src
    return canvas


def render_matches(
    image_ref: np.ndarray,
    image_src: np.ndarray,
    ref_keypoints: np.ndarray,
    src_keypoints: np.ndarray,
    distances: np.ndarray | None = None,
    max_distance: int = 64,
    output_path: str | Path | None = None,
    color: tuple[int, int, int] = (0, 255, 0),
    line_thickness: int = 1,
    marker_size: int = 0,
) -> np.ndarray:
    """Draw one line per match on a side-by-side image pair.

    Source keypoints are shifted right by the reference image width.

    Args:
        image_ref: Reference image, grayscale or BGR uint8.
        image_src: Source image, grayscale or BGR uint8.
        ref_keypoints: Reference pixel coords, shape (M, 2), (x, y).
        src_keypoints: Source pixel coords, shape (M, 2), (x, y).
        distances: Optional Hamming distances, shape (M,). When given,
            lines are colored from green (0) to red (``max_distance``)
            instead of ``color``.
        max_distance: Distance mapped to pure red.
        output_path: If given, save the result.
        color: BGR line color when ``distances`` is None.
        line_thickness: Line width in pixels.
        marker_size: Endpoint circle radius in pixels (0 = no markers).

    Returns:
        Side-by-side annotated image, shape (max(H1, H2), W1 + W2, 3), uint8.
    """
    canvas = compose_side_by_side(image_ref, image_src)
    w_ref = image_ref.shape[1]

    for i in range(len(ref_keypoints)):
        ru, rv = int(round(ref_keypoints[i, 0])), int(round(ref_keypoints[i, 1]))
        su, sv = int(round(src_keypoints[i, 0])) + w_ref, int(round(src_keypoints[i, 1]))

        if distances is not None:
            line_color = _distance_color(float(distances[i]), max_distance)
        else:
            line_color = color

        cv2.line(canvas, (ru, rv), (su, sv), line_color, line_thickness, lineType=cv2.LINE_AA)
        if marker_size > 0:
            cv2.circle(canvas, (ru, rv), marker_size, line_color, -1, lineType=cv2.LINE_AA)
            cv2.circle(canvas, (su, sv), marker_size, line_color, -1, lineType=cv2.LINE_AA)

    if output_path is not None:
        save_image(canvas, output_path)
    return canvas
