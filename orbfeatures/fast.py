"""FAST corner detection on a 16-pixel Bresenham circle of radius 3."""

from __future__ import annotations

import numpy as np

from .keypoint import KeyPoint

# (dx, dy) offsets around the circle, in order.
_CIRCLE = (
    (0, 3), (1, 3), (2, 2), (3, 1), (3, 0), (3, -1), (2, -2), (1, -3),
    (0, -3), (-1, -3), (-2, -2), (-3, -1), (-3, 0), (-3, 1), (-2, 2), (-1, 3),
)
_ARC = 9
_RADIUS = 3
_KEYPOINT_SIZE = 7.0


def _arc_minimum(values: np.ndarray) -> np.ndarray:
    """Minimum over every run of ``_ARC`` consecutive circle samples, wrapping around."""
    extended = np.concatenate([values, values[: _ARC - 1]], axis=0)
    count = len(_CIRCLE)
    result = extended[0:count]
    for k in range(1, _ARC):
        result = np.minimum(result, extended[k:k + count])
    return result


def fast_detect(image, threshold: int, nonmax_suppression: bool = True) -> list[KeyPoint]:
    """Detect FAST corners; the response is the largest threshold still passed.

    Keypoints come out in row-major order.
    """
    img = np.asarray(image)
    if img.ndim != 2:
        raise ValueError("expected a single-channel two-dimensional image")
    height, width = img.shape
    if height < 2 * _RADIUS + 1 or width < 2 * _RADIUS + 1:
        return []
    t = min(max(int(threshold), 0), 255)

    data = img.astype(np.int32)
    r = _RADIUS
    center = data[r:height - r, r:width - r]
    diffs = np.stack([
        data[r + dy:height - r + dy, r + dx:width - r + dx] - center
        for dx, dy in _CIRCLE
    ])

    brighter = _arc_minimum(diffs).max(axis=0)
    darker = _arc_minimum(-diffs).max(axis=0)
    best = np.maximum(brighter, darker)
    corner = best > t

    scores = np.zeros((height, width), dtype=np.int32)
    scores[r:height - r, r:width - r] = np.where(corner, best - 1, 0)
    mask = np.zeros((height, width), dtype=bool)
    mask[r:height - r, r:width - r] = corner

    if nonmax_suppression:
        padded = np.pad(scores, 1, mode="constant")
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                neighbour = padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]
                mask &= scores > neighbour

    ys, xs = np.nonzero(mask)
    return [
        KeyPoint(x=float(x), y=float(y), size=_KEYPOINT_SIZE, angle=-1.0,
                 response=float(scores[y, x]), octave=0)
        for y, x in zip(ys.tolist(), xs.tolist())
    ]