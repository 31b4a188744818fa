"""Keypoint orientation by intensity centroid and rotated binary descriptors."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, Sequence

import numpy as np

from .keypoint import KeyPoint

_DEGREES_TO_RADIANS = np.float32(math.pi / 180.0)
_DESCRIPTOR_BYTES = 32
_PATTERN_SIZE = _DESCRIPTOR_BYTES * 16


def _as_gray(image) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim != 2:
        raise ValueError("expected a single-channel two-dimensional image")
    return array


def _center(image: np.ndarray, x: float, y: float, reach: int) -> tuple[int, int]:
    cx, cy = int(round(x)), int(round(y))
    height, width = image.shape
    if cx - reach < 0 or cy - reach < 0 or cx + reach >= width or cy + reach >= height:
        raise ValueError(f"patch around ({x}, {y}) does not fit inside the image")
    return cy, cx


def fast_atan2(y: float, x: float) -> float:
    """Return the angle of the vector ``(x, y)`` in degrees, in ``[0, 360)``."""
    angle = math.degrees(math.atan2(y, x))
    if angle < 0.0:
        angle += 360.0
    if angle >= 360.0:
        angle -= 360.0
    return angle


def ic_angle(image, x: float, y: float, umax: Sequence[int]) -> float:
    """Return the intensity-centroid orientation of the circular patch at ``(x, y)``."""
    img = _as_gray(image)
    half = len(umax) - 1
    cy, cx = _center(img, x, y, half)

    offsets = np.arange(-half, half + 1, dtype=np.int64)
    m_10 = int(np.dot(offsets, img[cy, cx - half:cx + half + 1].astype(np.int64)))
    m_01 = 0
    for v, d in enumerate(umax[1:], start=1):
        us = np.arange(-d, d + 1, dtype=np.int64)
        plus = img[cy + v, cx - d:cx + d + 1].astype(np.int64)
        minus = img[cy - v, cx - d:cx + d + 1].astype(np.int64)
        m_01 += v * int((plus - minus).sum())
        m_10 += int(np.dot(us, plus + minus))
    return fast_atan2(float(m_01), float(m_10))


def compute_orientation(image, keypoints: Iterable[KeyPoint], umax: Sequence[int]) -> list[KeyPoint]:
    """Return the keypoints with their angle set from the image patch."""
    img = _as_gray(image)
    return [replace(kp, angle=ic_angle(img, kp.x, kp.y, umax)) for kp in keypoints]


def compute_orb_descriptor(keypoint: KeyPoint, image, pattern) -> bytes:
    """Return the 32-byte binary descriptor of a keypoint, steered by its angle."""
    img = _as_gray(image)
    points = np.asarray(pattern, dtype=np.float32).reshape(-1, 2)
    if len(points) != _PATTERN_SIZE:
        raise ValueError(f"pattern must hold {_PATTERN_SIZE} points")

    angle = np.float32(keypoint.angle) * _DEGREES_TO_RADIANS
    a = np.float32(math.cos(float(angle)))
    b = np.float32(math.sin(float(angle)))
    cy, cx = _center(img, keypoint.x, keypoint.y, 0)

    px, py = points[:, 0], points[:, 1]
    rows = cy + np.rint(px * b + py * a).astype(np.intp)
    cols = cx + np.rint(px * a - py * b).astype(np.intp)
    height, width = img.shape
    if rows.min() < 0 or cols.min() < 0 or rows.max() >= height or cols.max() >= width:
        raise ValueError("descriptor pattern reaches outside the image")

    values = img[rows, cols].astype(np.int64)
    bits = values[0::2] < values[1::2]
    packed = np.packbits(bits.reshape(_DESCRIPTOR_BYTES, 8), axis=1, bitorder="little")
    return packed.ravel().tobytes()


def compute_descriptors(image, keypoints: Iterable[KeyPoint], pattern) -> np.ndarray:
    """Return an ``(n, 32)`` array of uint8 descriptors, one row per keypoint."""
    img = _as_gray(image)
    rows = [
        np.frombuffer(compute_orb_descriptor(kp, img, pattern), dtype=np.uint8)
        for kp in keypoints
    ]
    if not rows:
        return np.zeros((0, _DESCRIPTOR_BYTES), dtype=np.uint8)
    return np.vstack(rows)