"""Helpers shared by the descriptor matchers: distances, thresholds and rotation checks."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .keypoint import KeyPoint

TH_HIGH = 100
TH_LOW = 50
HISTO_LENGTH = 30


def _as_bytes(descriptor) -> bytes:
    if isinstance(descriptor, (bytes, bytearray, memoryview)):
        return bytes(descriptor)
    return np.ascontiguousarray(descriptor, dtype=np.uint8).tobytes()


def descriptor_distance(a, b) -> int:
    """Return the Hamming distance between two binary descriptors."""
    first, second = _as_bytes(a), _as_bytes(b)
    if len(first) != len(second):
        raise ValueError("descriptors must have the same length")
    xor = int.from_bytes(first, "little") ^ int.from_bytes(second, "little")
    return bin(xor).count("1")


def compute_three_maxima(histogram: Sequence[int]) -> tuple[int, int, int]:
    """Return the indices of the three largest bins, or -1 where absent.

    The second and third are dropped when they hold less than a tenth of the first.
    """
    max1 = max2 = max3 = 0
    ind1 = ind2 = ind3 = -1
    for index, size in enumerate(histogram):
        if size > max1:
            max3, max2, max1 = max2, max1, size
            ind3, ind2, ind1 = ind2, ind1, index
        elif size > max2:
            max3, max2 = max2, size
            ind3, ind2 = ind2, index
        elif size > max3:
            max3, ind3 = size, index

    if max2 < 0.1 * max1:
        ind2 = ind3 = -1
    elif max3 < 0.1 * max1:
        ind3 = -1
    return ind1, ind2, ind3


def radius_by_viewing_cos(view_cos: float) -> float:
    """Return the search radius factor for a point seen at the given viewing cosine."""
    return 2.5 if view_cos > 0.998 else 4.0


def check_dist_epipolar_line(kp1: KeyPoint, kp2: KeyPoint, f12, sigma2: Sequence[float]) -> bool:
    """Tell whether ``kp2`` lies close to the epipolar line of ``kp1``.

    ``sigma2`` holds the squared scale of each pyramid level of the second image.
    """
    f = np.asarray(f12, dtype=np.float64)
    if f.shape != (3, 3):
        raise ValueError("fundamental matrix must be 3x3")
    a = kp1.x * f[0, 0] + kp1.y * f[1, 0] + f[2, 0]
    b = kp1.x * f[0, 1] + kp1.y * f[1, 1] + f[2, 1]
    c = kp1.x * f[0, 2] + kp1.y * f[1, 2] + f[2, 2]
    numerator = a * kp2.x + b * kp2.y + c
    denominator = a * a + b * b
    if denominator == 0:
        return False
    return numerator * numerator / denominator < 3.84 * sigma2[kp2.octave]


def rotation_bin(angle1: float, angle2: float) -> int:
    """Return the histogram bin of the orientation difference between two keypoints."""
    rotation = angle1 - angle2
    if rotation < 0.0:
        rotation += 360.0
    index = int(math.floor(rotation * (1.0 / HISTO_LENGTH) + 0.5))
    if index == HISTO_LENGTH:
        index = 0
    if not 0 <= index < HISTO_LENGTH:
        raise ValueError("angles must lie in [0, 360)")
    return index


@dataclass
class RotationHistogram:
    """Collects match indices by orientation difference to reject inconsistent ones."""

    bins: list[list[int]] = field(default_factory=lambda: [[] for _ in range(HISTO_LENGTH)])

    def add(self, angle1: float, angle2: float, index: int) -> None:
        """Record a match between keypoints with the given angles."""
        self.bins[rotation_bin(angle1, angle2)].append(index)

    def outliers(self) -> list[int]:
        """Return the indices recorded outside the three dominant bins."""
        kept = set(compute_three_maxima([len(b) for b in self.bins]))
        return [
            index
            for position, indices in enumerate(self.bins)
            if position not in kept
            for index in indices
        ]