"""Projecting points into a camera and picking the closest descriptor in a search window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Union

import numpy as np

from .matchutil import descriptor_distance

_NO_MATCH_DISTANCE = 256


@dataclass
class Camera:
    """A pinhole camera with its image bounds and its pose from world to camera.

    ``rotation`` and ``translation`` default to the identity pose, so that
    points are then taken to be in camera coordinates already.
    """

    fx: float
    fy: float
    cx: float
    cy: float
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    rotation: Optional[np.ndarray] = None
    translation: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        if self.rotation is None:
            self.rotation = np.eye(3)
        if self.translation is None:
            self.translation = np.zeros(3)
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).reshape(-1)
        if self.rotation.shape != (3, 3):
            raise ValueError("rotation must be a 3x3 matrix")
        if self.translation.shape != (3,):
            raise ValueError("translation must hold three values")
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError("image bounds are inverted")

    def project(self, point) -> Optional[tuple[float, float]]:
        """Return the pixel ``(u, v)`` of a world point, or ``None`` if it lies behind the camera."""
        world = np.asarray(point, dtype=np.float64).reshape(-1)
        if world.shape != (3,):
            raise ValueError("point must hold three coordinates")
        x, y, z = self.rotation @ world + self.translation
        if z <= 0.0:
            return None
        inv_z = 1.0 / z
        return float(self.fx * x * inv_z + self.cx), float(self.fy * y * inv_z + self.cy)

    def contains(self, u: float, v: float) -> bool:
        """Tell whether the pixel lies within the image bounds, edges included."""
        return self.min_x <= u <= self.max_x and self.min_y <= v <= self.max_y


def best_in_window(
    descriptor,
    candidates: Iterable[int],
    descriptors,
    octaves: Union[Sequence[int], Mapping[int, int]],
    min_level: int,
    max_level: Optional[int],
) -> tuple[int, int]:
    """Return ``(distance, index)`` of the candidate closest to ``descriptor``.

    Candidates whose octave lies outside ``[min_level, max_level]`` are
    skipped; a ``max_level`` of ``None`` leaves the upper end open. With no
    usable candidate the distance is 256 and the index -1.
    """
    best_dist = _NO_MATCH_DISTANCE
    best_idx = -1
    for index in candidates:
        level = octaves[index]
        if level < min_level or (max_level is not None and level > max_level):
            continue
        dist = descriptor_distance(descriptor, descriptors[index])
        if dist < best_dist:
            best_dist, best_idx = dist, index
    return best_dist, best_idx


def mutual_matches(matches12: Sequence[int], matches21: Sequence[int]) -> dict[int, int]:
    """Keep the matches that agree both ways; -1 marks an unmatched entry.

    Returns a map from index in the first set to index in the second.
    """
    agreed: dict[int, int] = {}
    for idx1, idx2 in enumerate(matches12):
        if idx2 < 0:
            continue
        if idx2 >= len(matches21):
            raise IndexError(f"match {idx1} -> {idx2} refers to a missing entry")
        if matches21[idx2] == idx1:
            agreed[idx1] = idx2
    return agreed