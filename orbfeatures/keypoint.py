"""Keypoints and response-based filtering."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable


@dataclass(frozen=True)
class KeyPoint:
    """A detected image feature: position, patch size, orientation and strength."""

    x: float
    y: float
    size: float = 0.0
    angle: float = -1.0
    response: float = 0.0
    octave: int = 0

    @property
    def pt(self) -> tuple[float, float]:
        """The position as an ``(x, y)`` pair."""
        return (self.x, self.y)

    def scaled(self, factor: float) -> "KeyPoint":
        """Return a copy whose coordinates are multiplied by ``factor``."""
        return replace(self, x=self.x * factor, y=self.y * factor)


def retain_best(keypoints: Iterable[KeyPoint], n: int) -> list[KeyPoint]:
    """Keep the ``n`` strongest keypoints plus any tied with the ``n``-th.

    A negative ``n``, or one at least as large as the number of keypoints,
    leaves the keypoints as they are. The kept keypoints are ordered by
    decreasing response.
    """
    points = list(keypoints)
    if n < 0 or len(points) <= n:
        return points
    if n == 0:
        return []
    ranked = sorted(points, key=lambda kp: kp.response, reverse=True)
    threshold = ranked[n - 1].response
    return [kp for kp in ranked if kp.response >= threshold]