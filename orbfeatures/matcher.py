"""Descriptor matching between two images: by shared words, in a window, and along epipolar lines."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from .matchutil import TH_LOW, RotationHistogram, check_dist_epipolar_line, descriptor_distance
from .wordmatch import FeatureSet, common_words
from .wordmatch import match_by_words as _match_by_words

_INT_MAX = 2**31 - 1
_EPIPOLE_MIN_DISTANCE = 100.0

AreaQuery = Callable[[float, float, float, int, int], Sequence[int]]


def _right_coords(features: FeatureSet) -> Optional[Sequence[float]]:
    right = getattr(features, "right", None)
    if right is not None and len(right) != len(features):
        raise ValueError("need one right-image coordinate per keypoint")
    return right


def _is_stereo(right: Optional[Sequence[float]], index: int) -> bool:
    return right is not None and right[index] >= 0


class ORBMatcher:
    """Matches binary descriptors under a nearest-neighbour ratio and an orientation check."""

    def __init__(self, nn_ratio: float = 0.6, check_orientation: bool = True) -> None:
        self.nn_ratio = nn_ratio
        self.check_orientation = check_orientation

    def match_by_words(self, features1: FeatureSet, features2: FeatureSet) -> dict[int, int]:
        """Match features sharing a vocabulary word; map index in the first set to the second."""
        return _match_by_words(features1, features2, self.nn_ratio, self.check_orientation)

    def search_for_initialization(
        self,
        features1: FeatureSet,
        features2: FeatureSet,
        prev_matched: Sequence[tuple[float, float]],
        features_in_area: AreaQuery,
        window_size: float,
    ) -> tuple[list[int], list[tuple[float, float]]]:
        """Match first-octave features of the first image around their previous positions.

        ``features_in_area(x, y, radius, min_level, max_level)`` returns indices of
        the second image's features in the window. Returns the match of every
        feature of the first image (-1 when unmatched) and the updated positions.
        """
        if len(prev_matched) != len(features1):
            raise ValueError("need one previous position per feature of the first image")

        matches12 = [-1] * len(features1)
        matches21 = [-1] * len(features2)
        matched_distance = [_INT_MAX] * len(features2)
        histogram = RotationHistogram()

        for i1, kp1 in enumerate(features1.keypoints):
            level = kp1.octave
            if level > 0:
                continue
            x, y = prev_matched[i1]
            candidates = features_in_area(x, y, window_size, level, level)

            descriptor = features1.descriptors[i1]
            best_dist = second_dist = _INT_MAX
            best_idx = -1
            for i2 in candidates:
                dist = descriptor_distance(descriptor, features2.descriptors[i2])
                if matched_distance[i2] <= dist:
                    continue
                if dist < best_dist:
                    second_dist, best_dist, best_idx = best_dist, dist, i2
                elif dist < second_dist:
                    second_dist = dist

            if best_dist > TH_LOW or not best_dist < float(second_dist) * self.nn_ratio:
                continue

            previous = matches21[best_idx]
            if previous >= 0:
                matches12[previous] = -1
            matches12[i1] = best_idx
            matches21[best_idx] = i1
            matched_distance[best_idx] = best_dist

            if self.check_orientation:
                histogram.add(kp1.angle, features2.keypoints[best_idx].angle, i1)

        if self.check_orientation:
            for i1 in histogram.outliers():
                matches12[i1] = -1

        updated = [
            features2.keypoints[idx2].pt if idx2 >= 0 else tuple(prev_matched[i1])
            for i1, idx2 in enumerate(matches12)
        ]
        return matches12, updated

    def search_for_triangulation(
        self,
        features1: FeatureSet,
        features2: FeatureSet,
        f12,
        epipole: tuple[float, float],
        sigma2: Sequence[float],
        scale_factors: Sequence[float],
        only_stereo: bool = False,
    ) -> list[tuple[int, int]]:
        """Pair features without a map point that satisfy the epipolar constraint.

        Features for which ``has_point`` is true already carry a map point and
        are skipped. A feature set may carry a ``right`` sequence of right-image
        coordinates; a non-negative value marks a stereo feature. ``epipole``,
        ``sigma2`` and ``scale_factors`` describe the second image. Returns the
        pairs ``(index1, index2)`` ordered by the first index.
        """
        right1 = _right_coords(features1)
        right2 = _right_coords(features2)
        ex, ey = epipole
        matches12 = [-1] * len(features1)
        histogram = RotationHistogram()

        for _, indices1, indices2 in common_words(features1.words, features2.words):
            for idx1 in indices1:
                if features1.has_point(idx1):
                    continue
                stereo1 = _is_stereo(right1, idx1)
                if only_stereo and not stereo1:
                    continue

                kp1 = features1.keypoints[idx1]
                descriptor = features1.descriptors[idx1]
                best_dist = TH_LOW
                best_idx = -1

                for idx2 in indices2:
                    if features2.has_point(idx2):
                        continue
                    stereo2 = _is_stereo(right2, idx2)
                    if only_stereo and not stereo2:
                        continue
                    dist = descriptor_distance(descriptor, features2.descriptors[idx2])
                    if dist > TH_LOW or dist > best_dist:
                        continue

                    kp2 = features2.keypoints[idx2]
                    if not stereo1 and not stereo2:
                        dx, dy = ex - kp2.x, ey - kp2.y
                        if dx * dx + dy * dy < _EPIPOLE_MIN_DISTANCE * scale_factors[kp2.octave]:
                            continue

                    if check_dist_epipolar_line(kp1, kp2, f12, sigma2):
                        best_idx, best_dist = idx2, dist

                if best_idx >= 0:
                    matches12[idx1] = best_idx
                    if self.check_orientation:
                        histogram.add(kp1.angle, features2.keypoints[best_idx].angle, idx1)

        if self.check_orientation:
            for idx1 in histogram.outliers():
                matches12[idx1] = -1

        return [(idx1, idx2) for idx1, idx2 in enumerate(matches12) if idx2 >= 0]