"""Matching two feature sets through the visual words they share."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional, Sequence

import numpy as np

from .keypoint import KeyPoint
from .matchutil import TH_LOW, RotationHistogram, descriptor_distance

_NO_MATCH_DISTANCE = 256


@dataclass
class FeatureSet:
    """Keypoints of one image with their descriptors and vocabulary words.

    ``words`` maps a vocabulary node to the indices of the features that fall
    in it. ``valid`` tells which features carry a usable map point; ``None``
    means all of them do.
    """

    keypoints: Sequence[KeyPoint]
    descriptors: np.ndarray
    words: Mapping[int, Sequence[int]]
    valid: Optional[Sequence[bool]] = None

    def __post_init__(self) -> None:
        self.descriptors = np.asarray(self.descriptors, dtype=np.uint8)
        if self.descriptors.ndim != 2 or len(self.descriptors) != len(self.keypoints):
            raise ValueError("need one descriptor row per keypoint")
        if self.valid is not None and len(self.valid) != len(self.keypoints):
            raise ValueError("need one validity flag per keypoint")
        size = len(self.keypoints)
        for word, indices in self.words.items():
            if any(not 0 <= index < size for index in indices):
                raise ValueError(f"word {word} refers to a feature that does not exist")

    def __len__(self) -> int:
        return len(self.keypoints)

    def has_point(self, index: int) -> bool:
        """Tell whether the feature at ``index`` carries a usable map point."""
        return self.valid is None or bool(self.valid[index])


def common_words(
    words1: Mapping[int, Sequence[int]], words2: Mapping[int, Sequence[int]]
) -> Iterator[tuple[int, Sequence[int], Sequence[int]]]:
    """Yield ``(word, indices1, indices2)`` for every shared word, in increasing word order."""
    for word in sorted(words1.keys() & words2.keys()):
        yield word, words1[word], words2[word]


def best_two(descriptor, candidates: Iterable[int], descriptors) -> tuple[int, int, int]:
    """Return ``(best distance, best index, second best distance)`` among the candidates.

    With no candidates the index is -1 and both distances are 256.
    """
    best_dist = second_dist = _NO_MATCH_DISTANCE
    best_idx = -1
    for index in candidates:
        dist = descriptor_distance(descriptor, descriptors[index])
        if dist < best_dist:
            second_dist, best_dist, best_idx = best_dist, dist, index
        elif dist < second_dist:
            second_dist = dist
    return best_dist, best_idx, second_dist


def match_by_words(
    features1: FeatureSet,
    features2: FeatureSet,
    nn_ratio: float = 0.6,
    check_orientation: bool = True,
) -> dict[int, int]:
    """Match features that share a word; return a map from index in the first set to the second.

    A match needs a distance below the low threshold and clearly smaller than
    the second best. With ``check_orientation``, matches whose orientation
    change falls outside the three dominant directions are dropped.
    """
    matches: dict[int, int] = {}
    matched2: set[int] = set()
    histogram = RotationHistogram()

    for _, indices1, indices2 in common_words(features1.words, features2.words):
        for idx1 in indices1:
            if not features1.has_point(idx1):
                continue
            candidates = [
                idx2 for idx2 in indices2
                if idx2 not in matched2 and features2.has_point(idx2)
            ]
            best_dist, best_idx, second_dist = best_two(
                features1.descriptors[idx1], candidates, features2.descriptors
            )
            if best_dist >= TH_LOW or not best_dist < nn_ratio * second_dist:
                continue
            matches[idx1] = best_idx
            matched2.add(best_idx)
            if check_orientation:
                histogram.add(
                    features1.keypoints[idx1].angle,
                    features2.keypoints[best_idx].angle,
                    idx1,
                )

    if check_orientation:
        for idx1 in histogram.outliers():
            matches.pop(idx1, None)
    return matches