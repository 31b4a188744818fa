import numpy as np
import pytest

from orbfeatures.keypoint import KeyPoint
from orbfeatures.matcher import ORBMatcher
from orbfeatures.wordmatch import FeatureSet

RECTIFIED_F = [[0.0, 0.0, 0.0], [0.0, 0.0, -1.0], [0.0, 1.0, 0.0]]
FAR_EPIPOLE = (1.0e6, 1.0e6)


def _descriptors(n, seed=0):
    return np.random.default_rng(seed).integers(0, 256, (n, 32), dtype=np.uint8)


def _own_words(n):
    return {i: [i] for i in range(n)}


def _grid_keypoints(n, dx=0.0, dy=0.0, angle=0.0, octave=0):
    return [KeyPoint(x=40.0 * i + dx, y=30.0 + 20.0 * i + dy, angle=angle, octave=octave)
            for i in range(n)]


def _window_query(features):
    def query(x, y, radius, min_level, max_level):
        return [
            i for i, kp in enumerate(features.keypoints)
            if abs(kp.x - x) < radius and abs(kp.y - y) < radius
            and min_level <= kp.octave <= max_level
        ]
    return query


def test_match_by_words_identical_sets():
    desc = _descriptors(5)
    kps = _grid_keypoints(5)
    fs1 = FeatureSet(kps, desc, _own_words(5))
    fs2 = FeatureSet(kps, desc.copy(), _own_words(5))
    assert ORBMatcher().match_by_words(fs1, fs2) == {i: i for i in range(5)}


def test_match_by_words_ambiguous_rejected():
    desc = _descriptors(1)
    fs1 = FeatureSet(_grid_keypoints(1), desc, {0: [0]})
    fs2 = FeatureSet(_grid_keypoints(2), np.vstack([desc, desc]), {0: [0, 1]})
    assert ORBMatcher().match_by_words(fs1, fs2) == {}


def test_match_by_words_orientation_outlier_dropped():
    n = 11
    desc = _descriptors(n)
    kps1 = _grid_keypoints(n)
    kps1[-1] = KeyPoint(x=kps1[-1].x, y=kps1[-1].y, angle=180.0)
    fs1 = FeatureSet(kps1, desc, _own_words(n))
    fs2 = FeatureSet(_grid_keypoints(n), desc.copy(), _own_words(n))
    checked = ORBMatcher(0.6, True).match_by_words(fs1, fs2)
    unchecked = ORBMatcher(0.6, False).match_by_words(fs1, fs2)
    assert set(checked) == set(range(n - 1))
    assert set(unchecked) == set(range(n))


def test_search_for_initialization_matches_and_updates_positions():
    n = 4
    desc = _descriptors(n)
    fs1 = FeatureSet(_grid_keypoints(n), desc, _own_words(n))
    fs2 = FeatureSet(_grid_keypoints(n, dx=1.0, dy=1.0), desc.copy(), _own_words(n))
    prev = [kp.pt for kp in fs1.keypoints]
    matches, updated = ORBMatcher().search_for_initialization(
        fs1, fs2, prev, _window_query(fs2), 5)
    assert matches == list(range(n))
    assert updated == [kp.pt for kp in fs2.keypoints]


def test_search_for_initialization_skips_higher_octaves():
    n = 3
    desc = _descriptors(n)
    fs1 = FeatureSet(_grid_keypoints(n, octave=1), desc, _own_words(n))
    fs2 = FeatureSet(_grid_keypoints(n, octave=1), desc.copy(), _own_words(n))
    prev = [kp.pt for kp in fs1.keypoints]
    matches, updated = ORBMatcher().search_for_initialization(
        fs1, fs2, prev, _window_query(fs2), 5)
    assert matches == [-1] * n
    assert updated == prev


def test_search_for_initialization_keeps_first_of_equal_claims():
    desc = _descriptors(1)
    kp = KeyPoint(x=50.0, y=50.0)
    fs1 = FeatureSet([kp, kp], np.vstack([desc, desc]), {0: [0, 1]})
    fs2 = FeatureSet([kp], desc.copy(), {0: [0]})
    matches, _ = ORBMatcher().search_for_initialization(
        fs1, fs2, [kp.pt, kp.pt], _window_query(fs2), 5)
    assert matches == [0, -1]


def test_search_for_initialization_length_mismatch():
    desc = _descriptors(2)
    fs = FeatureSet(_grid_keypoints(2), desc, _own_words(2))
    with pytest.raises(ValueError):
        ORBMatcher().search_for_initialization(fs, fs, [(0.0, 0.0)], _window_query(fs), 5)


def _free_set(keypoints, desc):
    return FeatureSet(keypoints, desc, _own_words(len(keypoints)), valid=[False] * len(keypoints))


def test_triangulation_pairs_points_on_epipolar_line():
    n = 4
    desc = _descriptors(n)
    fs1 = _free_set(_grid_keypoints(n), desc)
    fs2 = _free_set(_grid_keypoints(n, dx=-7.0), desc.copy())
    pairs = ORBMatcher().search_for_triangulation(
        fs1, fs2, RECTIFIED_F, FAR_EPIPOLE, [1.0], [1.0], False)
    assert pairs == [(i, i) for i in range(n)]


def test_triangulation_rejects_points_off_the_line():
    n = 3
    desc = _descriptors(n)
    fs1 = _free_set(_grid_keypoints(n), desc)
    fs2 = _free_set(_grid_keypoints(n, dy=10.0), desc.copy())
    pairs = ORBMatcher().search_for_triangulation(
        fs1, fs2, RECTIFIED_F, FAR_EPIPOLE, [1.0], [1.0], False)
    assert pairs == []


def test_triangulation_rejects_points_near_epipole():
    desc = _descriptors(1)
    kp = KeyPoint(x=100.0, y=60.0)
    fs1 = _free_set([kp], desc)
    fs2 = _free_set([kp], desc.copy())
    near = ORBMatcher().search_for_triangulation(
        fs1, fs2, RECTIFIED_F, kp.pt, [1.0], [1.0], False)
    far = ORBMatcher().search_for_triangulation(
        fs1, fs2, RECTIFIED_F, FAR_EPIPOLE, [1.0], [1.0], False)
    assert near == []
    assert far == [(0, 0)]


def test_triangulation_skips_features_with_map_points():
    n = 3
    desc = _descriptors(n)
    kps = _grid_keypoints(n)
    fs1 = FeatureSet(kps, desc, _own_words(n), valid=[True, False, False])
    fs2 = FeatureSet(kps, desc.copy(), _own_words(n), valid=[False, False, True])
    pairs = ORBMatcher().search_for_triangulation(
        fs1, fs2, RECTIFIED_F, FAR_EPIPOLE, [1.0], [1.0], False)
    assert pairs == [(1, 1)]


def test_triangulation_only_stereo():
    n = 3
    desc = _descriptors(n)
    fs1 = _free_set(_grid_keypoints(n), desc)
    fs2 = _free_set(_grid_keypoints(n), desc.copy())
    matcher = ORBMatcher()
    assert matcher.search_for_triangulation(
        fs1, fs2, RECTIFIED_F, FAR_EPIPOLE, [1.0], [1.0], True) == []

    fs1.right = [5.0, -1.0, 5.0]
    fs2.right = [5.0, 5.0, 5.0]
    pairs = matcher.search_for_triangulation(
        fs1, fs2, RECTIFIED_F, FAR_EPIPOLE, [1.0], [1.0], True)
    assert pairs == [(0, 0), (2, 2)]


def test_triangulation_bad_fundamental_matrix():
    desc = _descriptors(1)
    fs1 = _free_set(_grid_keypoints(1), desc)
    fs2 = _free_set(_grid_keypoints(1), desc.copy())
    with pytest.raises(ValueError):
        ORBMatcher().search_for_triangulation(
            fs1, fs2, [[1.0, 0.0], [0.0, 1.0]], FAR_EPIPOLE, [1.0], [1.0], False)