# orbfeatures

Oriented FAST and rotated BRIEF (ORB) features for grayscale images, built on
numpy alone, together with the descriptor matching routines that go with them.

## What is in the package

| Module | Contents |
| --- | --- |
| `orbfeatures.keypoint` | `KeyPoint` (frozen dataclass: `x`, `y`, `size`, `angle`, `response`, `octave`, `pt`, `scaled()`), `retain_best()` |
| `orbfeatures.pattern` | `pattern_points()` (the 512 descriptor sampling points), `circular_umax()`, `PATCH_SIZE`, `HALF_PATCH_SIZE`, `EDGE_THRESHOLD` |
| `orbfeatures.imaging` | `reflect101_border()`, `resize_linear()` (bilinear), `gaussian_blur()` (separable, mirrored borders) |
| `orbfeatures.fast` | `fast_detect()`: FAST-9 corners on a radius-3 circle, with optional non-maximum suppression |
| `orbfeatures.octree` | `ExtractorNode` and `distribute_oct_tree()`: spread keypoints evenly by quadrant splitting, keeping the strongest per cell |
| `orbfeatures.descriptor` | `fast_atan2()`, `ic_angle()`, `compute_orientation()`, `compute_orb_descriptor()`, `compute_descriptors()` |
| `orbfeatures.extractor` | `ORBExtractor`: pyramid, per-cell detection, quadtree distribution, orientation and descriptors |
| `orbfeatures.matchutil` | `descriptor_distance()`, `compute_three_maxima()`, `radius_by_viewing_cos()`, `check_dist_epipolar_line()`, `rotation_bin()`, `RotationHistogram`, thresholds `TH_HIGH`, `TH_LOW`, `HISTO_LENGTH` |
| `orbfeatures.wordmatch` | `FeatureSet`, `common_words()`, `best_two()`, `match_by_words()` |
| `orbfeatures.projection` | `Camera` (pinhole `project()` and `contains()`), `best_in_window()`, `mutual_matches()` |
| `orbfeatures.matcher` | `ORBMatcher`: word matching, initialization search, triangulation search |

## Installation

Install from the project directory with pip; the `test` extra adds pytest and
hypothesis.

## Extracting features

The image must be a 2-D `uint8` array.

```python
import numpy as np
from orbfeatures.extractor import ORBExtractor

image = np.asarray(..., dtype=np.uint8)   # your grayscale image

extractor = ORBExtractor(
    nfeatures=1000,
    scale_factor=1.2,
    nlevels=8,
    ini_th_fast=20,
    min_th_fast=7,
)
keypoints, descriptors = extractor(image, None)   # same as extractor.extract(image)
```

`keypoints` is a list of `KeyPoint` objects with positions in the frame of the
original image, the pyramid level in `octave`, the scaled patch size, the
intensity-centroid angle in degrees and the FAST response. `descriptors` is an
`(n, 32)` `uint8` array, one row per keypoint. An empty image gives no
keypoints and a `(0, 32)` array. The `mask` argument is accepted but not used.

The extractor keeps its per-level data as attributes: `scale_factors`,
`inv_scale_factors`, `level_sigma2`, `inv_level_sigma2`, `features_per_level`
and, after a call, `image_pyramid`. The steps can also be run one at a time:
`compute_pyramid(image)`, then `compute_keypoints_oct_tree()` or the fixed-grid
variant `compute_keypoints_old()`, each returning one list of keypoints per level.

## Comparing descriptors

```python
from orbfeatures.matchutil import descriptor_distance

distance = descriptor_distance(descriptors[0], descriptors[1])  # Hamming distance, 0..256
```

`RotationHistogram` records matches by the difference of their keypoint angles
(30 bins); `outliers()` returns the indices outside the three dominant bins
found by `compute_three_maxima`. `check_dist_epipolar_line(kp1, kp2, f12, sigma2)`
tests whether `kp2` lies within the chi-square bound of the epipolar line of
`kp1` under the fundamental matrix `f12`.

## Matching two feature sets

A `FeatureSet` holds keypoints, their descriptors and a mapping from vocabulary
word to the indices of the features in that word. The optional `valid` flags
mark which features carry a map point (`None` means all of them).

```python
from orbfeatures.matcher import ORBMatcher
from orbfeatures.wordmatch import FeatureSet

set1 = FeatureSet(keypoints1, descriptors1, words1)
set2 = FeatureSet(keypoints2, descriptors2, words2)

matcher = ORBMatcher(nn_ratio=0.6, check_orientation=True)
matches = matcher.match_by_words(set1, set2)   # {index in set1: index in set2}
```

- `match_by_words` compares only features that share a word, requires a
  distance below `TH_LOW` that passes the ratio test, and, with
  `check_orientation`, drops matches outside the dominant rotations.
- `search_for_initialization(features1, features2, prev_matched,
  features_in_area, window_size)` matches the level-0 features of the first
  set around their previous positions. `features_in_area(x, y, radius,
  min_level, max_level)` is a callable you supply that returns candidate
  indices in the second set. It returns one match index per feature of the
  first set (-1 when unmatched) and the updated positions.
- `search_for_triangulation(features1, features2, f12, epipole, sigma2,
  scale_factors, only_stereo)` pairs features without a map point that satisfy
  the epipolar constraint and lie away from the epipole; it returns
  `(index1, index2)` pairs. A feature set may be given a `right` attribute of
  right-image coordinates, where a non-negative value marks a stereo feature.

`orbfeatures.projection` offers the building blocks for window searches:
`Camera.project()` maps a world point to a pixel (or `None` behind the camera),
`best_in_window()` picks the closest descriptor among candidates within an
octave range, and `mutual_matches()` keeps matches that agree both ways.

## What the package does not do

It has no map, keyframes or tracking: there is no storage of map points, no
pose or bundle-adjustment optimization, and no matching of map points projected
into frames or keyframes. It does not build or load a visual vocabulary; the
word groupings in a `FeatureSet` must be supplied. It does not undistort
images or keypoints, and it provides no command-line program.

## Tests

The tests run under pytest with the `test` extra installed.