"""Multi-scale detection of oriented FAST keypoints with rotated binary descriptors."""

from __future__ import annotations

import math
from dataclasses import replace

import numpy as np

from .descriptor import compute_descriptors, compute_orientation
from .fast import fast_detect
from .imaging import gaussian_blur, resize_linear
from .keypoint import KeyPoint, retain_best
from .octree import distribute_oct_tree
from .pattern import EDGE_THRESHOLD, HALF_PATCH_SIZE, PATCH_SIZE, circular_umax, pattern_points

_CELL_SIZE = 30.0
_DESCRIPTOR_BYTES = 32


def _features_per_level(nfeatures: int, scale_factor: float, nlevels: int) -> list[int]:
    factor = 1.0 / scale_factor
    desired = nfeatures * (1 - factor) / (1 - factor**nlevels)
    counts: list[int] = []
    for _ in range(nlevels - 1):
        counts.append(round(desired))
        desired *= factor
    counts.append(max(nfeatures - sum(counts), 0))
    return counts


class ORBExtractor:
    """Detects keypoints over an image pyramid and describes them with 256-bit descriptors."""

    def __init__(self, nfeatures: int, scale_factor: float, nlevels: int,
                 ini_th_fast: int, min_th_fast: int) -> None:
        if nlevels < 1:
            raise ValueError("nlevels must be at least 1")
        if nfeatures < 0:
            raise ValueError("nfeatures must not be negative")
        if scale_factor <= 0 or scale_factor == 1:
            raise ValueError("scale_factor must be positive and different from 1")

        self.nfeatures = nfeatures
        self.scale_factor = scale_factor
        self.nlevels = nlevels
        self.ini_th_fast = ini_th_fast
        self.min_th_fast = min_th_fast

        step = np.float32(scale_factor)
        scales = [np.float32(1.0)]
        for _ in range(1, nlevels):
            scales.append(np.float32(scales[-1] * step))
        sigmas = [np.float32(s * s) for s in scales]

        self.scale_factors = [float(s) for s in scales]
        self.level_sigma2 = [float(s) for s in sigmas]
        self.inv_scale_factors = [float(np.float32(1.0) / s) for s in scales]
        self.inv_level_sigma2 = [float(np.float32(1.0) / s) for s in sigmas]
        self.features_per_level = _features_per_level(nfeatures, scale_factor, nlevels)
        self.pattern = pattern_points()
        self.umax = circular_umax(HALF_PATCH_SIZE)
        self.image_pyramid: list[np.ndarray] = []

    def compute_pyramid(self, image) -> list[np.ndarray]:
        """Build and store the scaled copies of the image, one per level."""
        img = np.asarray(image)
        if img.ndim != 2:
            raise ValueError("expected a single-channel two-dimensional image")
        rows, cols = img.shape
        pyramid: list[np.ndarray] = []
        for level, inv_scale in enumerate(self.inv_scale_factors):
            width = round(float(np.float32(cols) * np.float32(inv_scale)))
            height = round(float(np.float32(rows) * np.float32(inv_scale)))
            if level == 0:
                pyramid.append(img.copy())
            else:
                pyramid.append(resize_linear(pyramid[-1], width, height))
        self.image_pyramid = pyramid
        return pyramid

    def _require_pyramid(self) -> None:
        if len(self.image_pyramid) != self.nlevels:
            raise ValueError("compute_pyramid must be called first")

    def _scaled_patch_size(self, level: int) -> float:
        return float(int(PATCH_SIZE * self.scale_factors[level]))

    def compute_keypoints_oct_tree(self) -> list[list[KeyPoint]]:
        """Detect keypoints on a grid of cells per level and spread them with a quadtree."""
        self._require_pyramid()
        all_keypoints: list[list[KeyPoint]] = []
        min_border = EDGE_THRESHOLD - 3

        for level, level_image in enumerate(self.image_pyramid):
            rows, cols = level_image.shape
            max_border_x = cols - EDGE_THRESHOLD + 3
            max_border_y = rows - EDGE_THRESHOLD + 3
            width = float(max_border_x - min_border)
            height = float(max_border_y - min_border)
            n_cols = int(width / _CELL_SIZE)
            n_rows = int(height / _CELL_SIZE)
            if n_cols < 1 or n_rows < 1:
                raise ValueError(f"pyramid level {level} is too small for detection")
            w_cell = math.ceil(width / n_cols)
            h_cell = math.ceil(height / n_rows)

            to_distribute: list[KeyPoint] = []
            for i in range(n_rows):
                ini_y = min_border + i * h_cell
                if ini_y >= max_border_y - 3:
                    continue
                max_y = min(ini_y + h_cell + 6, max_border_y)
                for j in range(n_cols):
                    ini_x = min_border + j * w_cell
                    if ini_x >= max_border_x - 6:
                        continue
                    max_x = min(ini_x + w_cell + 6, max_border_x)
                    cell = level_image[ini_y:max_y, ini_x:max_x]
                    found = fast_detect(cell, self.ini_th_fast, True)
                    if not found:
                        found = fast_detect(cell, self.min_th_fast, True)
                    to_distribute.extend(
                        replace(kp, x=kp.x + j * w_cell, y=kp.y + i * h_cell) for kp in found
                    )

            kept = distribute_oct_tree(to_distribute, min_border, max_border_x,
                                       min_border, max_border_y, self.features_per_level[level])
            size = self._scaled_patch_size(level)
            all_keypoints.append([
                replace(kp, x=kp.x + min_border, y=kp.y + min_border, octave=level, size=size)
                for kp in kept
            ])

        return [
            compute_orientation(self.image_pyramid[level], keypoints, self.umax)
            for level, keypoints in enumerate(all_keypoints)
        ]

    def compute_keypoints_old(self) -> list[list[KeyPoint]]:
        """Detect keypoints on a fixed grid per level, sharing out a quota by response."""
        self._require_pyramid()
        base_rows, base_cols = self.image_pyramid[0].shape
        image_ratio = base_cols / base_rows
        all_keypoints: list[list[KeyPoint]] = []

        for level, level_image in enumerate(self.image_pyramid):
            n_desired = self.features_per_level[level]
            level_cols = int(math.sqrt(n_desired / (5 * image_ratio)))
            level_rows = int(image_ratio * level_cols)
            if level_cols < 1 or level_rows < 1:
                raise ValueError(f"too few features wanted at level {level} for a grid")

            rows, cols = level_image.shape
            min_border = EDGE_THRESHOLD
            max_border_x = cols - EDGE_THRESHOLD
            max_border_y = rows - EDGE_THRESHOLD
            cell_w = math.ceil((max_border_x - min_border) / level_cols)
            cell_h = math.ceil((max_border_y - min_border) / level_rows)
            n_cells = level_rows * level_cols
            per_cell = math.ceil(n_desired / n_cells)

            cells = [[[] for _ in range(level_cols)] for _ in range(level_rows)]
            to_retain = [[0] * level_cols for _ in range(level_rows)]
            totals = [[0] * level_cols for _ in range(level_rows)]
            no_more = [[False] * level_cols for _ in range(level_rows)]
            ini_x_col = [0] * level_cols
            ini_y_row = [0] * level_rows
            n_no_more = 0
            n_to_distribute = 0

            h_y = cell_h + 6
            for i in range(level_rows):
                ini_y = min_border + i * cell_h - 3
                ini_y_row[i] = ini_y
                if i == level_rows - 1:
                    h_y = max_border_y + 3 - ini_y
                    if h_y <= 0:
                        continue
                h_x = cell_w + 6
                for j in range(level_cols):
                    if i == 0:
                        ini_x_col[j] = min_border + j * cell_w - 3
                    ini_x = ini_x_col[j]
                    if j == level_cols - 1:
                        h_x = max_border_x + 3 - ini_x
                        if h_x <= 0:
                            continue
                    cell_image = level_image[ini_y:ini_y + h_y, ini_x:ini_x + h_x]
                    found = fast_detect(cell_image, self.ini_th_fast, True)
                    if len(found) <= 3:
                        found = fast_detect(cell_image, self.min_th_fast, True)
                    cells[i][j] = found
                    totals[i][j] = len(found)
                    if len(found) > per_cell:
                        to_retain[i][j] = per_cell
                    else:
                        to_retain[i][j] = len(found)
                        n_to_distribute += per_cell - len(found)
                        no_more[i][j] = True
                        n_no_more += 1

            while n_to_distribute > 0 and n_no_more < n_cells:
                new_per_cell = per_cell + math.ceil(n_to_distribute / (n_cells - n_no_more))
                n_to_distribute = 0
                for i in range(level_rows):
                    for j in range(level_cols):
                        if no_more[i][j]:
                            continue
                        if totals[i][j] > new_per_cell:
                            to_retain[i][j] = new_per_cell
                        else:
                            to_retain[i][j] = totals[i][j]
                            n_to_distribute += new_per_cell - totals[i][j]
                            no_more[i][j] = True
                            n_no_more += 1

            size = self._scaled_patch_size(level)
            keypoints: list[KeyPoint] = []
            for i, row in enumerate(cells):
                for j, found in enumerate(row):
                    best = retain_best(found, to_retain[i][j])[:to_retain[i][j]]
                    keypoints.extend(
                        replace(kp, x=kp.x + ini_x_col[j], y=kp.y + ini_y_row[i],
                                octave=level, size=size)
                        for kp in best
                    )
            if len(keypoints) > n_desired:
                keypoints = retain_best(keypoints, n_desired)[:n_desired]
            all_keypoints.append(keypoints)

        return [
            compute_orientation(self.image_pyramid[level], keypoints, self.umax)
            for level, keypoints in enumerate(all_keypoints)
        ]

    def extract(self, image, mask=None) -> tuple[list[KeyPoint], np.ndarray]:
        """Return the keypoints of an 8-bit grayscale image and their descriptors.

        Keypoint coordinates are given in the frame of the original image. The
        mask is accepted but not used.
        """
        img = np.asarray(image)
        if img.size == 0:
            return [], np.zeros((0, _DESCRIPTOR_BYTES), dtype=np.uint8)
        if img.ndim != 2 or img.dtype != np.uint8:
            raise ValueError("expected a single-channel 8-bit image")

        self.compute_pyramid(img)
        all_keypoints = self.compute_keypoints_oct_tree()

        keypoints: list[KeyPoint] = []
        blocks: list[np.ndarray] = []
        for level, level_keys in enumerate(all_keypoints):
            if not level_keys:
                continue
            working = gaussian_blur(self.image_pyramid[level], 7, 2.0)
            blocks.append(compute_descriptors(working, level_keys, self.pattern))
            if level != 0:
                scale = self.scale_factors[level]
                level_keys = [kp.scaled(scale) for kp in level_keys]
            keypoints.extend(level_keys)

        if not blocks:
            return [], np.zeros((0, _DESCRIPTOR_BYTES), dtype=np.uint8)
        return keypoints, np.vstack(blocks)

    def __call__(self, image, mask=None) -> tuple[list[KeyPoint], np.ndarray]:
        return self.extract(image, mask)