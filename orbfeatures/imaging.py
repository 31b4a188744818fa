"""Image borders, bilinear resizing and Gaussian smoothing for grayscale arrays."""

from __future__ import annotations

import math

import numpy as np


def _as_gray(image) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim != 2:
        raise ValueError("expected a single-channel two-dimensional image")
    if array.size == 0:
        raise ValueError("image is empty")
    return array


def _cast_like(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def reflect101_border(image, border: int) -> np.ndarray:
    """Pad the image on every side by mirroring it without repeating the edge pixel."""
    img = _as_gray(image)
    if border < 0:
        raise ValueError("border must not be negative")
    if border == 0:
        return img.copy()
    return np.pad(img, border, mode="reflect")


def _axis_samples(src: int, dst: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    scale = src / dst
    position = (np.arange(dst, dtype=np.float64) + 0.5) * scale - 0.5
    index0 = np.floor(position).astype(np.intp)
    frac = position - index0
    below = index0 < 0
    index0[below] = 0
    frac[below] = 0.0
    above = index0 >= src - 1
    index0[above] = src - 1
    frac[above] = 0.0
    index1 = np.minimum(index0 + 1, src - 1)
    return index0, index1, frac


def resize_linear(image, width: int, height: int) -> np.ndarray:
    """Resize the image to ``width`` by ``height`` pixels with bilinear interpolation."""
    img = _as_gray(image)
    if width < 1 or height < 1:
        raise ValueError("target size must be at least one pixel in each direction")
    src_h, src_w = img.shape
    if (src_w, src_h) == (width, height):
        return img.copy()

    x0, x1, fx = _axis_samples(src_w, width)
    y0, y1, fy = _axis_samples(src_h, height)
    data = img.astype(np.float64)

    top = data[y0][:, x0] * (1.0 - fx) + data[y0][:, x1] * fx
    bottom = data[y1][:, x0] * (1.0 - fx) + data[y1][:, x1] * fx
    result = top * (1.0 - fy)[:, None] + bottom * fy[:, None]
    return _cast_like(result, img.dtype)


def _gaussian_kernel(ksize: int, sigma: float) -> np.ndarray:
    if ksize < 1 or ksize % 2 == 0:
        raise ValueError("kernel size must be a positive odd number")
    if sigma <= 0:
        sigma = 0.3 * ((ksize - 1) * 0.5 - 1) + 0.8
    offsets = np.arange(ksize, dtype=np.float64) - (ksize - 1) / 2
    kernel = np.exp(-(offsets**2) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(image, ksize: int, sigma: float) -> np.ndarray:
    """Smooth the image with a separable Gaussian; borders are mirrored without the edge.

    A non-positive ``sigma`` is derived from the kernel size.
    """
    img = _as_gray(image)
    kernel = _gaussian_kernel(ksize, sigma)
    radius = ksize // 2
    height, width = img.shape
    padded = np.pad(img.astype(np.float64), radius, mode="reflect") if radius else img.astype(np.float64)

    horizontal = sum(
        weight * padded[:, offset:offset + width] for offset, weight in enumerate(kernel)
    )
    vertical = sum(
        weight * horizontal[offset:offset + height, :] for offset, weight in enumerate(kernel)
    )
    if math.isnan(float(np.sum(vertical))):
        raise ValueError("image holds values that cannot be blurred")
    return _cast_like(vertical, img.dtype)