import numpy as np
import pytest

from orbfeatures.imaging import gaussian_blur, reflect101_border, resize_linear


def test_reflect101_row_pattern():
    image = np.array([[1, 2, 3, 4]], dtype=np.uint8)
    padded = reflect101_border(image, 2)
    assert padded.shape == (5, 8)
    assert padded[2].tolist() == [3, 2, 1, 2, 3, 4, 3, 2]


def test_reflect101_keeps_interior():
    rng = np.random.default_rng(0)
    image = rng.integers(0, 256, size=(10, 12), dtype=np.uint8)
    padded = reflect101_border(image, 3)
    assert np.array_equal(padded[3:-3, 3:-3], image)
    assert np.array_equal(padded[2, 3:-3], image[1])
    assert np.array_equal(padded[3:-3, 0], image[:, 3])


def test_reflect101_negative_border():
    with pytest.raises(ValueError):
        reflect101_border(np.zeros((4, 4)), -1)


def test_resize_same_size_is_identity():
    rng = np.random.default_rng(1)
    image = rng.integers(0, 256, size=(9, 7), dtype=np.uint8)
    assert np.array_equal(resize_linear(image, 7, 9), image)


def test_resize_constant_image_stays_constant():
    image = np.full((20, 30), 77, dtype=np.uint8)
    out = resize_linear(image, 25, 16)
    assert out.shape == (16, 25)
    assert out.dtype == np.uint8
    assert np.all(out == 77)


def test_resize_values_within_input_range():
    rng = np.random.default_rng(2)
    image = rng.integers(10, 200, size=(40, 50), dtype=np.uint8)
    out = resize_linear(image, 42, 33)
    assert out.min() >= image.min()
    assert out.max() <= image.max()


def test_resize_invalid_size():
    with pytest.raises(ValueError):
        resize_linear(np.zeros((4, 4), dtype=np.uint8), 0, 3)


def test_resize_rejects_colour_image():
    with pytest.raises(ValueError):
        resize_linear(np.zeros((4, 4, 3), dtype=np.uint8), 2, 2)


def test_blur_constant_image_unchanged():
    image = np.full((15, 15), 120, dtype=np.uint8)
    out = gaussian_blur(image, 7, 2.0)
    assert out.dtype == np.uint8
    assert np.all(out == 120)


def test_blur_impulse_is_symmetric_and_spread():
    image = np.zeros((21, 21), dtype=np.float64)
    image[10, 10] = 1000.0
    out = gaussian_blur(image, 7, 2.0)
    assert out[10, 10] < 1000.0
    assert np.allclose(out, out.T)
    assert np.allclose(out, out[::-1, ::-1])
    assert out.sum() == pytest.approx(1000.0)


def test_blur_even_kernel_rejected():
    with pytest.raises(ValueError):
        gaussian_blur(np.zeros((8, 8), dtype=np.uint8), 6, 2.0)