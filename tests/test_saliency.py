"""
ColorStack - Saliency & impact histogram tests
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colorstack.saliency import (
    as_pixel_array,
    sobel_edges,
    center_saliency,
    build_impact_histogram,
)


def _image(h, w, color=(0, 0, 0)):
    img = np.zeros((h, w, 4), dtype=np.uint8)
    img[:, :, :3] = color
    img[:, :, 3] = 255
    return img


# ============================================================================
# Pixel buffer normalization
# ============================================================================

class TestAsPixelArray:

    def test_flat_rgba_buffer(self):
        flat = np.arange(2 * 3 * 4, dtype=np.uint8)
        arr = as_pixel_array(flat, width=3, height=2)
        assert arr.shape == (2, 3, 4)
        assert arr[1, 2, 3] == 23

    def test_flat_buffer_needs_dimensions(self):
        with pytest.raises(ValueError):
            as_pixel_array(np.zeros(16, dtype=np.uint8))

    def test_flat_buffer_length_mismatch(self):
        with pytest.raises(ValueError):
            as_pixel_array(np.zeros(15, dtype=np.uint8), width=2, height=2)

    def test_rgb_gets_opaque_alpha(self):
        arr = as_pixel_array(np.zeros((2, 2, 3), dtype=np.uint8))
        assert arr.shape == (2, 2, 4)
        assert np.all(arr[:, :, 3] == 255)

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            as_pixel_array(_image(2, 3), width=2, height=3)

    def test_unsupported_shape(self):
        with pytest.raises(ValueError):
            as_pixel_array(np.zeros((4, 4), dtype=np.uint8))


# ============================================================================
# Edges & saliency
# ============================================================================

class TestSobelEdges:

    def test_uniform_image_has_no_edges(self):
        assert np.all(sobel_edges(_image(6, 6, (90, 40, 200))) == 0)

    def test_tiny_image_returns_zeros(self):
        edges = sobel_edges(_image(2, 5, (255, 255, 255)))
        assert edges.shape == (2, 5)
        assert np.all(edges == 0)

    def test_vertical_step_edge(self):
        img = _image(6, 6)
        img[:, 3:, :3] = 255
        edges = sobel_edges(img)

        # Columns either side of the step saturate at 1
        np.testing.assert_allclose(edges[1:-1, 2], 1.0, atol=1e-5)
        np.testing.assert_allclose(edges[1:-1, 3], 1.0, atol=1e-5)
        assert np.all(edges[1:-1, 1] == 0)
        # Border stays 0
        assert np.all(edges[0, :] == 0) and np.all(edges[:, -1] == 0)

    def test_values_clamped(self):
        rng = np.random.default_rng(3)
        img = rng.integers(0, 256, size=(8, 8, 4), dtype=np.uint8)
        edges = sobel_edges(img)
        assert edges.min() >= 0.0
        assert edges.max() <= 1.0


class TestCenterSaliency:

    def test_center_and_corner(self):
        weights = center_saliency(4, 4)
        assert weights.shape == (4, 4)
        assert weights[2, 2] == pytest.approx(1.0)
        assert weights[0, 0] == pytest.approx(0.0)

    def test_range(self):
        weights = center_saliency(7, 3)
        assert weights.shape == (3, 7)
        assert weights.min() >= 0.0 and weights.max() <= 1.0


# ============================================================================
# Impact histogram
# ============================================================================

class TestImpactHistogram:

    def test_first_appearance_order(self):
        img = _image(1, 4)
        img[0, 0, :3] = (255, 0, 0)
        img[0, 1, :3] = (0, 0, 255)
        img[0, 2, :3] = (255, 0, 0)
        img[0, 3, :3] = (0, 255, 0)
        hist = build_impact_histogram(img, stride=1)
        assert hist['colors'].tolist() == [[255, 0, 0], [0, 0, 255], [0, 255, 0]]
        assert hist['counts'].tolist() == [2, 1, 1]

    def test_stride_samples_every_nth_pixel(self):
        img = _image(4, 4)
        img[:, 0, :3] = (255, 255, 255)
        hist = build_impact_histogram(img, stride=4)
        # Flat indices 0, 4, 8, 12 are the first column
        assert hist['colors'].tolist() == [[255, 255, 255]]
        assert hist['counts'].sum() == 4

    def test_saturated_color_outscores_gray(self):
        img = _image(4, 4, (128, 128, 128))
        img[1:3, 1:3, :3] = (255, 0, 0)
        hist = build_impact_histogram(img, stride=1)
        colors = [tuple(c) for c in hist['colors'].tolist()]
        per_pixel = hist['impact'] / hist['counts']
        assert per_pixel[colors.index((255, 0, 0))] > per_pixel[colors.index((128, 128, 128))]

    def test_bad_stride(self):
        with pytest.raises(ValueError):
            build_impact_histogram(_image(2, 2), stride=0)
