"""
ColorStack - Color space conversion tests

CIELAB values are checked against colormath as an independent reference.
"""

import os
import sys

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from colormath.color_objects import sRGBColor, LabColor
from colormath.color_conversions import convert_color

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colorstack.color_space import (
    rgb_to_lab,
    delta_e,
    rgb_distance_sq,
    luminance,
    saturation,
    is_valid_hex_color,
    hex_to_rgb,
    rgb_to_hex,
)

channel = st.integers(0, 255)


def _reference_lab(r, g, b):
    lab = convert_color(sRGBColor(r / 255.0, g / 255.0, b / 255.0), LabColor,
                        target_illuminant='d65')
    return np.array([lab.lab_l, lab.lab_a, lab.lab_b])


# ============================================================================
# CIELAB
# ============================================================================

class TestRgbToLab:

    def test_white_is_l100(self):
        L, a, b = rgb_to_lab([255, 255, 255])
        assert L == pytest.approx(100.0, abs=1e-3)
        assert a == pytest.approx(0.0, abs=1e-2)
        assert b == pytest.approx(0.0, abs=1e-2)

    def test_black_is_origin(self):
        np.testing.assert_allclose(rgb_to_lab([0, 0, 0]), [0.0, 0.0, 0.0], atol=1e-9)

    def test_batch_matches_single(self):
        colors = np.array([[255, 0, 0], [0, 128, 255], [12, 34, 56]])
        batch = rgb_to_lab(colors)
        assert batch.shape == (3, 3)
        for i, c in enumerate(colors):
            np.testing.assert_allclose(batch[i], rgb_to_lab(c))

    @settings(max_examples=100)
    @given(r=channel, g=channel, b=channel)
    def test_matches_colormath(self, r, g, b):
        ours = rgb_to_lab([r, g, b])
        ref = _reference_lab(r, g, b)
        assert delta_e(ours, ref) < 1.0


class TestDistances:

    def test_delta_e_zero_for_same_color(self):
        lab = rgb_to_lab([40, 80, 120])
        assert delta_e(lab, lab) == 0.0

    @settings(max_examples=100)
    @given(c1=st.tuples(channel, channel, channel), c2=st.tuples(channel, channel, channel))
    def test_delta_e_symmetric(self, c1, c2):
        l1, l2 = rgb_to_lab(c1), rgb_to_lab(c2)
        assert delta_e(l1, l2) == pytest.approx(delta_e(l2, l1))

    def test_delta_e_broadcasts(self):
        labs = rgb_to_lab(np.array([[0, 0, 0], [255, 255, 255]]))
        d = delta_e(labs, labs[0])
        assert d.shape == (2,)
        assert d[1] == pytest.approx(100.0, abs=1e-3)

    def test_rgb_distance_sq_no_uint8_overflow(self):
        a = np.array([0, 0, 0], dtype=np.uint8)
        b = np.array([255, 255, 255], dtype=np.uint8)
        assert rgb_distance_sq(a, b) == 3 * 255 * 255


# ============================================================================
# Luminance / saturation
# ============================================================================

class TestLuminanceSaturation:

    def test_luminance_extremes(self):
        assert luminance("#ffffff") == pytest.approx(255.0)
        assert luminance("#000000") == 0.0

    def test_luminance_weights(self):
        assert luminance((255, 0, 0)) == pytest.approx(0.299 * 255)
        assert luminance("#00ff00") == pytest.approx(0.587 * 255)

    def test_saturation_pure_red(self):
        assert saturation(255, 0, 0) == pytest.approx(1.0)

    def test_saturation_gray_and_black(self):
        assert saturation(128, 128, 128) == 0.0
        assert saturation(0, 0, 0) == 0.0

    def test_saturation_vectorized(self):
        sat = saturation(np.array([255, 0]), np.array([0, 0]), np.array([0, 0]))
        np.testing.assert_allclose(sat, [1.0, 0.0])


# ============================================================================
# Hex helpers
# ============================================================================

class TestHexHelpers:

    @pytest.mark.parametrize("color", ["#abcdef", "#ABCDEF", "#000000", "#Ff00aA"])
    def test_valid_hex(self, color):
        assert is_valid_hex_color(color)

    @pytest.mark.parametrize("color", ["abcdef", "#abc", "#gggggg", "#1234567", "", None, 123])
    def test_invalid_hex(self, color):
        assert not is_valid_hex_color(color)

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#ff8000") == (255, 128, 0)
        assert hex_to_rgb("#FF8000") == (255, 128, 0)

    def test_hex_to_rgb_rejects_malformed(self):
        with pytest.raises(ValueError):
            hex_to_rgb("#zzz")

    def test_rgb_to_hex_lowercase(self):
        assert rgb_to_hex(255, 171, 0) == "#ffab00"

    def test_rgb_to_hex_rounds_half_up_and_clamps(self):
        assert rgb_to_hex(127.5, -3, 255.6) == "#8000ff"
        assert rgb_to_hex(0.49, 1.5, 300) == "#0002ff"
