"""
ColorStack - Color Space Converter
sRGB -> linear -> CIE XYZ -> CIELAB conversions and CIE76 Delta-E.

All functions accept scalars or numpy arrays whose last axis holds the
three channels, so the palette selector can convert a whole candidate
pool in one call.
"""

import re

import numpy as np

from config import ColorScience


_SRGB_TO_XYZ = np.array(ColorScience.SRGB_TO_XYZ, dtype=np.float64)
_WHITE = np.array(
    [ColorScience.WHITE_X, ColorScience.WHITE_Y, ColorScience.WHITE_Z],
    dtype=np.float64
)
_LUMA = np.array(ColorScience.LUMA_WEIGHTS, dtype=np.float64)

_HEX_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def srgb_to_linear(c):
    """
    Gamma-decode normalized sRGB channel values (0-1).

    Args:
        c: float or ndarray in [0, 1]

    Returns:
        ndarray: linear-light values, same shape as input
    """
    c = np.asarray(c, dtype=np.float64)
    return np.where(
        c <= ColorScience.SRGB_THRESHOLD,
        c / ColorScience.SRGB_LINEAR_SLOPE,
        ((c + 0.055) / 1.055) ** 2.4
    )


def linear_to_xyz(rgb_linear):
    """(..., 3) linear RGB -> (..., 3) XYZ with the D65 sRGB matrix."""
    rgb_linear = np.asarray(rgb_linear, dtype=np.float64)
    return rgb_linear @ _SRGB_TO_XYZ.T


def _lab_f(t):
    return np.where(
        t > ColorScience.LAB_EPSILON,
        np.cbrt(t),
        ColorScience.LAB_KAPPA * t + 16.0 / 116.0
    )


def xyz_to_lab(xyz):
    """(..., 3) XYZ -> (..., 3) L*a*b* relative to the D65 white point."""
    xyz = np.asarray(xyz, dtype=np.float64)
    f = _lab_f(xyz / _WHITE)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return np.stack([L, a, b], axis=-1)


def rgb_to_lab(rgb):
    """
    8-bit sRGB -> CIELAB.

    Args:
        rgb: (3,) or (N, 3) array-like of 0-255 channel values

    Returns:
        ndarray: (3,) or (N, 3) float64 Lab values
    """
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    return xyz_to_lab(linear_to_xyz(srgb_to_linear(rgb)))


def delta_e(lab1, lab2):
    """CIE76 Delta-E: Euclidean distance in Lab. Broadcasts over leading axes."""
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return np.sqrt(np.sum(diff * diff, axis=-1))


def rgb_distance_sq(c1, c2):
    """Squared Euclidean RGB distance. Broadcasts over leading axes."""
    diff = np.asarray(c1, dtype=np.int64) - np.asarray(c2, dtype=np.int64)
    return np.sum(diff * diff, axis=-1)


def luminance(color) -> float:
    """Luminance (0-255) of a hex string or RGB triple."""
    if isinstance(color, str):
        color = hex_to_rgb(color)
    return float(np.dot(np.asarray(color, dtype=np.float64), _LUMA))


def saturation(r, g, b):
    """HSV-style saturation (max - min) / max on normalized channels, 0 for black."""
    rgb = np.stack(np.broadcast_arrays(
        np.asarray(r, dtype=np.float64),
        np.asarray(g, dtype=np.float64),
        np.asarray(b, dtype=np.float64)
    ), axis=-1) / 255.0
    c_max = rgb.max(axis=-1)
    c_min = rgb.min(axis=-1)
    with np.errstate(divide='ignore', invalid='ignore'):
        sat = np.where(c_max > 0, (c_max - c_min) / c_max, 0.0)
    return sat


def is_valid_hex_color(color) -> bool:
    """True for '#RRGGBB' strings (case-insensitive)."""
    return isinstance(color, str) and bool(_HEX_RE.match(color))


def hex_to_rgb(hex_color):
    """'#RRGGBB' -> (r, g, b)"""
    if not is_valid_hex_color(hex_color):
        raise ValueError(f"Invalid hex color: {hex_color!r} (expected '#RRGGBB')")
    v = int(hex_color[1:], 16)
    return (v >> 16) & 255, (v >> 8) & 255, v & 255


def rgb_to_hex(r, g, b) -> str:
    """Channels are rounded half-up and clamped to 0-255."""
    channels = []
    for v in (r, g, b):
        v = int(np.floor(float(v) + 0.5))
        channels.append(min(max(v, 0), 255))
    return '#{:02x}{:02x}{:02x}'.format(*channels)
