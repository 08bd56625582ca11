"""
ColorStack - Saliency & Impact Scorer
Sobel edge map, saturation and center-bias weighting -> per-color impact histogram.
"""

import numpy as np
import cv2

from config import PaletteConfig
from colorstack.color_space import saturation


def as_pixel_array(pixels, width=None, height=None) -> np.ndarray:
    """
    Normalize a pixel buffer to an (H, W, 4) uint8 array.

    Accepts an (H, W, 4) / (H, W, 3) array, or a flat RGBA buffer together
    with width and height. The input is never modified.
    """
    arr = np.asarray(pixels)
    if arr.ndim == 1:
        if width is None or height is None:
            raise ValueError("Flat pixel buffers need width and height")
        width, height = int(width), int(height)
        if width < 1 or height < 1:
            raise ValueError(f"Invalid image size {width}x{height}")
        if arr.size != width * height * 4:
            raise ValueError(
                f"Buffer length {arr.size} does not match {width}x{height} RGBA"
            )
        arr = arr.reshape(height, width, 4)
    elif arr.ndim == 3 and arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr.astype(np.uint8), alpha], axis=2)
    elif not (arr.ndim == 3 and arr.shape[2] == 4):
        raise ValueError(f"Unsupported pixel buffer shape {arr.shape}")

    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise ValueError(f"Empty image {arr.shape[1]}x{arr.shape[0]}")
    if width is not None and height is not None:
        if arr.shape[:2] != (int(height), int(width)):
            raise ValueError(
                f"Pixel buffer is {arr.shape[1]}x{arr.shape[0]}, expected {width}x{height}"
            )
    return arr.astype(np.uint8, copy=False)


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """(H, W, 3|4) uint8 -> (H, W) float32 luminance in [0, 1]."""
    rgb = np.ascontiguousarray(pixels[:, :, :3], dtype=np.float32) / 255.0
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)


def sobel_edges(pixels: np.ndarray,
                normalizer: float = PaletteConfig.SOBEL_NORMALIZER) -> np.ndarray:
    """
    Sobel gradient magnitude, divided by `normalizer` and clamped to [0, 1].

    The 1-pixel border is left at 0.

    Returns:
        np.ndarray: (H, W) float32
    """
    h, w = pixels.shape[:2]
    edges = np.zeros((h, w), dtype=np.float32)
    if h < 3 or w < 3:
        return edges

    gray = to_grayscale(pixels)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = np.sqrt(gx * gx + gy * gy)

    edges[1:-1, 1:-1] = np.minimum(magnitude[1:-1, 1:-1] / normalizer, 1.0)
    return edges


def center_saliency(width: int, height: int) -> np.ndarray:
    """
    Center-bias weight 1 - d/d_max per pixel, d_max = center-to-corner distance.

    Returns:
        np.ndarray: (H, W) float64 in [0, 1]
    """
    cx = width / 2.0
    cy = height / 2.0
    max_distance = np.sqrt(cx * cx + cy * cy)
    ys, xs = np.mgrid[0:height, 0:width]
    distance = np.sqrt((xs - cx) ** 2 + (ys - cy) ** 2)
    return 1.0 - distance / max_distance


def build_impact_histogram(pixels: np.ndarray,
                           stride: int = PaletteConfig.SAMPLE_STRIDE,
                           sobel_normalizer: float = PaletteConfig.SOBEL_NORMALIZER,
                           saturation_weight: float = PaletteConfig.SATURATION_WEIGHT,
                           saliency_weight: float = PaletteConfig.SALIENCY_WEIGHT) -> dict:
    """
    Score every `stride`-th pixel (row-major) and accumulate per color.

    score = (1 + 2*saturation) * (1 + edginess) * (1 + 1.5*saliency)

    Args:
        pixels: (H, W, 4) uint8 buffer (normally already quantized)
        stride: sampling step over the flattened pixel index

    Returns:
        dict: colors are listed in order of first appearance
            - colors: (M, 3) uint8
            - impact: (M,) float64 accumulated score
            - counts: (M,) int64 sampled pixel count
            - edges: (H, W) float32 edge map
    """
    if stride < 1:
        raise ValueError(f"Sampling stride must be >= 1, got {stride}")

    h, w = pixels.shape[:2]
    edges = sobel_edges(pixels, sobel_normalizer)
    weights = center_saliency(w, h)

    flat_rgb = pixels[:, :, :3].reshape(-1, 3)
    sample_idx = np.arange(0, h * w, stride)
    rgb = flat_rgb[sample_idx].astype(np.int64)

    sat = saturation(rgb[:, 0], rgb[:, 1], rgb[:, 2])
    edginess = edges.reshape(-1)[sample_idx].astype(np.float64)
    saliency = weights.reshape(-1)[sample_idx]
    score = (1.0 + saturation_weight * sat) * (1.0 + edginess) * (1.0 + saliency_weight * saliency)

    keys = (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]
    _, first_index, inverse = np.unique(keys, return_index=True, return_inverse=True)
    inverse = inverse.reshape(-1)
    impact = np.bincount(inverse, weights=score)
    counts = np.bincount(inverse)

    # np.unique sorts by key; restore first-appearance order
    order = np.argsort(first_index, kind='stable')
    return {
        'colors': rgb[first_index[order]].astype(np.uint8),
        'impact': impact[order],
        'counts': counts[order].astype(np.int64),
        'edges': edges,
    }
