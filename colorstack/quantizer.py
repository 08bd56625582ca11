"""
ColorStack - Band Quantizer
Nearest-color band raster, layer preview compositing and print-layer tables.
"""

import numpy as np
from scipy.spatial.distance import cdist

from config import PrinterConfig
from colorstack.color_space import hex_to_rgb


# Pixels per cdist call; bounds the (chunk, N) distance matrix
_CHUNK_PIXELS = 1 << 18


def palette_to_rgb(palette) -> np.ndarray:
    """Hex list or (N, 3) array -> (N, 3) int64."""
    if len(palette) == 0:
        raise ValueError("Palette is empty")
    if isinstance(palette[0], str):
        return np.array([hex_to_rgb(c) for c in palette], dtype=np.int64)
    arr = np.asarray(palette, dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Palette must be (N, 3), got shape {arr.shape}")
    return arr


def assign_bands(pixels: np.ndarray, palette) -> np.ndarray:
    """
    Assign each pixel the index of its nearest palette color.

    Distance is squared RGB; on ties the lowest index wins.

    Args:
        pixels: (H, W, 3|4) uint8
        palette: structural palette (hex list or (N, 3) array)

    Returns:
        np.ndarray: (H, W) int32 band indices in [0, N-1]
    """
    colors = palette_to_rgb(palette).astype(np.float64)
    h, w = pixels.shape[:2]
    flat = pixels[:, :, :3].reshape(-1, 3).astype(np.float64)

    bands = np.empty(h * w, dtype=np.int32)
    for start in range(0, h * w, _CHUNK_PIXELS):
        stop = min(start + _CHUNK_PIXELS, h * w)
        dist = cdist(flat[start:stop], colors, metric='sqeuclidean')
        bands[start:stop] = np.argmin(dist, axis=1)
    return bands.reshape(h, w)


def color_usage(bands: np.ndarray, band_count: int) -> np.ndarray:
    """Pixel count per band, length band_count."""
    return np.bincount(np.asarray(bands).reshape(-1), minlength=band_count)[:band_count]


def band_heights(band_count: int,
                 layer_height: float = PrinterConfig.LAYER_HEIGHT,
                 base_layers: int = PrinterConfig.BASE_LAYERS,
                 band_layers: int = PrinterConfig.BAND_LAYERS) -> np.ndarray:
    """
    Top-surface height (mm) for each band.

    band 0 = base_layers * layer_height,
    band i = band i-1 + band_layers * layer_height.
    """
    if band_count < 1:
        raise ValueError(f"Band count must be >= 1, got {band_count}")
    if layer_height <= 0:
        raise ValueError(f"Layer height must be positive, got {layer_height}")
    if base_layers < 0 or band_layers < 0:
        raise ValueError("Layer counts must not be negative")

    base = base_layers * layer_height
    step = band_layers * layer_height
    return base + step * np.arange(band_count, dtype=np.float64)


def render_preview(bands: np.ndarray, render_palette, current_layer: int,
                   single_layer: bool = False) -> np.ndarray:
    """
    Composite the print as seen from above after `current_layer`.

    The canvas starts filled with render color 0. Cumulative mode paints
    bands 1..current_layer; single-layer mode paints only `current_layer`
    (nothing for the base layer).

    Returns:
        np.ndarray: (H, W, 4) uint8, alpha 255
    """
    colors = palette_to_rgb(render_palette).astype(np.uint8)
    n = len(colors)
    if not 0 <= current_layer < n:
        raise ValueError(f"Current layer {current_layer} outside [0, {n - 1}]")
    if bands.size and int(bands.max()) >= n:
        raise ValueError(
            f"Band raster uses band {int(bands.max())} but render palette has {n} colors"
        )

    h, w = bands.shape
    preview = np.empty((h, w, 4), dtype=np.uint8)
    preview[:, :, :3] = colors[0]
    preview[:, :, 3] = 255

    if single_layer:
        if current_layer > 0:
            preview[bands == current_layer, :3] = colors[current_layer]
    else:
        visible = (bands >= 1) & (bands <= current_layer)
        preview[visible, :3] = colors[bands[visible]]
    return preview


def slicer_instructions(render_palette: list,
                        base_layers: int = PrinterConfig.BASE_LAYERS,
                        band_layers: int = PrinterConfig.BAND_LAYERS) -> list:
    """
    Filament change schedule for the slicer.

    Returns:
        list[dict]: {'color', 'layer', 'text'} per palette entry; layer is
            None for the base color.
    """
    steps = []
    for index, color in enumerate(render_palette):
        if index == 0:
            steps.append({'color': color, 'layer': None,
                          'text': "Start with this color (Base)"})
        else:
            layer = base_layers + (index - 1) * band_layers + 1
            steps.append({'color': color, 'layer': layer,
                          'text': f"Change to this color at Layer {layer}"})
    return steps


def clamp_size(size_mm: float) -> float:
    return min(max(float(size_mm), PrinterConfig.MIN_SIZE_MM), PrinterConfig.MAX_SIZE_MM)


def auto_physical_size(width: int, height: int,
                       max_dimension: float = PrinterConfig.DEFAULT_SIZE_MM) -> tuple:
    """Fit the longest image side to `max_dimension` mm, keeping aspect ratio (0.1 mm)."""
    if width < 1 or height < 1:
        raise ValueError(f"Invalid image size {width}x{height}")
    aspect = width / height
    if width > height:
        x_size = max_dimension
        y_size = np.floor(max_dimension / aspect * 10 + 0.5) / 10
    else:
        y_size = max_dimension
        x_size = np.floor(max_dimension * aspect * 10 + 0.5) / 10
    return clamp_size(x_size), clamp_size(y_size)
