"""
ColorStack - Pipeline
The requests the worker serves, as plain functions:

    generate_palette  pixels -> PaletteState
    process_image     pixels + PaletteState + LayerParams -> band raster, preview
    render_preview    cached band raster + render palette + LayerParams -> preview
    generate_mesh     band raster + PrintParams -> binary STL bytes
"""

import numpy as np

from colorstack.state import PaletteRequest, PaletteState, LayerParams, PrintParams
from colorstack.saliency import as_pixel_array
from colorstack.color_space import rgb_to_hex
from colorstack.palette import generate_palette, detect_background_color
from colorstack.quantizer import assign_bands, render_preview
from colorstack.heightfield import build_heightfield_mesh


def run_palette_request(request: PaletteRequest) -> dict:
    """
    Returns:
        dict:
            - palette: PaletteState (render == structural)
            - background: hex color detected on the unquantized image
    """
    pixels = as_pixel_array(request.pixels, request.width, request.height)
    structural = generate_palette(pixels, request.band_count, rng=request.seed)
    background = rgb_to_hex(*detect_background_color(pixels))
    return {
        'palette': PaletteState(structural),
        'background': background,
    }


def process_image(pixels, palette: PaletteState, layer: LayerParams = LayerParams(),
                  width=None, height=None) -> dict:
    """
    Band raster from the structural palette, preview from the render palette.

    Returns:
        dict:
            - bands: (H, W) int32
            - preview: (H, W, 4) uint8
    """
    pixels = as_pixel_array(pixels, width, height)
    bands = assign_bands(pixels, palette.structural)
    preview = render_preview(bands, palette.render, layer.current_layer, layer.single_layer)
    return {'bands': bands, 'preview': preview}


def composite_preview(bands: np.ndarray, palette: PaletteState,
                      layer: LayerParams = LayerParams()) -> np.ndarray:
    """Preview from a cached band raster; only the render palette is read."""
    bands = np.asarray(bands)
    if bands.ndim != 2:
        raise ValueError(f"Band raster must be 2-D, got shape {bands.shape}")
    return render_preview(bands, palette.render, layer.current_layer, layer.single_layer)


def generate_mesh(bands: np.ndarray, params: PrintParams, band_count: int = None) -> bytes:
    """
    Binary STL for a cached band raster and the current print parameters.

    band_count sizes the height table; it defaults to max(band) + 1.
    """
    bands = np.asarray(bands)
    if band_count is None:
        band_count = int(bands.max()) + 1 if bands.size else 1
    heights = params.heights(band_count)
    mesh = build_heightfield_mesh(bands, heights, params.x_size_mm, params.y_size_mm)
    return mesh.to_stl_bytes()
