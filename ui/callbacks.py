"""
ColorStack - UI Callbacks
Gradio event handlers. The palette, raster and inventory live in gr.State;
all image work goes through the background worker.
"""

import os
import threading

import gradio as gr
import trimesh

from config import BandLimits, PREVIEW_MAX_SIDE, OUTPUT_DIR, PrinterConfig
from colorstack.state import PaletteState
from colorstack.filament import add_filament, remove_filament
from colorstack.image_processing import load_image, pixels_to_image
from colorstack.naming import generate_model_filename, generate_preview_filename
from colorstack.quantizer import color_usage, slicer_instructions, auto_physical_size
from colorstack.worker import ImageWorker, Coordinator
from .palette_extension import (
    generate_palette_html,
    generate_inventory_html,
    generate_instructions_html,
)


_coordinator = None
_coordinator_lock = threading.Lock()


def get_coordinator() -> Coordinator:
    """Shared coordinator, backed by a worker thread started on first use."""
    global _coordinator
    with _coordinator_lock:
        if _coordinator is None:
            worker = ImageWorker()
            worker.start()
            coordinator = Coordinator(worker)
            coordinator.request({'type': 'init'})
            _coordinator = coordinator
    return _coordinator


def _ask(message: dict) -> dict:
    """Send a request; an 'error' reply becomes a ValueError."""
    response = get_coordinator().request(message)
    if response['type'] == 'error':
        raise ValueError(response['message'])
    return response


def _max_bands(tier: str) -> int:
    return BandLimits.max_for_tier((tier or "free").lower())


def _process(image: dict, palette: PaletteState, layer, single_layer) -> dict:
    return _ask({
        'type': 'process_image',
        'pixels': image['pixels'],
        'structural_palette': list(palette.structural),
        'render_palette': list(palette.render),
        'current_layer': int(layer),
        'single_layer': bool(single_layer),
    })


def _layer_slider(palette: PaletteState, layer=None):
    top = len(palette) - 1
    value = top if layer is None else min(int(layer), top)
    return gr.Slider(minimum=0, maximum=max(top, 1), value=value, step=1)


def _palette_html(palette: PaletteState, bands) -> str:
    usage = color_usage(bands, len(palette)) if bands is not None else None
    return generate_palette_html(list(palette.structural), list(palette.render), usage)


def _redraw(image, palette: PaletteState, layer, single_layer):
    """(bands, preview image, palette html) after a structural change."""
    result = _process(image, palette, layer, single_layer)
    bands = result['band_map']
    return bands, pixels_to_image(result['preview']), _palette_html(palette, bands)


def _composite(bands, palette: PaletteState, layer, single_layer):
    """Preview image from the cached raster; bands are not reassigned."""
    result = _ask({
        'type': 'render_preview',
        'band_map': bands,
        'structural_palette': list(palette.structural),
        'render_palette': list(palette.render),
        'current_layer': min(int(layer), len(palette) - 1),
        'single_layer': bool(single_layer),
    })
    return pixels_to_image(result['preview'])


# ═══════════════════════════════════════════════════════════════
# Image / Palette Callbacks
# ═══════════════════════════════════════════════════════════════

def on_tier_change(tier):
    """Band-count slider limits for a plan; value falls back to min(4, max)."""
    max_bands = _max_bands(tier)
    return gr.Slider(minimum=BandLimits.MIN_BANDS, maximum=max_bands,
                     value=min(BandLimits.DEFAULT_BANDS, max_bands), step=1)


def on_generate_palette(image, band_count, tier, single_layer):
    """
    Build a fresh palette for the loaded image.

    Returns:
        tuple: (palette_state, bands_state, preview, palette_html, layer_slider, status)
    """
    if image is None:
        return None, None, None, generate_palette_html([]), gr.Slider(), "❌ Upload an image first"
    try:
        band_count = BandLimits.clamp_request(band_count, (tier or "free").lower())
        response = _ask({
            'type': 'generate_palette',
            'pixels': image['pixels'],
            'band_count': band_count,
            'width': image['width'],
            'height': image['height'],
        })
        palette = PaletteState(response['palette'])
        top = len(palette) - 1
        bands, preview, html = _redraw(image, palette, top, single_layer)
    except ValueError as e:
        return None, None, None, generate_palette_html([]), gr.Slider(), f"❌ {e}"

    status = (f"✅ {len(palette)} colors (requested {band_count}), "
              f"background ~ {response['background_color']}")
    return palette, bands, preview, html, _layer_slider(palette), status


def on_image_upload(image_path, band_count, tier, single_layer):
    """
    Load an image, size it and build its first palette.

    Returns:
        tuple: (image_state, palette_state, bands_state, preview, palette_html,
                layer_slider, x_size, y_size, status)
    """
    result = load_image(image_path, max_side=PREVIEW_MAX_SIDE)
    if not result['success']:
        return (None, None, None, None, generate_palette_html([]), gr.Slider(),
                gr.Number(), gr.Number(), result['error'])

    image = {
        'pixels': result['pixels'],
        'width': result['width'],
        'height': result['height'],
        'name': os.path.splitext(os.path.basename(str(image_path)))[0],
    }
    x_size, y_size = result['physical_size']
    palette, bands, preview, html, slider, status = on_generate_palette(
        image, band_count, tier, single_layer
    )
    return image, palette, bands, preview, html, slider, x_size, y_size, status


def on_auto_size(image):
    """Longest side back to the default size, keeping aspect ratio."""
    if image is None:
        return PrinterConfig.DEFAULT_SIZE_MM, PrinterConfig.DEFAULT_SIZE_MM
    return auto_physical_size(image['width'], image['height'])


def on_layer_change(palette, bands, layer, single_layer):
    """Returns: (preview, status)"""
    if palette is None or bands is None:
        return None, ""
    try:
        preview = _composite(bands, palette, layer, single_layer)
    except ValueError as e:
        return None, f"❌ {e}"
    mode = "only" if single_layer else "up to"
    return preview, f"👁️ Showing {mode} layer {int(layer)}"


def _apply_palette(image, palette, layer, single_layer, status):
    """Shared tail of every palette edit: recompute raster, preview and swatches."""
    try:
        bands, preview, html = _redraw(image, palette, min(int(layer), len(palette) - 1), single_layer)
    except ValueError as e:
        return palette, None, None, gr.HTML(), f"❌ {e}"
    return palette, bands, preview, html, status


def on_invert_palette(image, palette, layer, single_layer):
    """Returns: (palette_state, bands_state, preview, palette_html, status)"""
    if image is None or palette is None:
        return palette, None, None, gr.HTML(), "❌ Generate a palette first"
    return _apply_palette(image, palette.inverted(), layer, single_layer,
                          "🔄 Palette inverted")


def on_move_color(image, palette, src, dst, layer, single_layer):
    """Move one swatch to a new position (1-based positions in the UI)."""
    if image is None or palette is None:
        return palette, None, None, gr.HTML(), "❌ Generate a palette first"
    try:
        moved = palette.moved(int(src) - 1, int(dst) - 1)
    except (IndexError, ValueError) as e:
        return palette, None, None, gr.HTML(), f"❌ {e}"
    return _apply_palette(image, moved, layer, single_layer,
                          f"↕️ Moved color {int(src)} to position {int(dst)}")


def _apply_render(palette, bands, layer, single_layer, status):
    """Shared tail of every render-color edit: the cached raster is reused as is."""
    try:
        preview = _composite(bands, palette, layer, single_layer)
    except ValueError as e:
        return palette, None, gr.HTML(), f"❌ {e}"
    return palette, preview, _palette_html(palette, bands), status


def on_match_filaments(palette, bands, inventory, layer, single_layer):
    """
    Swap render colors for owned filaments; bands stay the same.

    Returns:
        tuple: (palette_state, preview, palette_html, status)
    """
    if palette is None or bands is None:
        return palette, None, gr.HTML(), "❌ Generate a palette first"
    if not inventory:
        return _apply_render(palette.reset_render(), bands, layer, single_layer,
                             "⚠️ Inventory is empty, showing suggested colors")
    matched = palette.matched_to(inventory)
    return _apply_render(matched, bands, layer, single_layer,
                         f"🧵 Matched to {len(inventory)} filaments")


def on_recolor_band(palette, bands, band_index, color, layer, single_layer):
    """Draw one band in a picked color (0 = base); which pixels it covers is unchanged."""
    if palette is None or bands is None:
        return palette, None, gr.HTML(), "❌ Generate a palette first"
    try:
        recolored = palette.recolored(int(band_index), color)
    except (TypeError, ValueError) as e:
        return palette, None, gr.HTML(), f"❌ {e}"
    return _apply_render(recolored, bands, layer, single_layer,
                         f"🖌️ Band {int(band_index)} drawn as {recolored.render[int(band_index)]}")


def on_reset_render(palette, bands, layer, single_layer):
    if palette is None or bands is None:
        return palette, None, gr.HTML(), "❌ Generate a palette first"
    return _apply_render(palette.reset_render(), bands, layer, single_layer,
                         "↩️ Showing suggested colors")


# ═══════════════════════════════════════════════════════════════
# Filament Inventory Callbacks
# ═══════════════════════════════════════════════════════════════

def _inventory_outputs(inventory, status):
    choices = [(f"{f.name} {f.color}", f.id) for f in inventory]
    return inventory, generate_inventory_html(inventory), gr.Dropdown(choices=choices, value=None), status


def on_add_filament(inventory, color, name, material):
    """Returns: (inventory_state, inventory_html, remove_dropdown, status)"""
    inventory = inventory or []
    try:
        inventory = add_filament(inventory, color, name=name or "New Filament",
                                 material=material or "PLA")
    except ValueError as e:
        return _inventory_outputs(inventory, f"❌ {e}")
    return _inventory_outputs(inventory, f"✅ Added {color}")


def on_remove_filament(inventory, filament_id):
    inventory = inventory or []
    if not filament_id:
        return _inventory_outputs(inventory, "❌ Select a filament to remove")
    return _inventory_outputs(remove_filament(inventory, filament_id), "🗑️ Filament removed")


# ═══════════════════════════════════════════════════════════════
# Export Callbacks
# ═══════════════════════════════════════════════════════════════

def on_export_stl(image, palette, bands, layer_height, base_layers, band_layers,
                  x_size, y_size):
    """
    Build the STL for the cached raster and the current print settings.

    Returns:
        tuple: (stl_file, model_3d_path, instructions_html, status)
    """
    if image is None or palette is None or bands is None:
        return None, None, "", "❌ Generate a palette first"

    try:
        response = _ask({
            'type': 'generate_mesh',
            'band_map': bands,
            'band_count': len(palette),
            'print_params': {
                'layer_height': float(layer_height),
                'base_layers': int(base_layers),
                'band_layers': int(band_layers),
                'x_size_mm': float(x_size),
                'y_size_mm': float(y_size),
            },
        })
    except ValueError as e:
        return None, None, "", f"❌ {e}"

    os.makedirs(OUTPUT_DIR, exist_ok=True)
    stl_path = os.path.join(OUTPUT_DIR, generate_model_filename(image['name'], len(palette)))
    with open(stl_path, 'wb') as f:
        f.write(response['stl'])
    print(f"[EXPORT] {stl_path} ({response['triangle_count']:,} triangles)")

    glb_path = os.path.join(OUTPUT_DIR, generate_preview_filename(image['name'], ".glb"))
    trimesh.load(stl_path).export(glb_path)

    steps = slicer_instructions(list(palette.render), int(base_layers), int(band_layers))
    status = f"✅ STL ready: {response['triangle_count']:,} triangles"
    return stl_path, glb_path, generate_instructions_html(steps), status
