"""
ColorStack - UI Layout
UI layout definition
"""

import gradio as gr     # type:ignore

from config import BandLimits, PrinterConfig
from .styles import CUSTOM_CSS
from .palette_extension import generate_palette_html, generate_inventory_html
from .callbacks import (
    on_tier_change,
    on_image_upload,
    on_generate_palette,
    on_auto_size,
    on_layer_change,
    on_invert_palette,
    on_move_color,
    on_match_filaments,
    on_recolor_band,
    on_reset_render,
    on_add_filament,
    on_remove_filament,
    on_export_stl,
)


def create_app():
    """Create the Gradio application interface"""
    with gr.Blocks(title="ColorStack", css=CUSTOM_CSS, theme=gr.themes.Soft()) as app:

        gr.HTML("""
        <div class="header-banner">
            <h1>🎨 ColorStack</h1>
            <p>Image → color bands → layered heightfield STL for filament-swap printing</p>
        </div>
        """)

        with gr.Tabs():

            # ═══════════════════════════════════════════════════════════════
            # TAB 1: Converter
            # ═══════════════════════════════════════════════════════════════
            create_converter_tab()

            # ═══════════════════════════════════════════════════════════════
            # TAB 2: About
            # ═══════════════════════════════════════════════════════════════
            create_about_tab()

        gr.HTML("""
        <div class="footer">
            <p>💡 Tip: a clean, high-contrast background makes the best base layer</p>
        </div>
        """)

    return app


def create_converter_tab():
    """Converter tab: image, palette, filaments, print settings, export"""
    with gr.TabItem("🖼️ Converter", id=0):
        image_state = gr.State(None)
        palette_state = gr.State(None)
        bands_state = gr.State(None)
        inventory_state = gr.State([])

        with gr.Row():
            # ─────────────────────────── inputs ───────────────────────────
            with gr.Column(scale=1):
                gr.Markdown("#### 📸 Image")
                image_in = gr.Image(label="Input Image", type="filepath")

                with gr.Row():
                    tier = gr.Radio(choices=["Free", "Pro"], value="Free", label="Plan")
                    band_count = gr.Slider(
                        BandLimits.MIN_BANDS, BandLimits.FREE_MAX_BANDS,
                        BandLimits.DEFAULT_BANDS, step=1, label="Bands",
                    )
                regen_btn = gr.Button("🎲 Suggest Palette", variant="primary", elem_classes=["primary-btn"])

                gr.Markdown("#### 🧱 Print Settings")
                with gr.Row():
                    x_size = gr.Number(PrinterConfig.DEFAULT_SIZE_MM, label="X size (mm)",
                                       minimum=PrinterConfig.MIN_SIZE_MM, maximum=PrinterConfig.MAX_SIZE_MM)
                    y_size = gr.Number(PrinterConfig.DEFAULT_SIZE_MM, label="Y size (mm)",
                                       minimum=PrinterConfig.MIN_SIZE_MM, maximum=PrinterConfig.MAX_SIZE_MM)
                auto_size_btn = gr.Button("📐 Auto Size")
                layer_height = gr.Slider(0.04, 0.4, PrinterConfig.LAYER_HEIGHT, step=0.02, label="Layer Height (mm)")
                with gr.Row():
                    base_layers = gr.Slider(1, 20, PrinterConfig.BASE_LAYERS, step=1, label="Base Layers")
                    band_layers = gr.Slider(1, 20, PrinterConfig.BAND_LAYERS, step=1, label="Layers per Band")

                status = gr.Textbox(label="Status", interactive=False)

            # ─────────────────────────── preview ──────────────────────────
            with gr.Column(scale=2):
                gr.Markdown("#### 👁️ Layer Preview")
                preview = gr.Image(label="Preview", show_label=False, interactive=False)
                with gr.Row():
                    layer_slider = gr.Slider(0, BandLimits.DEFAULT_BANDS - 1, BandLimits.DEFAULT_BANDS - 1,
                                             step=1, label="Current Layer")
                    single_layer = gr.Checkbox(label="Single layer only", value=False)

                gr.Markdown("#### 🎨 Palette")
                palette_html = gr.HTML(generate_palette_html([]))
                with gr.Row():
                    invert_btn = gr.Button("🔄 Invert")
                    move_src = gr.Number(1, label="Move color #", precision=0)
                    move_dst = gr.Number(1, label="to position #", precision=0)
                    move_btn = gr.Button("↕️ Move")
                with gr.Row():
                    recolor_band = gr.Number(0, label="Band # (0 = base)", precision=0)
                    recolor_color = gr.ColorPicker(label="Draw band as", value="#FFFFFF")
                    recolor_btn = gr.Button("🖌️ Recolor")

                with gr.Accordion("🧵 My Filaments", open=False):
                    inventory_html = gr.HTML(generate_inventory_html([]))
                    with gr.Row():
                        fil_color = gr.ColorPicker(label="Color", value="#FFFFFF")
                        fil_name = gr.Textbox(label="Name", value="New Filament")
                        fil_material = gr.Dropdown(["PLA", "PETG", "ABS", "TPU"], value="PLA", label="Material")
                    with gr.Row():
                        fil_add_btn = gr.Button("➕ Add")
                        fil_remove = gr.Dropdown(choices=[], label="Remove filament")
                        fil_remove_btn = gr.Button("🗑️ Remove")
                    with gr.Row():
                        match_btn = gr.Button("🧵 Match to My Filaments", variant="primary")
                        reset_btn = gr.Button("↩️ Suggested Colors")

                gr.Markdown("#### 📦 Export")
                export_btn = gr.Button("🚀 Generate STL", variant="primary", elem_classes=["primary-btn"])
                with gr.Row():
                    model_3d = gr.Model3D(label="3D Preview")
                    stl_file = gr.File(label="Download STL")
                instructions_html = gr.HTML()

        # Event handlers
        layer_inputs = [image_state, palette_state, layer_slider, single_layer]
        edit_outputs = [palette_state, bands_state, preview, palette_html, status]
        render_inputs = [palette_state, bands_state, layer_slider, single_layer]
        render_outputs = [palette_state, preview, palette_html, status]

        tier.change(on_tier_change, [tier], [band_count])

        image_in.upload(
            on_image_upload,
            [image_in, band_count, tier, single_layer],
            [image_state, palette_state, bands_state, preview, palette_html,
             layer_slider, x_size, y_size, status]
        )

        regen_btn.click(
            on_generate_palette,
            [image_state, band_count, tier, single_layer],
            [palette_state, bands_state, preview, palette_html, layer_slider, status]
        )

        auto_size_btn.click(on_auto_size, [image_state], [x_size, y_size])

        layer_slider.release(on_layer_change, render_inputs, [preview, status])
        single_layer.change(on_layer_change, render_inputs, [preview, status])

        invert_btn.click(on_invert_palette, layer_inputs, edit_outputs)
        move_btn.click(
            on_move_color,
            [image_state, palette_state, move_src, move_dst, layer_slider, single_layer],
            edit_outputs
        )
        match_btn.click(
            on_match_filaments,
            [palette_state, bands_state, inventory_state, layer_slider, single_layer],
            render_outputs
        )
        recolor_btn.click(
            on_recolor_band,
            [palette_state, bands_state, recolor_band, recolor_color, layer_slider, single_layer],
            render_outputs
        )
        reset_btn.click(on_reset_render, render_inputs, render_outputs)

        fil_add_btn.click(
            on_add_filament,
            [inventory_state, fil_color, fil_name, fil_material],
            [inventory_state, inventory_html, fil_remove, status]
        )
        fil_remove_btn.click(
            on_remove_filament,
            [inventory_state, fil_remove],
            [inventory_state, inventory_html, fil_remove, status]
        )

        export_btn.click(
            on_export_stl,
            [image_state, palette_state, bands_state, layer_height, base_layers, band_layers,
             x_size, y_size],
            [stl_file, model_3d, instructions_html, status]
        )


def create_about_tab():
    """About tab"""
    with gr.TabItem("ℹ️ About", id=1):
        gr.Markdown("""
        ## 🌟 ColorStack

        Turns a picture into a stepped relief that prints in a few filament
        colors by swapping spools at fixed layer heights.

        ### 🔬 How it works
        1. **Palette**: colors are scored by edge strength, saturation and
           distance from the image center, then spread apart in CIELAB space.
           The background color becomes the base layer.
        2. **Bands**: every pixel joins the band of its nearest palette color.
           Band *i* is printed `i × layers per band` above the base.
        3. **Mesh**: the band heights become a closed heightfield solid,
           exported as binary STL.
        4. **Slicer**: follow the filament-change schedule shown after export.

        ### 🧵 Filament matching
        Matching swaps the displayed colors for spools you own. The band
        layout is unchanged, so the print geometry stays the same.
        """)
