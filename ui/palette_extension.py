"""
ColorStack - Palette Display
HTML builders for the palette swatches, filament inventory and slicer steps.
Text and percentage are displayed BELOW the color swatches for readability.
"""

import html
from typing import List


def generate_palette_html(structural: List[str], render: List[str] = None,
                          usage=None) -> str:
    """
    Swatch strip for the current palette, base layer first.

    Args:
        structural: structural palette (decides bands)
        render: render palette; swatches whose render color differs are
            outlined and show both colors
        usage: optional per-band pixel counts

    Returns:
        HTML string
    """
    if not structural:
        return "<p style='color:#888;'>No palette yet. Upload an image.</p>"

    render = list(render) if render is not None else list(structural)
    total = float(sum(usage)) if usage is not None and sum(usage) > 0 else None

    html_parts = [
        f'<p style="color:#666; margin:4px 8px;">{len(structural)} bands (bottom → top)</p>',
        '<div class="palette-grid" style="display:flex; flex-wrap:wrap; gap:8px; padding:8px;">'
    ]
    for index, (struct_hex, render_hex) in enumerate(zip(structural, render)):
        swapped = struct_hex.lower() != render_hex.lower()
        border_style = "3px solid #ff6b6b" if swapped else "1px solid #ccc"
        label = "Base" if index == 0 else f"Band {index}"
        pct = f"{usage[index] / total * 100:.1f}%" if total else ""
        detail = f"{struct_hex} → {render_hex}" if swapped else render_hex
        html_parts.append(f'''
        <div class="palette-swatch-container" style="display:flex; flex-direction:column; align-items:center; gap:4px;">
            <div class="palette-swatch" style="width:50px; height:50px; background:{render_hex}; border:{border_style}; border-radius:8px;" title="{detail}"></div>
            <div style="font-size:10px; color:#444; text-align:center;">{label}</div>
            <div style="font-size:9px; color:#888; font-family:monospace;">{detail}</div>
            <div style="font-size:9px; color:#888;">{pct}</div>
        </div>''')
    html_parts.append('</div>')
    return ''.join(html_parts)


def generate_inventory_html(inventory) -> str:
    """Compact list of the user's filaments."""
    if not inventory:
        return "<p style='color:#888;'>No filaments. Add the spools you own to match colors.</p>"

    rows = ['<div class="inventory-list" style="display:flex; flex-direction:column; gap:4px; padding:4px;">']
    for f in inventory:
        rows.append(
            f'<div style="display:flex; align-items:center; gap:8px;">'
            f'<span style="display:inline-block; width:18px; height:18px; border-radius:4px; '
            f'border:1px solid #ccc; background:{f.color};"></span>'
            f'<span style="font-size:12px;">{html.escape(f.name)} ({html.escape(f.material)})</span>'
            f'<span style="font-size:10px; color:#888; font-family:monospace;">{f.color}</span>'
            f'</div>'
        )
    rows.append('</div>')
    return ''.join(rows)


def generate_instructions_html(steps: List[dict]) -> str:
    """Numbered filament-change schedule for the slicer."""
    if not steps:
        return ""
    items = []
    for step in steps:
        items.append(
            f'<li style="margin:4px 0;">'
            f'<span style="display:inline-block; width:14px; height:14px; border-radius:3px; '
            f'border:1px solid #ccc; background:{step["color"]}; vertical-align:middle; margin-right:6px;"></span>'
            f'<code>{step["color"]}</code> {step["text"]}</li>'
        )
    return ('<div class="slicer-steps"><p style="font-weight:bold;">🖨️ Slicer filament changes</p>'
            f'<ol>{"".join(items)}</ol></div>')
