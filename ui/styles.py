"""
ColorStack - UI Styles
Only classes emitted by layout.py and palette_extension.py are styled here.
"""

CUSTOM_CSS = """
/* Header: flat card with a striped band edge, like a sliced print */
.header-banner {
    background: #1f2a30;
    border-left: 10px solid transparent;
    border-image: repeating-linear-gradient(180deg, #e63946 0 12px, #f1c40f 12px 24px, #2a9d8f 24px 36px) 10;
    padding: 14px 22px;
    margin-bottom: 14px;
}

.header-banner h1 {
    color: #f4f1ea !important;
    font-size: 2em !important;
    letter-spacing: 0.04em;
    margin: 0 !important;
}

.header-banner p {
    color: #b8c4c9 !important;
    margin: 4px 0 0 0 !important;
}

/* Main actions */
.primary-btn {
    background: #2a9d8f !important;
    border: 1px solid #21867a !important;
    color: #ffffff !important;
    font-weight: 600 !important;
}

.primary-btn:hover {
    background: #21867a !important;
}

/* Palette swatches: one per band, base first */
.palette-grid {
    border-bottom: 1px dashed #c9d1d4;
}

.palette-swatch-container {
    min-width: 64px;
}

.palette-swatch {
    box-shadow: inset 0 -6px 0 rgba(0, 0, 0, 0.12);
}

/* Filament inventory */
.inventory-list {
    max-height: 220px;
    overflow-y: auto;
}

/* Slicer steps */
.slicer-steps {
    background: #f4f1ea;
    border: 1px solid #e0dccf;
    border-radius: 6px;
    padding: 8px 12px;
}

.slicer-steps ol {
    padding-left: 20px;
    font-size: 0.95em;
}

.footer {
    text-align: center;
    padding: 12px;
    color: #7d8a8f;
    font-size: 0.85em;
}
"""
