"""
ColorStack - Image Loading
Decodes a picture file into the RGBA pixel buffer the pipeline consumes.
"""

import numpy as np
from PIL import Image, UnidentifiedImageError

from colorstack.quantizer import auto_physical_size


def _downscale(img: Image.Image, max_side: int) -> Image.Image:
    longest = max(img.width, img.height)
    if longest <= max_side:
        return img
    scale = max_side / longest
    size = (max(1, int(img.width * scale)), max(1, int(img.height * scale)))
    return img.resize(size, Image.Resampling.NEAREST)


def load_image(image_path, max_side: int = None) -> dict:
    """
    Load an image as an (H, W, 4) uint8 RGBA array.

    Args:
        image_path: file path (or file-like object)
        max_side: optional limit for the longest side; larger images are
            downscaled with nearest-neighbour sampling so no new colors appear

    Returns:
        dict: {
            'success': bool,
            'pixels': np.ndarray (H, W, 4) uint8 or None,
            'width': int or None,
            'height': int or None,
            'original_size': (w, h) or None,
            'physical_size': (x_mm, y_mm) or None,
            'error': str or None
        }
    """
    failed = {
        'success': False,
        'pixels': None,
        'width': None,
        'height': None,
        'original_size': None,
        'physical_size': None,
    }
    if image_path is None:
        return dict(failed, error="❌ No image provided")

    try:
        with Image.open(image_path) as src:
            img = src.convert('RGBA')
    except (OSError, UnidentifiedImageError) as e:
        return dict(failed, error=f"❌ Cannot read image: {image_path} ({e})")

    orig_w, orig_h = img.size
    if max_side:
        img = _downscale(img, max_side)

    pixels = np.array(img, dtype=np.uint8)
    h, w = pixels.shape[:2]
    print(f"[IMAGE] Loaded {image_path} ({orig_w}x{orig_h})"
          + (f" -> {w}x{h}" if (w, h) != (orig_w, orig_h) else ""))

    return {
        'success': True,
        'pixels': pixels,
        'width': w,
        'height': h,
        'original_size': (orig_w, orig_h),
        'physical_size': auto_physical_size(orig_w, orig_h),
        'error': None,
    }


def pixels_to_image(pixels: np.ndarray) -> Image.Image:
    """(H, W, 4) uint8 -> PIL RGBA image (for previews and saving)."""
    return Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8), 'RGBA')
