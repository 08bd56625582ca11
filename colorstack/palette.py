"""
ColorStack - Palette Selector
Picks a small set of perceptually distinct, visually important colors.

Pipeline:
    quantize -> impact histogram -> oversampled candidates -> CIELAB
    -> farthest-point selection -> base (background) first
    -> detail colors ordered thin-features-first -> uniqueness
"""

import numpy as np

from config import PaletteConfig, BandLimits
from colorstack.color_space import (
    rgb_to_lab,
    delta_e,
    rgb_distance_sq,
    rgb_to_hex,
    hex_to_rgb,
    luminance,
)
from colorstack.saliency import as_pixel_array, build_impact_histogram
from colorstack.quantizer import assign_bands, color_usage


def validate_band_count(band_count, max_bands: int = BandLimits.PRO_MAX_BANDS) -> int:
    """Return band_count as int or raise ValueError when outside [2, max_bands].

    Integral floats (4.0) are accepted; JSON and slider values arrive that way.
    """
    if isinstance(band_count, bool) or not isinstance(band_count, (int, float, np.integer, np.floating)):
        raise ValueError(f"Band count must be an integer, got {band_count!r}")
    if not float(band_count).is_integer():
        raise ValueError(f"Band count must be an integer, got {band_count!r}")
    value = int(band_count)
    if value < BandLimits.MIN_BANDS or value > max_bands:
        raise ValueError(
            f"Band count {value} outside supported range "
            f"[{BandLimits.MIN_BANDS}, {max_bands}]"
        )
    return value


def quantize_pixels(pixels: np.ndarray,
                    level: int = PaletteConfig.QUANTIZATION_LEVEL) -> np.ndarray:
    """
    Snap RGB channels to a coarse grid (round half up, clamp to 255).
    Alpha is copied unchanged; the input is not modified.
    """
    out = pixels.copy()
    rgb = pixels[:, :, :3].astype(np.float64)
    snapped = np.floor(rgb / level + 0.5) * level
    out[:, :, :3] = np.clip(snapped, 0, 255).astype(np.uint8)
    return out


def select_candidates(histogram: dict, band_count: int,
                      oversample: int = PaletteConfig.OVERSAMPLE_FACTOR,
                      max_candidates: int = PaletteConfig.MAX_CANDIDATES) -> np.ndarray:
    """
    Top min(oversample*N, max_candidates) colors by impact score.
    Ties keep first-appearance order.

    Returns:
        np.ndarray: (K, 3) uint8, highest impact first
    """
    limit = min(band_count * oversample, max_candidates)
    order = np.argsort(-histogram['impact'], kind='stable')
    return histogram['colors'][order[:limit]]


def farthest_point_selection(candidates_lab: np.ndarray, count: int) -> list:
    """
    Greedy max-min diversity selection.

    Seeds with candidate 0 (highest impact), then repeatedly adds the
    candidate whose minimum Delta-E to the chosen set is largest. The first
    candidate in iteration order wins ties.

    Args:
        candidates_lab: (K, 3) Lab values in candidate order
        count: number of colors to pick

    Returns:
        list[int]: candidate indices in selection order
    """
    n_candidates = len(candidates_lab)
    if n_candidates == 0 or count <= 0:
        return []

    chosen = [0]
    min_dist = delta_e(candidates_lab, candidates_lab[0])
    min_dist[0] = -np.inf

    while len(chosen) < min(count, n_candidates):
        best = int(np.argmax(min_dist))
        chosen.append(best)
        min_dist = np.minimum(min_dist, delta_e(candidates_lab, candidates_lab[best]))
        min_dist[chosen] = -np.inf

    return chosen


def detect_background_color(pixels: np.ndarray,
                            corner_threshold: float = PaletteConfig.CORNER_DELTA_E_THRESHOLD) -> tuple:
    """
    Estimate the background color of an image.

    If all four corners are within `corner_threshold` Delta-E of each other
    their rounded average is returned; otherwise the most frequent color on
    the 1-pixel border wins (first seen wins ties).

    Returns:
        tuple: (r, g, b) ints
    """
    h, w = pixels.shape[:2]
    rgb = pixels[:, :, :3].astype(np.int64)

    corners = np.array([rgb[0, 0], rgb[0, w - 1], rgb[h - 1, 0], rgb[h - 1, w - 1]])
    corners_lab = rgb_to_lab(corners)
    pairwise = delta_e(corners_lab[:, None, :], corners_lab[None, :, :])
    if np.all(pairwise <= corner_threshold):
        avg = np.floor(corners.sum(axis=0) / 4.0 + 0.5).astype(int)
        return int(avg[0]), int(avg[1]), int(avg[2])

    # Border scan order: top/bottom pairs per column, then left/right pairs per inner row
    top_bottom = np.stack([rgb[0, :], rgb[h - 1, :]], axis=1).reshape(-1, 3)
    if h > 2:
        left_right = np.stack([rgb[1:h - 1, 0], rgb[1:h - 1, w - 1]], axis=1).reshape(-1, 3)
        border = np.concatenate([top_bottom, left_right], axis=0)
    else:
        border = top_bottom

    keys = (border[:, 0] << 16) | (border[:, 1] << 8) | border[:, 2]
    uniq, first_index, counts = np.unique(keys, return_index=True, return_counts=True)
    best_count = counts.max()
    winner = uniq[counts == best_count][np.argmin(first_index[counts == best_count])]
    return int((winner >> 16) & 255), int((winner >> 8) & 255), int(winner & 255)


def move_background_first(colors: np.ndarray, background) -> np.ndarray:
    """Move the entry with the smallest Delta-E to `background` to index 0."""
    if len(colors) == 0:
        return colors
    distances = delta_e(rgb_to_lab(colors), rgb_to_lab(background))
    closest = int(np.argmin(distances))
    if closest == 0:
        return colors
    order = [closest] + [i for i in range(len(colors)) if i != closest]
    return colors[order]


def order_detail_colors(colors: np.ndarray, pixels: np.ndarray) -> np.ndarray:
    """
    Keep index 0 (base) in place; order the rest by descending luminance,
    then stably by ascending pixel usage so thin features print last.
    """
    if len(colors) <= 2:
        return colors

    base = colors[:1]
    details = colors[1:]
    lum = np.array([luminance(c) for c in details])
    details = details[np.argsort(-lum, kind='stable')]
    ordered = np.concatenate([base, details], axis=0)

    bands = assign_bands(pixels, ordered)
    usage = color_usage(bands, len(ordered))
    detail_order = np.argsort(usage[1:], kind='stable') + 1
    return ordered[np.concatenate([[0], detail_order])]


def _find_distinct_color(used_rgb: list, pixels: np.ndarray, rng,
                         threshold: int, max_attempts: int) -> tuple:
    flat = pixels[:, :, :3].reshape(-1, 3)
    used = np.array(used_rgb, dtype=np.int64).reshape(-1, 3)

    for _ in range(max_attempts):
        candidate = flat[int(rng.integers(0, len(flat)))].astype(np.int64)
        if len(used) == 0 or np.all(rgb_distance_sq(used, candidate) >= threshold):
            return tuple(int(v) for v in candidate)

    used_hex = {rgb_to_hex(*c) for c in used}
    while True:
        candidate = tuple(int(v) for v in rng.integers(0, 256, size=3))
        if rgb_to_hex(*candidate) not in used_hex:
            return candidate


def ensure_unique_colors(hex_colors: list, pixels: np.ndarray, rng=None,
                         threshold: int = PaletteConfig.DISTINCT_RGB_THRESHOLD,
                         max_attempts: int = PaletteConfig.MAX_DISTINCT_ATTEMPTS) -> list:
    """
    Replace repeated hex entries with a color sampled from the image that is
    at least `threshold` squared-RGB away from every used color; after
    `max_attempts` misses a random unused color is taken.
    """
    rng = np.random.default_rng(rng)
    unique = []
    used = set()
    for color in hex_colors:
        if color in used:
            used_rgb = [hex_to_rgb(c) for c in unique]
            replacement = rgb_to_hex(*_find_distinct_color(
                used_rgb, pixels, rng, threshold, max_attempts
            ))
            print(f"[PALETTE] Duplicate {color} replaced by {replacement}")
            color = replacement
        unique.append(color)
        used.add(color)
    return unique


def generate_palette(pixels, band_count, width=None, height=None, rng=None,
                     max_bands: int = BandLimits.PRO_MAX_BANDS,
                     quantization_level: int = PaletteConfig.QUANTIZATION_LEVEL,
                     sample_stride: int = PaletteConfig.SAMPLE_STRIDE,
                     oversample: int = PaletteConfig.OVERSAMPLE_FACTOR,
                     max_candidates: int = PaletteConfig.MAX_CANDIDATES,
                     corner_threshold: float = PaletteConfig.CORNER_DELTA_E_THRESHOLD,
                     distinct_threshold: int = PaletteConfig.DISTINCT_RGB_THRESHOLD) -> list:
    """
    Build the structural palette for an image.

    Args:
        pixels: (H, W, 4) uint8 array or flat RGBA buffer (with width/height)
        band_count: requested number of bands, 2..max_bands
        rng: seed or numpy Generator for duplicate replacement

    Returns:
        list[str]: hex colors; index 0 is the base (background) layer.
            May hold fewer than band_count entries for low-diversity images.
    """
    band_count = validate_band_count(band_count, max_bands)
    pixels = as_pixel_array(pixels, width, height)
    h, w = pixels.shape[:2]

    quantized = quantize_pixels(pixels, quantization_level)
    histogram = build_impact_histogram(quantized, stride=sample_stride)
    candidates = select_candidates(histogram, band_count, oversample, max_candidates)
    print(f"[PALETTE] {w}x{h}px, {len(histogram['colors'])} sampled colors, "
          f"{len(candidates)} candidates for {band_count} bands")

    if len(candidates) <= band_count:
        selected = candidates
    else:
        chosen = farthest_point_selection(rgb_to_lab(candidates), band_count)
        selected = candidates[chosen]

    background = detect_background_color(quantized, corner_threshold)
    selected = move_background_first(selected, background)
    selected = order_detail_colors(selected, quantized)

    hex_colors = [rgb_to_hex(*c) for c in selected]
    palette = ensure_unique_colors(hex_colors, pixels, rng, threshold=distinct_threshold)
    print(f"[PALETTE] Background ~ {rgb_to_hex(*background)}, palette: {', '.join(palette)}")
    return palette


def invert_palette(palette: list) -> list:
    """Reversed copy of a palette (base becomes the top layer)."""
    return list(reversed(palette))


def move_color(palette: list, src: int, dst: int) -> list:
    """Copy of `palette` with the entry at `src` moved to position `dst`."""
    n = len(palette)
    if not (0 <= src < n and 0 <= dst < n):
        raise IndexError(f"Cannot move palette entry {src} -> {dst} (size {n})")
    result = list(palette)
    color = result.pop(src)
    result.insert(dst, color)
    return result
