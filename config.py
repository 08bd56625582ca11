"""
ColorStack - Configuration
Constant tables shared by the palette, quantizer and mesh modules.
"""

import os


class ColorScience:
    """sRGB / CIE constants (D65)"""

    # sRGB gamma decode
    SRGB_THRESHOLD = 0.04045
    SRGB_LINEAR_SLOPE = 12.92

    # Linear sRGB -> CIE XYZ
    SRGB_TO_XYZ = (
        (0.4124564, 0.3575761, 0.1804375),
        (0.2126729, 0.7151522, 0.0721750),
        (0.0193339, 0.1191920, 0.9503041),
    )

    # Reference white
    WHITE_X = 0.95047
    WHITE_Y = 1.00000
    WHITE_Z = 1.08883

    LAB_EPSILON = 0.008856
    LAB_KAPPA = 7.787

    # Luminance weights (Rec. 601)
    LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class PaletteConfig:
    """
    Palette selection tunables.
    The thresholds are empirical; defaults reproduce the reference output.
    """

    QUANTIZATION_LEVEL = 32         # bucket width per channel
    OVERSAMPLE_FACTOR = 4           # candidates = factor * bands
    MAX_CANDIDATES = 64
    SAMPLE_STRIDE = 4               # score every 4th pixel

    SOBEL_NORMALIZER = 4.0
    SATURATION_WEIGHT = 2.0
    SALIENCY_WEIGHT = 1.5

    CORNER_DELTA_E_THRESHOLD = 15.0
    DISTINCT_RGB_THRESHOLD = 10000  # squared RGB distance
    MAX_DISTINCT_ATTEMPTS = 100


class PrinterConfig:
    """Default print parameters (mm / layer counts)"""

    LAYER_HEIGHT = 0.2
    BASE_LAYERS = 3
    BAND_LAYERS = 2

    DEFAULT_SIZE_MM = 150.0
    MIN_SIZE_MM = 10.0
    MAX_SIZE_MM = 500.0


class BandLimits:
    """Band count limits per tier"""

    MIN_BANDS = 2
    FREE_MAX_BANDS = 8
    PRO_MAX_BANDS = 24
    DEFAULT_BANDS = 4

    @staticmethod
    def max_for_tier(tier: str) -> int:
        return BandLimits.PRO_MAX_BANDS if tier == "pro" else BandLimits.FREE_MAX_BANDS

    @staticmethod
    def clamp_request(band_count, tier: str = "free") -> int:
        """Fallback used by the UI when the requested band count is unusable."""
        max_bands = BandLimits.max_for_tier(tier)
        try:
            band_count = int(band_count)
        except (TypeError, ValueError):
            return min(BandLimits.DEFAULT_BANDS, max_bands)
        if band_count < BandLimits.MIN_BANDS or band_count > max_bands:
            return min(BandLimits.DEFAULT_BANDS, max_bands)
        return band_count


# Preview size used by the UI before palette generation (longest side, px)
PREVIEW_MAX_SIDE = 400

STL_HEADER = b"ColorStack binary STL - multi-color heightfield"

OUTPUT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "output")
