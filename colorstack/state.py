"""
ColorStack - Request objects
Immutable parameter bundles passed into the pipeline functions.
Caching of palettes and rasters is left to the caller.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from config import PrinterConfig
from colorstack.color_space import is_valid_hex_color
from colorstack.filament import match_to_inventory
from colorstack.palette import invert_palette, move_color
from colorstack.quantizer import band_heights


@dataclass(frozen=True)
class PaletteState:
    """
    Structural palette (decides bands) and render palette (decides drawn colors).
    Changing the render palette never changes which pixels fall in which band.
    """
    structural: Tuple[str, ...]
    render: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, 'structural', tuple(self.structural))
        if self.render is None:
            object.__setattr__(self, 'render', self.structural)
        else:
            object.__setattr__(self, 'render', tuple(self.render))
        if not self.structural:
            raise ValueError("Structural palette is empty")
        if len(self.render) != len(self.structural):
            raise ValueError(
                f"Render palette has {len(self.render)} colors, "
                f"structural has {len(self.structural)}"
            )
        bad = [c for c in self.structural + self.render if not is_valid_hex_color(c)]
        if bad:
            raise ValueError(f"Invalid palette colors: {bad}")

    def __len__(self):
        return len(self.structural)

    def with_render(self, render) -> "PaletteState":
        return replace(self, render=tuple(render))

    def matched_to(self, inventory) -> "PaletteState":
        """Render palette swapped to inventory colors; structure untouched."""
        return self.with_render(match_to_inventory(self.structural, inventory))

    def recolored(self, index: int, color: str) -> "PaletteState":
        """One band drawn in a user-picked color; structure untouched."""
        if not is_valid_hex_color(color):
            raise ValueError(f"Invalid color: {color!r}")
        if not 0 <= index < len(self):
            raise ValueError(f"Band {index} outside [0, {len(self) - 1}]")
        render = list(self.render)
        render[index] = color.lower()
        return self.with_render(render)

    def reset_render(self) -> "PaletteState":
        return PaletteState(self.structural)

    def inverted(self) -> "PaletteState":
        """User inversion: both palettes reversed, raster must be recomputed."""
        return PaletteState(invert_palette(self.structural), invert_palette(self.render))

    def moved(self, src: int, dst: int) -> "PaletteState":
        """User drag reorder, applied to both palettes."""
        return PaletteState(move_color(self.structural, src, dst), move_color(self.render, src, dst))


@dataclass(frozen=True)
class LayerParams:
    """Which print layer the preview shows, and how."""
    current_layer: int = 0
    single_layer: bool = False


@dataclass(frozen=True)
class PrintParams:
    """Physical print settings; layer counts are multiples of layer_height."""
    layer_height: float = PrinterConfig.LAYER_HEIGHT
    base_layers: int = PrinterConfig.BASE_LAYERS
    band_layers: int = PrinterConfig.BAND_LAYERS
    x_size_mm: float = PrinterConfig.DEFAULT_SIZE_MM
    y_size_mm: float = PrinterConfig.DEFAULT_SIZE_MM

    def __post_init__(self):
        if self.layer_height <= 0:
            raise ValueError(f"Layer height must be positive, got {self.layer_height}")
        if self.base_layers < 0 or self.band_layers < 0:
            raise ValueError("Layer counts must not be negative")
        if self.x_size_mm <= 0 or self.y_size_mm <= 0:
            raise ValueError(
                f"Physical size must be positive, got {self.x_size_mm}x{self.y_size_mm}mm"
            )

    def heights(self, band_count: int):
        return band_heights(band_count, self.layer_height, self.base_layers, self.band_layers)


@dataclass(frozen=True)
class PaletteRequest:
    """Input of a palette generation call."""
    pixels: object = field(compare=False)
    band_count: int
    width: Optional[int] = None
    height: Optional[int] = None
    seed: Optional[int] = field(default=None, compare=False)
