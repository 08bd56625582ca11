"""
ColorStack - Filament Matcher
Maps the structural palette onto the user's filament inventory.

The assignment is a greedy pass over all (palette, filament) pairs sorted
by squared RGB distance. It is not an optimal bipartite matching.
"""

import uuid
from dataclasses import dataclass
from typing import List, Sequence, Union

import numpy as np
from scipy.spatial.distance import cdist

from colorstack.color_space import hex_to_rgb, is_valid_hex_color


@dataclass(frozen=True)
class Filament:
    """One spool in the caller's inventory."""
    id: str
    name: str
    material: str
    color: str

    def __post_init__(self):
        if not is_valid_hex_color(self.color):
            raise ValueError(f"Invalid filament color {self.color!r}")


FilamentLike = Union[Filament, str, dict]


def _filament_color(entry: FilamentLike) -> str:
    if isinstance(entry, Filament):
        return entry.color
    if isinstance(entry, dict):
        return entry['color']
    return entry


def match_to_inventory(suggested_palette: Sequence[str],
                       inventory: Sequence[FilamentLike]) -> List[str]:
    """
    Build a render palette from inventory colors.

    Each palette slot gets at most one filament and each filament serves at
    most one slot while any remain unused; leftover slots take the first
    unused filament, then inventory[0].

    Args:
        suggested_palette: structural palette (hex)
        inventory: Filament objects, {'color': hex} dicts or hex strings

    Returns:
        list[str]: render palette, same length as suggested_palette.
            An empty inventory returns a copy of suggested_palette.
    """
    if not inventory:
        return list(suggested_palette)
    if not suggested_palette:
        return []

    filament_colors = [_filament_color(f) for f in inventory]
    suggested_rgb = np.array([hex_to_rgb(c) for c in suggested_palette], dtype=np.float64)
    filament_rgb = np.array([hex_to_rgb(c) for c in filament_colors], dtype=np.float64)

    dist = cdist(suggested_rgb, filament_rgb, metric='sqeuclidean')
    n_filaments = dist.shape[1]
    pair_order = np.argsort(dist.ravel(), kind='stable')

    matched = [None] * len(suggested_palette)
    used_filaments = set()
    used_suggestions = set()
    for flat_idx in pair_order:
        s_idx, f_idx = divmod(int(flat_idx), n_filaments)
        if s_idx in used_suggestions or f_idx in used_filaments:
            continue
        matched[s_idx] = filament_colors[f_idx]
        used_suggestions.add(s_idx)
        used_filaments.add(f_idx)
        if len(used_suggestions) == len(suggested_palette):
            break

    for i in range(len(matched)):
        if matched[i] is not None:
            continue
        for j, color in enumerate(filament_colors):
            if j not in used_filaments:
                matched[i] = color
                used_filaments.add(j)
                break
        if matched[i] is None:
            matched[i] = filament_colors[0]

    return matched


def add_filament(inventory: Sequence[Filament], color: str,
                 name: str = "New Filament", material: str = "PLA",
                 filament_id: str = None) -> List[Filament]:
    """Return a new inventory with the filament appended; duplicate colors are rejected."""
    if not is_valid_hex_color(color):
        raise ValueError(f"Invalid filament color {color!r}")
    if any(f.color.lower() == color.lower() for f in inventory):
        raise ValueError(f"Color {color} is already in the inventory")
    new = Filament(
        id=filament_id or uuid.uuid4().hex,
        name=name,
        material=material,
        color=color,
    )
    return list(inventory) + [new]


def remove_filament(inventory: Sequence[Filament], filament_id: str) -> List[Filament]:
    """Return a new inventory without the filament `filament_id` (no-op if absent)."""
    return [f for f in inventory if f.id != filament_id]
