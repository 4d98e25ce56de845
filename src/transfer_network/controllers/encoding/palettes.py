# src/transfer_network/controllers/encoding/palettes.py

from __future__ import annotations

from functools import lru_cache
from typing import List

import matplotlib
import matplotlib.colors as mcolors
import numpy as np

GREY = "#BEBEBE"
WHITE = "#FFFFFF"
HIGHLIGHT_BLUE = "#0000FF"

# ColorBrewer qualitative palettes, concatenated in this order for cluster colours
QUALITATIVE_PALETTES = ("Accent", "Dark2", "Paired", "Pastel1", "Pastel2", "Set1", "Set2", "Set3")


def heat_colors(n: int) -> List[str]:
    """
    Classic heat ramp with n steps: red -> orange -> yellow, then
    yellow fading towards white over the last quarter.
    """
    n = int(n)
    if n <= 0:
        return []
    j = n // 4
    i = n - j

    hues = np.linspace(0.0, 1.0 / 6.0, i) if i > 1 else np.zeros(i)
    hsv = [(h, 1.0, 1.0) for h in hues]
    if j > 0:
        sats = np.linspace(1.0 - 1.0 / (2 * j), 1.0 / (2 * j), j) if j > 1 else [0.5]
        hsv.extend((1.0 / 6.0, s, 1.0) for s in sats)

    rgb = mcolors.hsv_to_rgb(np.array(hsv, dtype=float))
    return [mcolors.to_hex(c).upper() for c in rgb]


def reversed_heat_colors(n: int) -> List[str]:
    """Heat ramp from pale (low values) to red (high values)."""
    return heat_colors(n)[::-1]


@lru_cache(maxsize=None)
def _qualitative() -> tuple:
    colors = []
    for name in QUALITATIVE_PALETTES:
        colors.extend(mcolors.to_hex(c).upper() for c in matplotlib.colormaps[name].colors)
    return tuple(colors)


def qualitative_palette() -> List[str]:
    """Maximally distinct categorical colours (74 entries)."""
    return list(_qualitative())


def qualitative_color(index: int) -> str:
    """Colour for a 1-based category id; cycles past the end of the palette."""
    palette = _qualitative()
    return palette[(int(index) - 1) % len(palette)]


def with_alpha(color: str, alpha: float) -> str:
    """Hex colour with an alpha channel (#RRGGBBAA)."""
    return mcolors.to_hex(mcolors.to_rgba(color, alpha=alpha), keep_alpha=True).upper()


TRANSLUCENT_GREY = with_alpha(GREY, 0.1)
