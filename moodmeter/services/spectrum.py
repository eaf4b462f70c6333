# moodmeter/services/spectrum.py
"""
Energy spectrum colour mapping.

Maps an energy value (0-1) to an HSL colour on the mood spectrum, which flows
from depleted (cool blues) through balanced (greens) to high (warm corals).
Everything here is pure and total: no state, no I/O, no exceptions for
numeric input.
"""
from __future__ import annotations

import math
import re
from typing import List, Sequence, Tuple

import numpy as np

from moodmeter.models import EnergyLevel, HSLColor

# Upper (exclusive) bound of each level; anything >= 0.8 is HIGH
ENERGY_THRESHOLDS: List[Tuple[float, EnergyLevel]] = [
    (0.2, EnergyLevel.DEPLETED),
    (0.4, EnergyLevel.LOW),
    (0.6, EnergyLevel.BALANCED),
    (0.8, EnergyLevel.ELEVATED),
]

# (segment start energy, hue at start, hue at end). Every segment is 0.2 wide.
# The elevated segment sweeps 100 degrees (through greens into yellows) on purpose,
# so anxious/excited reads clearly apart from balanced.
HUE_SEGMENTS: List[Tuple[float, float, float]] = [
    (0.0, 250.0, 220.0),  # depleted: deep blues
    (0.2, 220.0, 180.0),  # low: blues to teals
    (0.4, 180.0, 140.0),  # balanced: greens
    (0.6, 140.0, 40.0),   # elevated: greens to yellows
    (0.8, 40.0, 10.0),    # high: oranges to corals
]
SEGMENT_WIDTH = 0.2

ALTERNATIVE_STEP = 0.05
DEFAULT_COLOR = HSLColor(h=160, s=50, l=50)  # balanced neutral


def _round(x: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(x + 0.5))


def _clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, x))


def energy_to_level(energy: float) -> EnergyLevel:
    for upper, level in ENERGY_THRESHOLDS:
        if energy < upper:
            return level
    return EnergyLevel.HIGH


def _hue_for(e: float) -> float:
    start, h_start, h_end = HUE_SEGMENTS[0]
    for seg in HUE_SEGMENTS:
        if e >= seg[0]:
            start, h_start, h_end = seg
    return h_start - ((e - start) / SEGMENT_WIDTH) * (h_start - h_end)


def energy_to_color(energy: float) -> HSLColor:
    """
    Energy -> HSL. Input is clamped to [0, 1] first.
    Output stays within h 10-250, s 45-70, l 50-60 by construction.
    """
    e = _clamp(energy)
    hue = _hue_for(e)
    # saturation peaks mid-spectrum, softer at the extremes
    saturation = 45 + math.sin(e * math.pi) * 25
    lightness = 50 + e * 10
    return HSLColor(h=_round(hue), s=_round(saturation), l=_round(lightness))


def alternative_energies(energy: float, count: int = 5) -> List[float]:
    """Energies behind generate_alternatives(), index count//2 being the input itself."""
    mid = count // 2
    return [_clamp(energy + (i - mid) * ALTERNATIVE_STEP) for i in range(count)]


def generate_alternatives(energy: float, count: int = 5) -> List[HSLColor]:
    # duplicates at the clamp boundaries are expected and kept
    return [energy_to_color(e) for e in alternative_energies(energy, count)]


def average_colors(colors: Sequence[HSLColor]) -> HSLColor:
    """
    Average colours for a calendar day. Hue is circular (350 and 10 average to 0,
    not 180), so it uses the mean of unit vectors; s and l are plain means.
    """
    if len(colors) == 0:
        return DEFAULT_COLOR
    if len(colors) == 1:
        return colors[0]

    hues = np.radians([c.h for c in colors])
    avg_h = math.degrees(math.atan2(float(np.sin(hues).sum()), float(np.cos(hues).sum())))
    if avg_h < 0:
        avg_h += 360

    return HSLColor(
        h=_round(avg_h) % 360,
        s=_round(float(np.mean([c.s for c in colors]))),
        l=_round(float(np.mean([c.l for c in colors]))),
    )


def hsl_to_string(color: HSLColor) -> str:
    return f"hsl({color.h}, {color.s}%, {color.l}%)"


def hsl_to_hex(color: HSLColor) -> str:
    h, s, l = color.h, color.s / 100, color.l / 100

    c = (1 - abs(2 * l - 1)) * s
    x = c * (1 - abs(((h / 60) % 2) - 1))
    m = l - c / 2

    if h < 60:
        r, g, b = c, x, 0.0
    elif h < 120:
        r, g, b = x, c, 0.0
    elif h < 180:
        r, g, b = 0.0, c, x
    elif h < 240:
        r, g, b = 0.0, x, c
    elif h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return "#" + "".join(f"{_round((v + m) * 255):02x}" for v in (r, g, b))


def spectrum_gradient(stops: int = 11) -> List[Tuple[HSLColor, float]]:
    """(colour, position %) pairs sampled evenly across the spectrum."""
    n = stops - 1
    return [(energy_to_color(i / n), i * 100 / n) for i in range(stops)]


def spectrum_gradient_css() -> str:
    parts = [f"{hsl_to_string(c)} {pos:g}%" for c, pos in spectrum_gradient()]
    return f"linear-gradient(to right, {', '.join(parts)})"


_HSL_RE = re.compile(r"^\s*hsl\(\s*(\d+)\s*,\s*(\d+)%\s*,\s*(\d+)%\s*\)\s*$", re.I)


def parse_hsl(value: str) -> HSLColor:
    """Inverse of hsl_to_string()."""
    m = _HSL_RE.match(value or "")
    if not m:
        raise ValueError(f"not an hsl() colour: {value!r}")
    return HSLColor(h=int(m.group(1)), s=int(m.group(2)), l=int(m.group(3)))
