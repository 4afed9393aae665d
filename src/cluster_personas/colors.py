from __future__ import annotations

import colorsys
import math
import re
from dataclasses import dataclass

import numpy as np

HEX_COLOR_RE = re.compile(r"^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")

NORMAL_SATURATION = 0.25
NORMAL_LIGHTNESS_RANGE = (0.3, 0.9)
SELECTION_FINAL_SATURATION = 1.0
SELECTION_FINAL_LIGHTNESS = 0.9
SELECTION_MAX_INITIAL_LIGHTNESS = 0.5
MIN_BAR_PALETTE_SIZE = 3


@dataclass(frozen=True)
class RGB:
    r: int
    g: int
    b: int

    def css(self) -> str:
        return f"rgb({self.r},{self.g},{self.b})"


@dataclass(frozen=True)
class HSL:
    h: float
    s: float
    l: float  # noqa: E741


def _round_channel(value: float) -> int:
    # Half-up, not round-half-even.
    return int(math.floor(value * 255.0 + 0.5))


def parse_hex_color(color: str) -> RGB:
    match = HEX_COLOR_RE.match(color.strip())
    if match is None:
        raise ValueError(f"Invalid hex color: {color}")
    red, green, blue = (int(part, 16) for part in match.groups())
    return RGB(red, green, blue)


def rgb_to_hsl(rgb: RGB) -> HSL:
    hue, lightness, saturation = colorsys.rgb_to_hls(rgb.r / 255.0, rgb.g / 255.0, rgb.b / 255.0)
    return HSL(hue, saturation, lightness)


def hsl_to_rgb(hsl: HSL) -> RGB:
    red, green, blue = colorsys.hls_to_rgb(hsl.h, hsl.l, hsl.s)
    return RGB(_round_channel(red), _round_channel(green), _round_channel(blue))


def interpolate_palette(color: str, iterations: int, is_selection: bool) -> list[RGB]:
    """Generate ``iterations`` colors sharing the hue of ``color``.

    Selection palettes run saturation from the base saturation to 1.0 and
    lightness from ``min(base lightness, 0.5)`` to 0.9. Normal palettes hold
    saturation at 0.25 and run lightness from 0.3 to 0.9. Both endpoints are
    included.
    """
    if iterations < 1:
        raise ValueError(f"Palette iterations must be >= 1, got {iterations}")

    base = rgb_to_hsl(parse_hex_color(color))
    if is_selection:
        initial_s, final_s = base.s, SELECTION_FINAL_SATURATION
        initial_l = min(base.l, SELECTION_MAX_INITIAL_LIGHTNESS)
        final_l = SELECTION_FINAL_LIGHTNESS
    else:
        initial_s = final_s = NORMAL_SATURATION
        initial_l, final_l = NORMAL_LIGHTNESS_RANGE

    steps = (iterations - 1) or 1
    offsets = np.arange(iterations, dtype=float)
    saturations = initial_s + ((final_s - initial_s) / steps) * offsets
    lightnesses = initial_l + ((final_l - initial_l) / steps) * offsets
    return [
        hsl_to_rgb(HSL(base.h, float(saturation), float(lightness)))
        for saturation, lightness in zip(saturations, lightnesses)
    ]


def bar_palette(color: str, bar_count: int, is_selection: bool) -> list[RGB]:
    return interpolate_palette(color, max(MIN_BAR_PALETTE_SIZE, bar_count), is_selection)
