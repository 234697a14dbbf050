"""
Height color mapping.

Maps a normalized height in [0, 1] to a blue -> green -> red gradient.
Inputs outside [0, 1] get a solid black sentinel instead of an error.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np

Color = Tuple[int, int, int, int]

INVALID_COLOR: Color = (0, 0, 0, 255)
MIDPOINT_HEIGHT = 0.5


def _channel(value: float) -> int:
    # half-up rounding, identical to colors_for()
    return int(math.floor(value * 255.0 + 0.5))


def color_for(height: float) -> Color:
    """RGBA color for a normalized height."""
    h = float(height)
    if not (0.0 <= h <= 1.0):
        return INVALID_COLOR

    if h < 0.5:
        t = h * 2.0
        rg = _channel(t)
        return (rg, rg, _channel(1.0 - t), 255)

    t = (h - 0.5) * 2.0
    return (255, _channel(1.0 - t), 0, 255)


def colors_for(heights: np.ndarray) -> np.ndarray:
    """
    Vectorized `color_for`.

    Args:
        heights: array of normalized heights (any shape)

    Returns:
        uint8 array of shape heights.shape + (4,)
    """
    h = np.asarray(heights, dtype=np.float64)
    out = np.zeros(h.shape + (4,), dtype=np.uint8)
    out[..., 3] = 255

    with np.errstate(invalid="ignore"):
        valid = (h >= 0.0) & (h <= 1.0)
    low = valid & (h < 0.5)
    high = valid & (h >= 0.5)

    t_low = h[low] * 2.0
    rg = np.floor(t_low * 255.0 + 0.5).astype(np.uint8)
    out[low, 0] = rg
    out[low, 1] = rg
    out[low, 2] = np.floor((1.0 - t_low) * 255.0 + 0.5).astype(np.uint8)

    t_high = (h[high] - 0.5) * 2.0
    out[high, 0] = 255
    out[high, 1] = np.floor((1.0 - t_high) * 255.0 + 0.5).astype(np.uint8)
    out[high, 2] = 0

    # Sentinel black for everything outside [0, 1] (including NaN).
    out[~valid, :3] = 0
    return out


class HeightColorMapper:
    """Stateless blue-green-red height gradient."""

    invalid_color: Color = INVALID_COLOR
    midpoint: float = MIDPOINT_HEIGHT

    def color_for(self, height: float) -> Color:
        return color_for(height)

    def colors_for(self, heights: np.ndarray) -> np.ndarray:
        return colors_for(heights)

    @property
    def midpoint_color(self) -> Color:
        return color_for(self.midpoint)
