from __future__ import annotations
import math
from typing import Sequence, Tuple

RGB_CHANNELS = ("red", "green", "blue")
CMYK_CHANNELS = ("cyan", "magenta", "yellow", "black")
CHANNELS = RGB_CHANNELS + CMYK_CHANNELS + ("magnitude",)


def rgb_to_cmyk(rgb: Sequence[int]) -> Tuple[float, float, float, float]:
    """
    Args:
        rgb: (r, g, b) with each channel in 0-255.

    Returns:
        (c, m, y, k), each in [0, 1]. Pure black maps to (0, 0, 0, 1).
    """
    r, g, b = (channel / 255 for channel in rgb[:3])
    k = 1 - max(r, g, b)
    if k == 1:
        return 0.0, 0.0, 0.0, 1.0
    c = (1 - r - k) / (1 - k)
    m = (1 - g - k) / (1 - k)
    y = (1 - b - k) / (1 - k)
    return c, m, y, k


def rgb_magnitude(rgb: Sequence[int]) -> float:
    """Euclidean norm of the RGB vector."""
    return math.sqrt(sum(float(channel) ** 2 for channel in rgb[:3]))


def channel_value(rgb: Sequence[int], channel: str) -> float:
    """
    Scalar used as the regression target for `channel`.
    CMYK channels are scaled to percent (0-100).
    """
    if channel in RGB_CHANNELS:
        return float(rgb[RGB_CHANNELS.index(channel)])
    if channel in CMYK_CHANNELS:
        return rgb_to_cmyk(rgb)[CMYK_CHANNELS.index(channel)] * 100
    if channel == "magnitude":
        return rgb_magnitude(rgb)
    raise KeyError(f"Unknown color channel: {channel!r}")
