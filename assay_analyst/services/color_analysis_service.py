from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..models.shape import Shape
from .color_space import rgb_magnitude, rgb_to_cmyk


@dataclass
class ColorSummary:
    count: int
    average_color: Tuple[int, int, int]
    average_magnitude: float


class ColorAnalysisService:
    """Summary statistics and display strings for sampled well colors."""

    @staticmethod
    def summarize(shapes: List[Shape]) -> ColorSummary | None:
        if not shapes:
            return None
        n = len(shapes)
        totals = [sum(s.color[i] for s in shapes) for i in range(3)]
        avg_color = tuple(int(round(t / n)) for t in totals)
        avg_magnitude = sum(rgb_magnitude(s.color) for s in shapes) / n
        return ColorSummary(count=n, average_color=avg_color, average_magnitude=avg_magnitude)

    @staticmethod
    def format_color(rgb: Sequence[int], mode: str = "RGB") -> str:
        if mode == "RGB":
            return f"RGB({rgb[0]}, {rgb[1]}, {rgb[2]})"
        if mode == "CMYK":
            c, m, y, k = (v * 100 for v in rgb_to_cmyk(rgb))
            return f"C{c:.0f} M{m:.0f} Y{y:.0f} K{k:.0f}"
        raise ValueError(f"Unknown color mode: {mode!r}")
