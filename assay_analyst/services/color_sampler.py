from __future__ import annotations
import math
from typing import Tuple

import numpy as np

from ..models.shape import Shape, CIRCLE

NO_DATA = (0, 0, 0)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ColorSampler:
    """
    Average color of the central part of a region.
    *   Pure: reads pixels, never writes them.
    *   Returns NO_DATA (0, 0, 0) when the sampled region is empty; callers
        must read that as "no data", not as black.
    """

    def sample(self, pixels: np.ndarray, shape: Shape, fraction: float) -> Tuple[int, int, int]:
        if shape.kind == CIRCLE:
            return self.sample_circle(pixels, shape.x, shape.y, shape.radius, fraction)
        return self.sample_rectangle(pixels, shape.x, shape.y, shape.width, shape.height, fraction)

    def sample_rectangle(
        self,
        pixels: np.ndarray,
        x: float,
        y: float,
        width: float,
        height: float,
        fraction: float,
    ) -> Tuple[int, int, int]:
        """
        Average over the inset rectangle of size (width*f, height*f) that
        shares the original rectangle's center.
        """
        self._check_fraction(fraction)
        sample_w = round_half_up(width * fraction)
        sample_h = round_half_up(height * fraction)
        if sample_w <= 0 or sample_h <= 0:
            return NO_DATA

        left = round_half_up(x + (width - sample_w) / 2)
        top = round_half_up(y + (height - sample_h) / 2)
        region = self._clip(pixels, left, top, left + sample_w, top + sample_h)
        if region.size == 0:
            return NO_DATA
        return self._mean_rgb(region.reshape(-1, region.shape[-1]))

    def sample_circle(
        self,
        pixels: np.ndarray,
        cx: float,
        cy: float,
        radius: float,
        fraction: float,
    ) -> Tuple[int, int, int]:
        """
        Average over every pixel with dx² + dy² <= (radius*f)², where dx/dy
        are measured from the circle's center. Corners of the bounding square
        are excluded.
        """
        self._check_fraction(fraction)
        sample_r = radius * fraction
        if round_half_up(sample_r) <= 0:
            return NO_DATA

        height, width = pixels.shape[:2]
        left = max(0, int(math.floor(cx - sample_r)))
        top = max(0, int(math.floor(cy - sample_r)))
        right = min(width, int(math.ceil(cx + sample_r)) + 1)
        bottom = min(height, int(math.ceil(cy + sample_r)) + 1)
        if left >= right or top >= bottom:
            return NO_DATA

        yy, xx = np.ogrid[top:bottom, left:right]
        mask = (xx - cx) ** 2 + (yy - cy) ** 2 <= sample_r ** 2
        selected = pixels[top:bottom, left:right][mask]
        if selected.size == 0:
            return NO_DATA
        return self._mean_rgb(selected)

    # ─── Internal helpers ──────────────────────────────────────────
    @staticmethod
    def _check_fraction(fraction: float) -> None:
        if not 0 < fraction <= 1:
            raise ValueError(f"Sampling fraction must be within (0, 1], got {fraction}")

    @staticmethod
    def _clip(pixels: np.ndarray, left: int, top: int, right: int, bottom: int) -> np.ndarray:
        height, width = pixels.shape[:2]
        left, right = max(0, left), min(width, right)
        top, bottom = max(0, top), min(height, bottom)
        if left >= right or top >= bottom:
            return pixels[0:0, 0:0]
        return pixels[top:bottom, left:right]

    @staticmethod
    def _mean_rgb(flat_pixels: np.ndarray) -> Tuple[int, int, int]:
        """flat_pixels: (N, 3|4) array. Alpha is ignored."""
        mean = flat_pixels[:, :3].astype(np.float64).mean(axis=0)
        return tuple(round_half_up(v) for v in mean)
