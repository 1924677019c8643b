# models/vision_engine.py
"""
Thin wrapper around OpenCV's detection primitives.

• Grayscale, blur and contrast helpers for preprocessing.
• Hough circles, Canny + external contours + polygon approximation.
• Not a singleton: the detector receives an engine instance, so tests can
  pass a double with the same methods.
"""
from __future__ import annotations
import logging
from typing import List, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_REQUIRED = (
    "cvtColor", "GaussianBlur", "HoughCircles", "Canny", "findContours",
    "contourArea", "arcLength", "approxPolyDP", "boundingRect", "createCLAHE",
)


class VisionEngine:

    def __init__(self):
        self._cv = None
        self._init_runtime()

    # --------------------------------------------------
    def _init_runtime(self) -> None:
        missing = [name for name in _REQUIRED if not hasattr(cv2, name)]
        if missing:
            logger.error(f"OpenCV build is missing: {', '.join(missing)}")
            return
        self._cv = cv2
        logger.debug(f"OpenCV {cv2.__version__} ready")

    def is_ready(self) -> bool:
        return self._cv is not None

    # ---------- preprocessing ----------
    def to_grayscale(self, pixels: np.ndarray) -> np.ndarray:
        if pixels.ndim == 2:
            return pixels.copy()
        code = cv2.COLOR_RGBA2GRAY if pixels.shape[2] == 4 else cv2.COLOR_RGB2GRAY
        return cv2.cvtColor(pixels, code)

    def gaussian_blur(self, gray: np.ndarray, ksize: int, sigma: float = 0) -> np.ndarray:
        return cv2.GaussianBlur(gray, (ksize, ksize), sigmaX=sigma, sigmaY=sigma)

    def adjust_brightness_contrast(self, gray: np.ndarray, contrast: float, brightness: float) -> np.ndarray:
        return cv2.convertScaleAbs(gray, alpha=contrast, beta=brightness)

    def equalize_adaptive(self, gray: np.ndarray, clip_limit: float, tile_grid: int = 8) -> np.ndarray:
        clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_grid, tile_grid))
        return clahe.apply(gray)

    def sharpen(self, gray: np.ndarray, amount: float) -> np.ndarray:
        """Unsharp mask: gray * (1 + amount) - blurred * amount."""
        blurred = cv2.GaussianBlur(gray, (0, 0), sigmaX=3, sigmaY=3)
        return cv2.addWeighted(gray, 1 + amount, blurred, -amount, 0)

    # ---------- circles ----------
    def hough_circles(
        self,
        gray: np.ndarray,
        min_dist: float,
        param1: float,
        param2: float,
        min_radius: int,
        max_radius: int,
    ) -> List[Tuple[float, float, float]]:
        """Returns [(x, y, radius), ...] in detector order."""
        circles = cv2.HoughCircles(
            gray,
            cv2.HOUGH_GRADIENT,
            dp=1,
            minDist=min_dist,
            param1=param1,
            param2=param2,
            minRadius=int(min_radius),
            maxRadius=int(max_radius),
        )
        if circles is None:
            return []
        return [(float(x), float(y), float(r)) for x, y, r in circles[0]]

    # ---------- contours ----------
    def canny(self, gray: np.ndarray, low: float, high: float) -> np.ndarray:
        return cv2.Canny(gray, low, high)

    def find_external_contours(self, edges: np.ndarray) -> List[np.ndarray]:
        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return list(contours)

    def contour_area(self, contour: np.ndarray) -> float:
        return float(cv2.contourArea(contour))

    def arc_length(self, contour: np.ndarray) -> float:
        return float(cv2.arcLength(contour, True))

    def approx_polygon(self, contour: np.ndarray, tolerance: float) -> np.ndarray:
        return cv2.approxPolyDP(contour, tolerance, True)

    def bounding_rect(self, polygon: np.ndarray) -> Tuple[int, int, int, int]:
        x, y, w, h = cv2.boundingRect(polygon)
        return int(x), int(y), int(w), int(h)
