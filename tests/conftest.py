import cv2
import numpy as np
import pytest

from assay_analyst.models.detection_settings import DetectionSettings
from assay_analyst.models.image import Image
from assay_analyst.repositories.shape_registry import ShapeRegistry

WHITE = (255, 255, 255)


class FakeEngine:
    """
    Stand-in for VisionEngine with scripted results.

    `circles` is returned verbatim by hough_circles. Each entry of `contours`
    is a dict with "area", "vertices" and "rect" (x, y, w, h); the polygon
    helpers just carry those values through.
    """

    def __init__(self, circles=None, contours=None, ready=True):
        self.circles = list(circles or [])
        self.contours = list(contours or [])
        self.ready = ready
        self.hough_calls = []

    def is_ready(self):
        return self.ready

    def to_grayscale(self, pixels):
        return pixels[:, :, 0].copy() if pixels.ndim == 3 else pixels.copy()

    def gaussian_blur(self, gray, ksize, sigma=0):
        return gray

    def adjust_brightness_contrast(self, gray, contrast, brightness):
        return gray

    def equalize_adaptive(self, gray, clip_limit, tile_grid=8):
        return gray

    def sharpen(self, gray, amount):
        return gray

    def hough_circles(self, gray, min_dist, param1, param2, min_radius, max_radius):
        self.hough_calls.append(dict(min_dist=min_dist, param1=param1, param2=param2,
                                     min_radius=min_radius, max_radius=max_radius))
        return list(self.circles)

    def canny(self, gray, low, high):
        return gray

    def find_external_contours(self, edges):
        return list(self.contours)

    def contour_area(self, contour):
        return contour["area"]

    def arc_length(self, contour):
        x, y, w, h = contour["rect"]
        return 2.0 * (w + h)

    def approx_polygon(self, contour, tolerance):
        return [contour["rect"]] * contour["vertices"]

    def bounding_rect(self, polygon):
        return polygon[0]


def blank_plate(width=400, height=300, color=WHITE):
    return np.full((height, width, 3), color, dtype=np.uint8)


@pytest.fixture
def registry():
    return ShapeRegistry()


@pytest.fixture
def settings():
    return DetectionSettings()


@pytest.fixture
def plain_image():
    return Image(blank_plate(color=(120, 60, 30)))


@pytest.fixture
def circle_plate():
    """White plate with three filled circles of radius 25 in known colors."""
    pixels = blank_plate()
    wells = [((80, 150), (200, 30, 30)), ((200, 150), (30, 200, 30)), ((320, 150), (30, 30, 200))]
    for center, color in wells:
        cv2.circle(pixels, center, 25, color, thickness=-1)
    return Image(pixels), wells


@pytest.fixture
def square_plate():
    """White plate with three filled 40x40 squares (top-left corners listed)."""
    pixels = blank_plate()
    squares = [((60, 100), (200, 30, 30)), ((180, 100), (30, 200, 30)), ((300, 100), (30, 30, 200))]
    for (x, y), color in squares:
        cv2.rectangle(pixels, (x, y), (x + 39, y + 39), color, thickness=-1)
    return Image(pixels), squares


@pytest.fixture
def make_engine():
    return FakeEngine
