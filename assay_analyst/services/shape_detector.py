from __future__ import annotations
import logging
from typing import List, Set

from ..errors import DetectorUnavailable
from ..models.bounding_box import BoundingBox
from ..models.detection_settings import DetectionSettings
from ..models.image import Image
from ..models.shape import Shape, CIRCLE
from ..models.vision_engine import VisionEngine
from ..repositories.label_namespace import LabelAllocator
from .color_sampler import ColorSampler, round_half_up
from .image_service import ImageService

logger = logging.getLogger(__name__)

# Fixed detector constants (not tunable through DetectionSettings)
MIN_DIST_DIVISOR = 8            # Hough min distance = min(W, H) / 8
CIRCLE_BLUR_SIGMA = 2
RECT_BLUR_KERNEL = 5
CANNY_LOW, CANNY_HIGH = 50, 150
ASPECT_RATIO_MIN, ASPECT_RATIO_MAX = 0.5, 2.0
QUAD_VERTICES = 4


class ShapeDetector:
    """
    Finds wells on a plate image and turns them into labelled, colored Shapes.
    *   No I/O and no registry writes: returns new Shape objects only.
    *   `used_labels` is updated in place as labels are handed out.
    *   An ROI keeps only candidates whose full extent lies inside it.
    """

    def __init__(
        self,
        engine: VisionEngine | None = None,
        sampler: ColorSampler | None = None,
        image_service: ImageService | None = None,
    ):
        self.engine = engine if engine is not None else VisionEngine()
        self.sampler = sampler or ColorSampler()
        self.image_service = image_service or ImageService(engine=self.engine)

    # ─── Public API ────────────────────────────────────────────────
    def detect(
        self,
        image: Image,
        settings: DetectionSettings,
        image_index: int,
        used_labels: Set[str],
        roi: BoundingBox | None = None,
    ) -> List[Shape]:
        if settings.mode == CIRCLE:
            return self.detect_circles(image, settings, image_index, used_labels, roi)
        return self.detect_rectangles(image, settings, image_index, used_labels, roi)

    def detect_circles(
        self,
        image: Image,
        settings: DetectionSettings,
        image_index: int,
        used_labels: Set[str],
        roi: BoundingBox | None = None,
    ) -> List[Shape]:
        self._ensure_ready()
        gray = self.image_service.preprocess_for_detection(image, settings)
        gray = self.engine.gaussian_blur(gray, settings.blur_kernel_size, CIRCLE_BLUR_SIGMA)

        candidates = self.engine.hough_circles(
            gray,
            min_dist=min(image.width, image.height) / MIN_DIST_DIVISOR,
            param1=settings.param1,
            param2=settings.param2,
            min_radius=settings.min_radius,
            max_radius=settings.max_radius,
        )
        logger.debug(f"Hough transform returned {len(candidates)} circle candidates")

        allocator = LabelAllocator(used_labels)
        shapes: List[Shape] = []
        for x, y, radius in candidates:
            x, y, radius = round_half_up(x), round_half_up(y), round_half_up(radius)
            if radius <= 0:
                continue
            if roi is not None and not roi.contains_extent(x - radius, y - radius, x + radius, y + radius):
                continue
            shape = Shape.circle(allocator.allocate(), x, y, radius, image_index=image_index, auto=True)
            shape.color = self.sampler.sample(image.pixels, shape, settings.sample_fraction)
            shapes.append(shape)

        logger.info(f"Detected {len(shapes)} circles on image {image_index}")
        return shapes

    def detect_rectangles(
        self,
        image: Image,
        settings: DetectionSettings,
        image_index: int,
        used_labels: Set[str],
        roi: BoundingBox | None = None,
    ) -> List[Shape]:
        self._ensure_ready()
        gray = self.image_service.preprocess_for_detection(image, settings)
        gray = self.engine.gaussian_blur(gray, RECT_BLUR_KERNEL, 0)
        edges = self.engine.canny(gray, CANNY_LOW, CANNY_HIGH)
        contours = self.engine.find_external_contours(edges)
        logger.debug(f"Found {len(contours)} external contours")

        allocator = LabelAllocator(used_labels)
        shapes: List[Shape] = []
        for contour in contours:
            area = self.engine.contour_area(contour)
            if area < settings.min_area or area > settings.max_area:
                continue

            perimeter = self.engine.arc_length(contour)
            polygon = self.engine.approx_polygon(contour, settings.epsilon * perimeter)
            if len(polygon) != QUAD_VERTICES:
                continue

            x, y, width, height = self.engine.bounding_rect(polygon)
            if width <= 0 or height <= 0:
                continue
            if not ASPECT_RATIO_MIN <= width / height <= ASPECT_RATIO_MAX:
                logger.debug(f"Rejected {width}x{height} quadrilateral at ({x}, {y}): aspect ratio")
                continue
            if roi is not None and not roi.contains_extent(x, y, x + width, y + height):
                continue

            shape = Shape.rectangle(allocator.allocate(), x, y, width, height, image_index=image_index, auto=True)
            shape.color = self.sampler.sample(image.pixels, shape, settings.sample_fraction)
            shapes.append(shape)

        logger.info(f"Detected {len(shapes)} rectangles on image {image_index}")
        return shapes

    # ─── Internal helpers ──────────────────────────────────────────
    def _ensure_ready(self) -> None:
        if self.engine is None or not self.engine.is_ready():
            raise DetectorUnavailable("Computer-vision engine is not loaded; retry once it is initialised")
