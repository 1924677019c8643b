from __future__ import annotations
from typing import Callable, Iterable, List
import logging

from ..models.bounding_box import BoundingBox
from ..models.detection_settings import DetectionSettings
from ..models.image import Image
from ..models.shape import Shape
from ..repositories.shape_registry import ShapeRegistry
from ..services.shape_detector import ShapeDetector

logger = logging.getLogger(__name__)


def detect_wells(
    image: Image,
    image_index: int,
    registry: ShapeRegistry,
    settings: DetectionSettings,
    roi: BoundingBox | None = None,
    *,
    detector: ShapeDetector | None = None,
) -> List[Shape]:
    """
    Run one detection pass on `image` and make its result the image's shapes.
    *   Labels already used on other images stay reserved; the image's own
        previous labels are released since its shapes are being replaced.
    *   Detection runs before the registry is touched, so a failing pass
        leaves the previous shapes in place.
    *   Zero detections is a valid result and clears the image.
    """
    detector = detector or ShapeDetector()
    used_labels = registry.labels(exclude_image=image_index)

    shapes = detector.detect(image, settings, image_index, used_labels, roi)
    registry.replace_for_image(image_index, shapes)

    if not shapes:
        logger.warning(f"No {settings.mode}s found on image {image_index}, try adjusting parameters")
    return shapes


def detect_all(
    images: Iterable[tuple[int, Image]],
    registry: ShapeRegistry,
    settings: DetectionSettings,
    roi: BoundingBox | None = None,
    *,
    detector: ShapeDetector | None = None,
    progress: Callable[[Iterable], Iterable] = iter,
) -> int:
    """
    Detection pass over many images in turn, sharing one detector.
    `progress` wraps the iterable (e.g. tqdm). Returns the total shape count.
    """
    detector = detector or ShapeDetector()
    total = 0
    for image_index, image in progress(images):
        total += len(detect_wells(image, image_index, registry, settings, roi, detector=detector))
    logger.info(f"Batch detection finished with {total} shapes")
    return total
