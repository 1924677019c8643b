import numpy as np
import pytest

from assay_analyst.errors import DetectorUnavailable
from assay_analyst.models.detection_settings import DetectionSettings
from assay_analyst.models.image import Image
from assay_analyst.models.shape import Shape
from assay_analyst.pipeline.detect_wells import detect_all, detect_wells
from assay_analyst.services.shape_detector import ShapeDetector

CIRCLES = [(50, 50, 20), (150, 50, 20), (250, 50, 20)]


def test_second_pass_replaces_instead_of_accumulating(make_engine, plain_image, registry, settings):
    detector = ShapeDetector(engine=make_engine(circles=CIRCLES))

    detect_wells(plain_image, 0, registry, settings, detector=detector)
    second = detect_wells(plain_image, 0, registry, settings, detector=detector)

    assert len(registry.for_image(0)) == len(second) == 3
    assert {s.label for s in registry.for_image(0)} == {"a", "b", "c"}


def test_labels_on_other_images_stay_reserved(make_engine, plain_image, registry, settings):
    registry.add(Shape.circle("a", 10, 10, 5, image_index=1))
    detector = ShapeDetector(engine=make_engine(circles=CIRCLES))

    detect_wells(plain_image, 0, registry, settings, detector=detector)

    assert {s.label for s in registry.for_image(0)} == {"b", "c", "d"}
    assert [s.label for s in registry.for_image(1)] == ["a"]
    assert len(registry.labels()) == len(registry)


def test_zero_detections_clear_the_image(make_engine, plain_image, registry, settings):
    engine = make_engine(circles=CIRCLES)
    detector = ShapeDetector(engine=engine)
    detect_wells(plain_image, 0, registry, settings, detector=detector)

    engine.circles = []
    assert detect_wells(plain_image, 0, registry, settings, detector=detector) == []
    assert registry.for_image(0) == []


def test_failed_pass_keeps_previous_shapes(make_engine, plain_image, registry, settings):
    engine = make_engine(circles=CIRCLES)
    detector = ShapeDetector(engine=engine)
    detect_wells(plain_image, 0, registry, settings, detector=detector)
    before = registry.all()

    engine.ready = False
    with pytest.raises(DetectorUnavailable):
        detect_wells(plain_image, 0, registry, settings, detector=detector)
    assert registry.all() == before


def test_detect_all_labels_across_images(make_engine, registry, settings):
    detector = ShapeDetector(engine=make_engine(circles=CIRCLES))
    pixels = np.full((300, 400, 3), 255, dtype=np.uint8)
    images = [(0, Image(pixels)), (1, Image(pixels.copy()))]
    seen = []

    def progress(iterable):
        for item in iterable:
            seen.append(item[0])
            yield item

    total = detect_all(images, registry, settings, detector=detector, progress=progress)

    assert total == 6
    assert seen == [0, 1]
    assert len(registry.labels()) == 6


def test_opencv_redetection_is_idempotent(circle_plate, registry):
    image, _ = circle_plate
    settings = DetectionSettings(min_radius=15, max_radius=40)

    detect_wells(image, 0, registry, settings)
    second = detect_wells(image, 0, registry, settings)

    assert len(registry.for_image(0)) == len(second)
