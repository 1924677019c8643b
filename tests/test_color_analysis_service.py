import math

import pytest

from assay_analyst.models.shape import Shape
from assay_analyst.services.color_analysis_service import ColorAnalysisService


def test_summary_of_nothing_is_none():
    assert ColorAnalysisService.summarize([]) is None


def test_summary_averages():
    shapes = [
        Shape.circle("a", 0, 0, 5, color=(0, 0, 0)),
        Shape.circle("b", 0, 0, 5, color=(10, 20, 30)),
    ]
    summary = ColorAnalysisService.summarize(shapes)
    assert summary.count == 2
    assert summary.average_color == (5, 10, 15)
    assert summary.average_magnitude == pytest.approx(math.sqrt(10 ** 2 + 20 ** 2 + 30 ** 2) / 2)


def test_format_color():
    assert ColorAnalysisService.format_color((255, 0, 0)) == "RGB(255, 0, 0)"
    assert ColorAnalysisService.format_color((255, 0, 0), "CMYK") == "C0 M100 Y100 K0"
    assert ColorAnalysisService.format_color((0, 0, 0), "CMYK") == "C0 M0 Y0 K100"
    with pytest.raises(ValueError):
        ColorAnalysisService.format_color((0, 0, 0), "HSV")
