import pytest

from assay_analyst.models.detection_settings import DetectionSettings

ENV_KEYS = [
    "DETECT_MODE", "CIRCLE_PARAM1", "CIRCLE_PARAM2", "CIRCLE_MIN_RADIUS", "CIRCLE_MAX_RADIUS",
    "RECT_MIN_AREA", "RECT_MAX_AREA", "RECT_EPSILON", "SAMPLE_AREA_PERCENT", "BLUR_KERNEL_SIZE",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults():
    s = DetectionSettings()
    assert (s.mode, s.param1, s.param2, s.min_radius, s.max_radius) == ("circle", 30, 40, 10, 100)
    assert (s.min_area, s.max_area, s.epsilon) == (500, 10000, 0.02)
    assert s.sample_fraction == pytest.approx(0.7)
    assert not s.needs_preprocessing


@pytest.mark.parametrize("changes", [
    dict(mode="triangle"),
    dict(sample_area_percent=5),
    dict(sample_area_percent=101),
    dict(min_radius=50, max_radius=20),
    dict(min_radius=0),
    dict(min_area=900, max_area=800),
    dict(epsilon=0),
    dict(contrast=4.0),
    dict(brightness=-150),
    dict(clahe_clip_limit=0.5),
    dict(sharpen_amount=5),
    dict(blur_kernel_size=4),
    dict(blur_kernel_size=1),
])
def test_out_of_range_values_are_rejected(changes):
    with pytest.raises(ValueError):
        DetectionSettings(**changes)


def test_with_updates_validates_and_ignores_blanks():
    s = DetectionSettings().with_updates(param2=25, mode=None, bogus=1)
    assert s.param2 == 25 and s.mode == "circle"
    with pytest.raises(ValueError):
        s.with_updates(sample_area_percent=0)


def test_preprocessing_flag():
    assert DetectionSettings(clahe_enabled=True).needs_preprocessing
    assert DetectionSettings(brightness=10).needs_preprocessing


def test_from_env(clean_env):
    clean_env.setenv("DETECT_MODE", "rectangle")
    clean_env.setenv("CIRCLE_PARAM2", "55")
    clean_env.setenv("SAMPLE_AREA_PERCENT", "50")
    s = DetectionSettings.from_env()
    assert (s.mode, s.param2, s.sample_fraction) == ("rectangle", 55.0, 0.5)


def test_dict_round_trip(clean_env):
    s = DetectionSettings(mode="rectangle", epsilon=0.05, clahe_enabled=True)
    assert DetectionSettings.from_dict(s.to_dict()) == s
    assert DetectionSettings.from_dict({}) == DetectionSettings()
    assert DetectionSettings.from_dict({"param1": 70, "unknown": 1}).param1 == 70
