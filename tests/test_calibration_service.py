import json

import pytest

from assay_analyst.errors import InsufficientData, InvalidImportFormat
from assay_analyst.models.calibration import CommittedPoint
from assay_analyst.models.shape import Shape
from assay_analyst.services.calibration_service import CalibrationService


def well(label, red):
    return Shape.rectangle(label, 0, 0, 10, 10, color=(red, 0, 0))


@pytest.fixture
def shapes():
    return [well("a", 10), well("b", 20), well("c", 30), well("d", 25)]


@pytest.fixture
def calibration(shapes):
    service = CalibrationService()
    service.prediction_channel = "magnitude"
    for label, y in (("a", 1), ("b", 2), ("c", 3)):
        service.set_concentration(label, y)
    service.run_regression(shapes)
    return service


# ─── Committed points ───────────────────────────────────────────
def test_set_concentration_upserts_and_removes():
    service = CalibrationService()
    service.set_concentration("a", "2.5")
    service.set_concentration("b", 4)
    service.set_concentration("a", 3)
    assert service.committed_points == [CommittedPoint("a", 3.0), CommittedPoint("b", 4.0)]

    service.set_concentration("a", None)
    service.set_concentration("b", "  ")
    assert service.committed_points == []


def test_non_numeric_concentration_is_rejected():
    service = CalibrationService()
    with pytest.raises(ValueError):
        service.set_concentration("a", "lots")
    assert service.committed_points == []


# ─── Regression / prediction ────────────────────────────────────
def test_run_regression_stores_models(calibration):
    assert calibration.models["red"].m == pytest.approx(10)


def test_run_regression_needs_points(shapes):
    with pytest.raises(InsufficientData):
        CalibrationService().run_regression(shapes)


def test_predict_on_red_channel(calibration):
    assert calibration.predict((25, 0, 0), "red") == pytest.approx(2.5)


def test_predict_without_model_is_none(calibration):
    # green is constant, so its flat line cannot be inverted
    assert calibration.predict((25, 0, 0), "green") is None
    calibration.models.pop("red")
    assert calibration.predict((25, 0, 0), "red") is None


def test_prediction_table(calibration, shapes):
    rows = {row.label: row for row in calibration.prediction_table(shapes)}
    assert rows["a"].concentration == 1.0
    assert rows["d"].concentration is None
    # magnitude of (r, 0, 0) is r, so the default channel behaves like red
    assert rows["d"].predicted == pytest.approx(2.5)
    assert rows["c"].color == (30, 0, 0)


# ─── Import / export ────────────────────────────────────────────
def test_export_writes_versioned_json(calibration, shapes, tmp_path):
    path = calibration.export_model(tmp_path / "out" / "model.json", shapes)
    data = json.loads(path.read_text())
    assert data["version"] == "3.0"
    assert data["exportDate"]
    assert {"label": "a", "y": 1.0} in data["committedPoints"]
    assert {"label": "d", "color": [25, 0, 0]} in data["shapeData"]
    assert set(data["regressionModels"]["red"]) == {"m", "b", "r2"}


def test_import_restores_points_and_models(calibration, shapes, tmp_path):
    path = calibration.export_model(tmp_path / "model.json", shapes)

    other = CalibrationService()
    imported = other.import_model(path)

    assert other.committed_points == calibration.committed_points
    assert other.models == calibration.models
    assert ("d", (25, 0, 0)) in imported.shape_data


def test_import_tolerates_missing_keys(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(json.dumps({"version": "3.0"}))
    service = CalibrationService()
    service.set_concentration("a", 1)

    service.import_model(path)

    assert service.committed_points == []
    assert service.models == {}


@pytest.mark.parametrize("text", ["{not json", "[1, 2, 3]", '{"committedPoints": [{"label": "a"}]}'])
def test_bad_import_leaves_state_untouched(calibration, tmp_path, text):
    path = tmp_path / "model.json"
    path.write_text(text)
    points, models = calibration.committed_points, dict(calibration.models)

    with pytest.raises(InvalidImportFormat):
        calibration.import_model(path)

    assert calibration.committed_points == points
    assert calibration.models == models


def test_import_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CalibrationService().import_model(tmp_path / "nope.json")
