import json

import numpy as np
import pytest
from PIL import Image as PILImage

from assay_analyst.cli.analyze import main


@pytest.fixture
def plate(tmp_path):
    """Two dark-red patches of different intensity on white."""
    pixels = np.full((100, 200, 3), 255, dtype=np.uint8)
    pixels[0:60, 0:60] = (50, 0, 0)
    pixels[0:60, 100:160] = (100, 0, 0)
    path = tmp_path / "plate.png"
    PILImage.fromarray(pixels).save(path)
    return path


@pytest.fixture
def run(tmp_path):
    state = tmp_path / "state.json"

    def _run(*args):
        return main(["--state", str(state), *map(str, args)])

    _run.state = state
    return _run


def test_manual_calibration_workflow(run, plate, tmp_path, capsys):
    assert run("load", plate) == 0
    assert run("draw", "rectangle", 10, 10, 30, 30) == 0
    assert run("draw", "rectangle", 110, 10, 30, 30) == 0
    assert run("draw", "circle", 150, 80, 2) == 0          # too small, ignored
    assert run("conc", "a", 1) == 0
    assert run("conc", "b", 2) == 0
    assert run("fit") == 0
    assert run("predict", "--channel", "red") == 0

    out = capsys.readouterr().out
    assert "Shape ignored" in out
    assert "m=50.0000" in out

    state = json.loads(run.state.read_text())
    assert {s["label"]: tuple(s["color"]) for s in state["shapes"]} == {"a": (50, 0, 0), "b": (100, 0, 0)}
    assert state["regressionModels"]["red"]["m"] == pytest.approx(50)

    model = tmp_path / "model.json"
    assert run("export", model) == 0
    assert run("conc", "a") == 0
    assert run("import", model) == 0
    state = json.loads(run.state.read_text())
    assert {"label": "a", "y": 1.0} in state["committedPoints"]


def test_rename_delete_and_listing(run, plate, capsys):
    run("load", plate)
    run("draw", "rectangle", 10, 10, 30, 30)
    assert run("rename", "a", "std1") == 0
    assert run("shapes", "--cmyk") == 0
    assert "std1" in capsys.readouterr().out
    assert run("delete", "std1") == 0
    assert run("delete", "std1") == 1
    assert json.loads(run.state.read_text())["shapes"] == []


def test_roi_and_settings_persist(run, plate):
    run("load", plate)
    assert run("roi", 0, 0, 100, 80) == 0
    assert run("detect", "--mode", "rectangle", "--epsilon", "0.05") == 0
    state = json.loads(run.state.read_text())
    assert state["boundingBox"] == {"x": 0, "y": 0, "width": 100, "height": 80}
    assert state["detectionSettings"]["mode"] == "rectangle"
    assert state["detectionSettings"]["epsilon"] == 0.05
    assert run("roi", "--clear") == 0
    assert json.loads(run.state.read_text())["boundingBox"] is None


def test_errors_exit_with_status_one(run, plate):
    assert run("detect") == 1                      # no images yet
    assert run("fit") == 1                         # no committed points
    run("load", plate)
    assert run("select", 5) == 1
    assert run("conc", "a", "plenty") == 1
    assert run("predict", "--channel", "ultraviolet") == 1
    assert run("detect", "--sample-area", "5") == 1
    assert run("import", "missing.json") == 1


def test_clear_cache(run, plate):
    run("load", plate)
    assert run.state.exists()
    assert run("clear-cache") == 0
    assert not run.state.exists()


def test_preview_writes_image(run, plate, tmp_path):
    run("load", plate)
    out = tmp_path / "preview.png"
    assert run("preview", out, "--clahe", "--contrast", "1.5") == 0
    assert out.exists()
    with PILImage.open(out) as img:
        assert img.size == (200, 100)


def test_cache_with_broken_shape_is_reported(run, plate):
    run("load", plate)
    state = json.loads(run.state.read_text())
    state["shapes"] = [{"id": "x", "label": "a", "kind": "circle", "x": 5, "y": 5,
                        "color": [1, 2, 3], "image_index": 0}]
    run.state.write_text(json.dumps(state))

    assert run("shapes") == 1
