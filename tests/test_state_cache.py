import json

import pytest

from assay_analyst.errors import InvalidImportFormat
from assay_analyst.models.session_state import SessionState
from assay_analyst.repositories.state_cache_repository import StateCacheRepository


@pytest.fixture
def cache(tmp_path):
    return StateCacheRepository(tmp_path / "cache" / "state.json")


def test_missing_cache_loads_as_none(cache):
    assert not cache.exists()
    assert cache.load() is None


def test_save_and_load(cache):
    state = SessionState(
        image_paths=["plate.png"],
        shapes=[{"id": "1", "label": "a", "kind": "circle", "x": 1, "y": 2, "radius": 3,
                 "width": None, "height": None, "color": [1, 2, 3], "image_index": 0, "auto": True}],
        committed_points=[{"label": "a", "y": 2.0}],
        regression_models={"red": {"m": 1.0, "b": 0.0, "r2": 1.0}},
        bounding_box={"x": 0, "y": 0, "width": 10, "height": 10},
        color_mode="CMYK",
    )
    cache.save(state)

    assert cache.load() == state
    data = json.loads(cache.path.read_text())
    assert data["version"] == "3.0"
    assert data["imageCount"] == 1


def test_corrupt_cache(cache):
    cache.path.parent.mkdir(parents=True)
    cache.path.write_text("{oops")
    with pytest.raises(InvalidImportFormat):
        cache.load()


def test_clear(cache):
    cache.save(SessionState())
    cache.clear()
    assert not cache.exists()
    cache.clear()


def test_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ASSAY_STATE_PATH", str(tmp_path / "env_state.json"))
    assert StateCacheRepository().path == tmp_path / "env_state.json"
