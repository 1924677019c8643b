from __future__ import annotations
from pathlib import Path
from typing import Dict, Iterable, List, Union
import logging

from ..errors import InvalidImportFormat
from ..models.bounding_box import BoundingBox
from ..models.calibration import CommittedPoint, RegressionModel
from ..models.detection_settings import DetectionSettings
from ..models.image import Image
from ..models.session_state import SessionState
from ..models.shape import Shape
from ..repositories.shape_registry import ShapeRegistry
from .calibration_service import CalibrationService
from .image_service import ImageService

logger = logging.getLogger(__name__)

COLOR_MODES = ("RGB", "CMYK")


class AnalysisSession:
    """
    Everything one analysis run knows about: the loaded images (by path),
    which one is current, the ROI, detection settings, every shape and the
    calibration state. Pixels are loaded on demand and kept in memory.
    """

    def __init__(
        self,
        image_service: ImageService | None = None,
        calibration: CalibrationService | None = None,
        registry: ShapeRegistry | None = None,
        settings: DetectionSettings | None = None,
    ):
        self.image_service = image_service or ImageService()
        self.calibration = calibration or CalibrationService()
        self.registry = registry if registry is not None else ShapeRegistry()
        self.settings = settings or DetectionSettings.from_env()
        self.image_paths: List[Path] = []
        self.current_image_index: int = 0
        self.roi: BoundingBox | None = None
        self.color_mode: str = "RGB"
        self.raw_rgb_mode: bool = True
        self._pixels: Dict[Path, Image] = {}

    # ─── Images ───────────────────────────────────────────────────
    @property
    def has_images(self) -> bool:
        return bool(self.image_paths)

    def add_images(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        """Append images (folders are expanded). Returns the paths added."""
        added = self.image_service.expand_paths(paths)
        self.image_paths.extend(added)
        logger.info(f"Loaded {len(added)} image(s); session now holds {len(self.image_paths)}")
        return added

    def image_at(self, index: int) -> Image:
        self._check_index(index)
        path = self.image_paths[index]
        if path not in self._pixels:
            self._pixels[path] = self.image_service.load(path)
        return self._pixels[path]

    @property
    def current_image(self) -> Image:
        return self.image_at(self.current_image_index)

    def select_image(self, index: int) -> None:
        self._check_index(index)
        self.current_image_index = index

    def remove_image(self, index: int) -> int:
        """
        Remove the image at `index` together with its shapes; later images'
        shapes shift down by one. Returns how many shapes were dropped.
        """
        self._check_index(index)
        path = self.image_paths.pop(index)
        if path not in self.image_paths:
            self._pixels.pop(path, None)
        removed = self.registry.remove_image(index)
        if self.current_image_index >= index and self.current_image_index > 0:
            self.current_image_index -= 1
        logger.info(f"Removed image {path.name} and {removed} shape(s)")
        return removed

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.image_paths):
            raise IndexError(f"Image index {index} out of range (0..{len(self.image_paths) - 1})")

    # ─── ROI / display options ────────────────────────────────────
    def set_roi(self, x: float, y: float, width: float, height: float) -> BoundingBox:
        self.roi = BoundingBox(x, y, width, height)
        return self.roi

    def clear_roi(self) -> None:
        self.roi = None

    def set_color_mode(self, mode: str) -> None:
        if mode not in COLOR_MODES:
            raise ValueError(f"Unknown color mode: {mode!r}")
        self.color_mode = mode

    def update_settings(self, **changes) -> DetectionSettings:
        self.settings = self.settings.with_updates(**changes)
        return self.settings

    def current_shapes(self) -> List[Shape]:
        return self.registry.for_image(self.current_image_index)

    # ─── Persistence ──────────────────────────────────────────────
    def to_state(self) -> SessionState:
        return SessionState(
            image_paths=[str(p) for p in self.image_paths],
            current_image_index=self.current_image_index,
            shapes=[s.to_dict() for s in self.registry],
            committed_points=[p.to_dict() for p in self.calibration.committed_points],
            regression_models={ch: m.to_dict() for ch, m in self.calibration.models.items()},
            detection_settings=self.settings.to_dict(),
            bounding_box=self.roi.to_dict() if self.roi else None,
            color_mode=self.color_mode,
            raw_rgb_mode=self.raw_rgb_mode,
        )

    def restore(self, state: SessionState) -> None:
        """Replace this session's contents with `state`."""
        try:
            shapes = [Shape.from_dict(data) for data in state.shapes]
            points = [CommittedPoint.from_dict(p) for p in state.committed_points]
            models = {ch: RegressionModel.from_dict(m) for ch, m in state.regression_models.items()}
            settings = DetectionSettings.from_dict(state.detection_settings)
            roi = BoundingBox.from_dict(state.bounding_box)
        except (KeyError, TypeError, ValueError) as err:
            raise InvalidImportFormat(f"Invalid session state: {err}") from err

        self.image_paths = [Path(p) for p in state.image_paths]
        self._pixels.clear()
        self.current_image_index = (
            min(max(state.current_image_index, 0), len(self.image_paths) - 1) if self.image_paths else 0
        )
        self.registry.clear()
        for shape in shapes:
            self.registry.add(shape)
        self.calibration.replace_points(points)
        self.calibration.models = models
        self.settings = settings
        self.roi = roi
        self.color_mode = state.color_mode if state.color_mode in COLOR_MODES else "RGB"
        self.raw_rgb_mode = state.raw_rgb_mode

    @classmethod
    def from_state(cls, state: SessionState, **services) -> "AnalysisSession":
        session = cls(**services)
        session.restore(state)
        return session
