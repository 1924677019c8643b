from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union
import logging
import os

from dotenv import load_dotenv

from ..errors import UndefinedPrediction
from ..models.calibration import CommittedPoint, ImportedModel, RegressionModel
from ..models.shape import Shape
from ..repositories.calibration_repository import CalibrationRepository
from .color_space import CHANNELS, channel_value
from .regression_engine import RegressionEngine

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class PredictionRow:
    label: str
    color: Tuple[int, int, int]
    concentration: float | None   # committed (known) value
    predicted: float | None       # from the prediction channel's model


class CalibrationService:
    """
    Business logic for calibration curves: known concentrations per label,
    regression runs, predictions and model import/export.
    """

    def __init__(
        self,
        engine: RegressionEngine | None = None,
        repository: CalibrationRepository | None = None,
    ):
        self.engine = engine or RegressionEngine()
        self.repository = repository or CalibrationRepository()
        self.prediction_channel = os.getenv("PREDICTION_CHANNEL", "magnitude")
        self._points: Dict[str, float] = {}
        self.models: Dict[str, RegressionModel] = {}

    # ─── Committed points ─────────────────────────────────────────
    @property
    def committed_points(self) -> List[CommittedPoint]:
        return [CommittedPoint(label, y) for label, y in self._points.items()]

    def set_concentration(self, label: str, value: Union[str, float, None]) -> None:
        """
        Numeric value → upsert; None or blank text → remove.
        Non-numeric text raises ValueError.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            self._points.pop(label, None)
            return
        self._points[label] = float(value)

    def concentration_for(self, label: str) -> float | None:
        return self._points.get(label)

    def replace_points(self, points: Iterable[CommittedPoint]) -> None:
        self._points = {p.label: p.y for p in points}

    # ─── Regression ───────────────────────────────────────────────
    def run_regression(self, shapes: Iterable[Shape]) -> Dict[str, RegressionModel]:
        """Refit every channel; the previous models are replaced wholesale."""
        self.models = self.engine.fit(self.committed_points, shapes, CHANNELS)
        logger.info(f"Fitted {len(self.models)}/{len(CHANNELS)} channels")
        return self.models

    def predict(self, color: Tuple[int, int, int], channel: str | None = None) -> float | None:
        """Predicted concentration for `color`, or None without a usable model."""
        channel = channel or self.prediction_channel
        model = self.models.get(channel)
        if model is None:
            return None
        try:
            return self.engine.predict(model, channel_value(color, channel))
        except UndefinedPrediction:
            return None

    def prediction_table(self, shapes: Iterable[Shape], channel: str | None = None) -> List[PredictionRow]:
        return [
            PredictionRow(
                label=shape.label,
                color=shape.color,
                concentration=self._points.get(shape.label),
                predicted=self.predict(shape.color, channel),
            )
            for shape in shapes
        ]

    # ─── Import / export ──────────────────────────────────────────
    def export_model(self, path: Union[str, Path], shapes: Iterable[Shape]) -> Path:
        return self.repository.export_model(path, self.committed_points, shapes, self.models)

    def import_model(self, path: Union[str, Path]) -> ImportedModel:
        """
        Parse first, then apply: a file that fails to parse leaves the
        current points and models untouched.
        """
        imported = self.repository.import_model(path)
        self.replace_points(imported.committed_points)
        self.models = dict(imported.regression_models)
        logger.info(
            f"Imported model from {imported.export_date or 'unknown date'} "
            f"with {len(imported.committed_points)} data points"
        )
        return imported
