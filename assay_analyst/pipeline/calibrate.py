from __future__ import annotations
from typing import Dict, Iterable, List
import logging

from ..models.calibration import RegressionModel
from ..models.shape import Shape
from ..services.calibration_service import CalibrationService, PredictionRow

logger = logging.getLogger(__name__)


def calibrate(
    shapes: Iterable[Shape],
    calibration: CalibrationService,
) -> Dict[str, RegressionModel]:
    """Refit every channel from the committed points and log the lines."""
    models = calibration.run_regression(list(shapes))
    for channel, model in models.items():
        logger.info(f"{channel:<9} y = {model.m:.4f}x + {model.b:.4f}   R² = {model.r2:.4f}")
    return models


def predict_concentrations(
    shapes: Iterable[Shape],
    calibration: CalibrationService,
    channel: str | None = None,
) -> List[PredictionRow]:
    rows = calibration.prediction_table(list(shapes), channel)
    missing = sum(1 for row in rows if row.predicted is None)
    if missing:
        logger.info(f"{missing} of {len(rows)} shapes have no prediction on this channel")
    return rows
