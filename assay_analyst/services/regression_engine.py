from __future__ import annotations
import logging
import os
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
from dotenv import load_dotenv

from ..errors import InsufficientData, UndefinedPrediction
from ..models.calibration import CommittedPoint, RegressionModel
from ..models.shape import Shape
from .color_space import CHANNELS, channel_value

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

MIN_POINTS = 2


class RegressionEngine:
    """
    Ordinary least squares of channel value against concentration, one line
    per color channel.
    *   Always a full recompute from the given points and shape colors.
    *   Channels whose normal equations are degenerate are left out of the
        result instead of being stored with undefined values.
    """

    def __init__(self, epsilon: float | None = None):
        self.epsilon = epsilon if epsilon is not None else float(os.getenv("REGRESSION_EPSILON", "1e-10"))

    # ─── Public API ────────────────────────────────────────────────
    def join(
        self,
        committed_points: Iterable[CommittedPoint],
        shapes: Iterable[Shape],
    ) -> List[Tuple[float, Tuple[int, int, int]]]:
        """
        Pair each committed concentration with the color of the first shape
        carrying its label. Points without a shape are dropped.
        """
        colors: Dict[str, Tuple[int, int, int]] = {}
        for shape in shapes:
            colors.setdefault(shape.label, shape.color)

        joined = []
        for point in committed_points:
            if point.label not in colors:
                logger.debug(f"Ignoring committed point {point.label!r}: no matching shape")
                continue
            joined.append((point.y, colors[point.label]))
        return joined

    def fit(
        self,
        committed_points: Iterable[CommittedPoint],
        shapes: Iterable[Shape],
        channels: Sequence[str] = CHANNELS,
    ) -> Dict[str, RegressionModel]:
        joined = self.join(committed_points, shapes)
        if len(joined) < MIN_POINTS:
            raise InsufficientData(
                f"Need at least {MIN_POINTS} data points with known concentrations, got {len(joined)}"
            )

        x = np.array([concentration for concentration, _ in joined], dtype=np.float64)
        models: Dict[str, RegressionModel] = {}
        for channel in channels:
            y = np.array([channel_value(color, channel) for _, color in joined], dtype=np.float64)
            model = self.fit_line(x, y)
            if model is None:
                logger.info(f"Channel {channel!r} is not fittable (degenerate concentrations)")
                continue
            models[channel] = model
        return models

    def fit_line(self, x: np.ndarray, y: np.ndarray) -> RegressionModel | None:
        """
        Closed-form OLS:
            m = (nΣxy − ΣxΣy) / (nΣx² − (Σx)²)
            b = (Σy − mΣx) / n
        Returns None when the denominator is within epsilon of zero.
        """
        n = len(x)
        sum_x, sum_y = x.sum(), y.sum()
        sum_xy, sum_xx = (x * y).sum(), (x * x).sum()

        denominator = n * sum_xx - sum_x * sum_x
        if abs(denominator) < self.epsilon:
            return None

        m = (n * sum_xy - sum_x * sum_y) / denominator
        b = (sum_y - m * sum_x) / n
        return RegressionModel(m=float(m), b=float(b), r2=self.r_squared(x, y, m, b))

    @staticmethod
    def r_squared(x: np.ndarray, y: np.ndarray, m: float, b: float) -> float:
        """1 − SSres/SStot, or 0 when every y is identical."""
        if np.all(y == y[0]):
            return 0.0
        ss_tot = ((y - y.mean()) ** 2).sum()
        if ss_tot <= 0:
            return 0.0
        ss_res = ((y - (m * x + b)) ** 2).sum()
        return float(1 - ss_res / ss_tot)

    def predict(self, model: RegressionModel, observed_value: float) -> float:
        """Concentration at which the fitted line reaches `observed_value`."""
        if abs(model.m) < self.epsilon:
            raise UndefinedPrediction(f"Slope {model.m} is too close to zero to invert")
        return (observed_value - model.b) / model.m
