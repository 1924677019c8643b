from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Union

from ..errors import InvalidImportFormat
from ..models.calibration import CommittedPoint, ImportedModel, RegressionModel
from ..models.shape import Shape

logger = logging.getLogger(__name__)

EXPORT_VERSION = "3.0"


class CalibrationRepository:
    """
    Reads and writes exported calibration models (JSON, version 3.0).
    """

    @staticmethod
    def build_payload(
        committed_points: Iterable[CommittedPoint],
        shapes: Iterable[Shape],
        regression_models: Dict[str, RegressionModel],
    ) -> dict:
        return {
            "version": EXPORT_VERSION,
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "committedPoints": [p.to_dict() for p in committed_points],
            "shapeData": [{"label": s.label, "color": list(s.color)} for s in shapes],
            "regressionModels": {ch: model.to_dict() for ch, model in regression_models.items()},
        }

    def export_model(
        self,
        path: Union[str, Path],
        committed_points: Iterable[CommittedPoint],
        shapes: Iterable[Shape],
        regression_models: Dict[str, RegressionModel],
    ) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = self.build_payload(committed_points, shapes, regression_models)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info(f"Exported calibration model to {path}")
        return path

    def import_model(self, path: Union[str, Path]) -> ImportedModel:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Model file not found: {path}")
        return self.parse(path.read_text(encoding="utf-8"))

    @staticmethod
    def parse(text: str) -> ImportedModel:
        """
        Missing `committedPoints` / `regressionModels` are read as empty.
        Anything that is not a JSON object of the expected shape raises
        InvalidImportFormat.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as err:
            raise InvalidImportFormat(f"Invalid file format: {err}") from err
        if not isinstance(data, dict):
            raise InvalidImportFormat("Invalid file format: expected a JSON object")

        try:
            points = [CommittedPoint.from_dict(p) for p in data.get("committedPoints") or []]
            models = {
                str(ch): RegressionModel.from_dict(m)
                for ch, m in (data.get("regressionModels") or {}).items()
            }
            shape_data = [
                (str(s["label"]), tuple(int(c) for c in s["color"]))
                for s in data.get("shapeData") or []
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            raise InvalidImportFormat(f"Invalid file format: {err}") from err

        return ImportedModel(
            version=data.get("version"),
            export_date=data.get("exportDate"),
            committed_points=points,
            shape_data=shape_data,
            regression_models=models,
        )
