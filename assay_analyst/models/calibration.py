from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass
class CommittedPoint:
    """A shape label paired with its known concentration."""
    label: str
    y: float

    def to_dict(self) -> dict:
        return {"label": self.label, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> "CommittedPoint":
        return cls(label=str(data["label"]), y=float(data["y"]))


@dataclass
class RegressionModel:
    """Fitted line for a single channel: value = m * concentration + b."""
    m: float
    b: float
    r2: float

    def value_at(self, concentration: float) -> float:
        return self.m * concentration + self.b

    def to_dict(self) -> dict:
        return {"m": self.m, "b": self.b, "r2": self.r2}

    @classmethod
    def from_dict(cls, data: dict) -> "RegressionModel":
        return cls(m=float(data["m"]), b=float(data["b"]), r2=float(data["r2"]))


@dataclass
class ImportedModel:
    """Parsed contents of an exported calibration file."""
    version: str | None = None
    export_date: str | None = None
    committed_points: List[CommittedPoint] = field(default_factory=list)
    shape_data: List[Tuple[str, Tuple[int, int, int]]] = field(default_factory=list)
    regression_models: Dict[str, RegressionModel] = field(default_factory=dict)
