from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

STATE_VERSION = "3.0"


@dataclass
class SessionState:
    """
    Plain, JSON-compatible snapshot of an analysis session.
    Everything here is lists/dicts/str/numbers so an external cache can
    store it without knowing what a Shape or a regression model is.
    """
    image_paths: List[str] = field(default_factory=list)
    current_image_index: int = 0
    shapes: List[Dict[str, Any]] = field(default_factory=list)
    committed_points: List[Dict[str, Any]] = field(default_factory=list)
    regression_models: Dict[str, Dict[str, float]] = field(default_factory=dict)
    detection_settings: Dict[str, Any] = field(default_factory=dict)
    bounding_box: Dict[str, float] | None = None
    color_mode: str = "RGB"          # "RGB" | "CMYK"
    raw_rgb_mode: bool = True

    def to_dict(self) -> dict:
        return {
            "version": STATE_VERSION,
            "imagePaths": list(self.image_paths),
            "imageCount": len(self.image_paths),
            "currentImageIndex": self.current_image_index,
            "shapes": list(self.shapes),
            "committedPoints": list(self.committed_points),
            "regressionModels": dict(self.regression_models),
            "detectionSettings": dict(self.detection_settings),
            "boundingBox": self.bounding_box,
            "colorMode": self.color_mode,
            "rawRgbMode": self.raw_rgb_mode,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        return cls(
            image_paths=list(data.get("imagePaths") or []),
            current_image_index=int(data.get("currentImageIndex", 0)),
            shapes=list(data.get("shapes") or []),
            committed_points=list(data.get("committedPoints") or []),
            regression_models=dict(data.get("regressionModels") or {}),
            detection_settings=dict(data.get("detectionSettings") or {}),
            bounding_box=data.get("boundingBox"),
            color_mode=data.get("colorMode", "RGB"),
            raw_rgb_mode=bool(data.get("rawRgbMode", True)),
        )
