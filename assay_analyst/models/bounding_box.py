from __future__ import annotations
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class BoundingBox:
    """Region of interest in image pixel coordinates."""
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"ROI must have positive size, got {self.width}x{self.height}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains_extent(self, left: float, top: float, right: float, bottom: float) -> bool:
        """True if the whole (left, top, right, bottom) box lies inside the ROI."""
        return left >= self.x and top >= self.y and right <= self.right and bottom <= self.bottom

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "BoundingBox | None":
        if not data:
            return None
        return cls(x=data["x"], y=data["y"], width=data["width"], height=data["height"])
