from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Tuple
import uuid

CIRCLE = "circle"
RECTANGLE = "rectangle"
SHAPE_KINDS = (CIRCLE, RECTANGLE)

RGB = Tuple[int, int, int]


def new_shape_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Shape:
    """
    A detected or manually drawn well.

    Geometry is in image pixel coordinates:
      circle    → (x, y) is the center, `radius` is set
      rectangle → (x, y) is the top-left corner, `width`/`height` are set
    """
    label: str
    kind: str
    x: float
    y: float
    color: RGB = (0, 0, 0)
    image_index: int = 0
    width: float | None = None
    height: float | None = None
    radius: float | None = None
    auto: bool = False
    id: str = field(default_factory=new_shape_id)

    def __post_init__(self):
        if self.kind not in SHAPE_KINDS:
            raise ValueError(f"Unknown shape kind: {self.kind!r}")
        if self.kind == CIRCLE:
            if self.radius is None or self.radius <= 0:
                raise ValueError(f"Circle radius must be positive, got {self.radius}")
        elif self.width is None or self.height is None or self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rectangle size must be positive, got {self.width}x{self.height}")
        self.color = tuple(int(c) for c in self.color)

    @classmethod
    def circle(cls, label: str, x: float, y: float, radius: float, **kwargs) -> "Shape":
        return cls(label=label, kind=CIRCLE, x=x, y=y, radius=radius, **kwargs)

    @classmethod
    def rectangle(cls, label: str, x: float, y: float, width: float, height: float, **kwargs) -> "Shape":
        return cls(label=label, kind=RECTANGLE, x=x, y=y, width=width, height=height, **kwargs)

    @property
    def is_circle(self) -> bool:
        return self.kind == CIRCLE

    # ── JSON-compatible records ──────────────────────────────────────
    def to_dict(self) -> dict:
        data = asdict(self)
        data["color"] = list(self.color)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Shape":
        return cls(
            id=str(data.get("id") or new_shape_id()),
            label=str(data["label"]),
            kind=data["kind"],
            x=data["x"],
            y=data["y"],
            width=data.get("width"),
            height=data.get("height"),
            radius=data.get("radius"),
            color=tuple(data.get("color", (0, 0, 0))),
            image_index=int(data.get("image_index", 0)),
            auto=bool(data.get("auto", False)),
        )
