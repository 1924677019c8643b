from __future__ import annotations
from dataclasses import dataclass, asdict, fields, replace
import os
from dotenv import load_dotenv

from .shape import SHAPE_KINDS

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class DetectionSettings:
    """
    Value-object holding every detection and sampling knob.
    Ranges are validated once, here, instead of trusting callers.
    """
    mode: str = "circle"             # "circle" | "rectangle"

    # ── Circle detection (Hough transform) ───────────────────────────
    param1: float = 30               # Canny edge threshold      [10, 300]
    param2: float = 40               # accumulator threshold     [10, 200]
    min_radius: int = 10             # px
    max_radius: int = 100            # px

    # ── Rectangle detection (contours) ───────────────────────────────
    min_area: float = 500            # px²
    max_area: float = 10000          # px²
    epsilon: float = 0.02            # polygon tolerance as a fraction of the perimeter

    # ── Color sampling ───────────────────────────────────────────────
    sample_area_percent: float = 70  # [10, 100]

    # ── Preprocessing ────────────────────────────────────────────────
    brightness: float = 0.0          # [-100, +100] added to gray levels
    contrast: float = 1.0            # [0.5, 3.0] multiplier
    clahe_enabled: bool = False
    clahe_clip_limit: float = 2.0    # [1, 8]
    sharpen_enabled: bool = False
    sharpen_amount: float = 1.0      # [0.5, 3.0]
    blur_kernel_size: int = 9        # odd, >= 3

    def __post_init__(self):
        if self.mode not in SHAPE_KINDS:
            raise ValueError(f"Unknown detection mode: {self.mode!r}")
        if not 10 <= self.sample_area_percent <= 100:
            raise ValueError(f"sample_area_percent must be within [10, 100], got {self.sample_area_percent}")
        if self.min_radius <= 0 or self.max_radius <= 0 or self.min_radius > self.max_radius:
            raise ValueError(f"Invalid radius range [{self.min_radius}, {self.max_radius}]")
        if self.param1 <= 0 or self.param2 <= 0:
            raise ValueError("Hough thresholds must be positive")
        if self.min_area < 0 or self.min_area > self.max_area:
            raise ValueError(f"Invalid area range [{self.min_area}, {self.max_area}]")
        if not 0 < self.epsilon < 1:
            raise ValueError(f"epsilon must be within (0, 1), got {self.epsilon}")
        if not -100 <= self.brightness <= 100:
            raise ValueError(f"brightness must be within [-100, 100], got {self.brightness}")
        if not 0.5 <= self.contrast <= 3.0:
            raise ValueError(f"contrast must be within [0.5, 3.0], got {self.contrast}")
        if not 1.0 <= self.clahe_clip_limit <= 8.0:
            raise ValueError(f"clahe_clip_limit must be within [1, 8], got {self.clahe_clip_limit}")
        if not 0.5 <= self.sharpen_amount <= 3.0:
            raise ValueError(f"sharpen_amount must be within [0.5, 3.0], got {self.sharpen_amount}")
        if int(self.blur_kernel_size) != self.blur_kernel_size or self.blur_kernel_size < 3 or self.blur_kernel_size % 2 == 0:
            raise ValueError(f"blur_kernel_size must be an odd integer >= 3, got {self.blur_kernel_size}")

    @property
    def sample_fraction(self) -> float:
        return self.sample_area_percent / 100

    @property
    def needs_preprocessing(self) -> bool:
        return (
            self.brightness != 0
            or self.contrast != 1.0
            or self.clahe_enabled
            or self.sharpen_enabled
        )

    def with_updates(self, **changes) -> "DetectionSettings":
        """Return a validated copy; unknown or None values are ignored."""
        names = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in names and v is not None})

    # ── Config / persistence ─────────────────────────────────────────
    @classmethod
    def from_env(cls) -> "DetectionSettings":
        return cls(
            mode=os.getenv("DETECT_MODE", "circle"),
            param1=float(os.getenv("CIRCLE_PARAM1", "30")),
            param2=float(os.getenv("CIRCLE_PARAM2", "40")),
            min_radius=int(os.getenv("CIRCLE_MIN_RADIUS", "10")),
            max_radius=int(os.getenv("CIRCLE_MAX_RADIUS", "100")),
            min_area=float(os.getenv("RECT_MIN_AREA", "500")),
            max_area=float(os.getenv("RECT_MAX_AREA", "10000")),
            epsilon=float(os.getenv("RECT_EPSILON", "0.02")),
            sample_area_percent=float(os.getenv("SAMPLE_AREA_PERCENT", "70")),
            blur_kernel_size=int(os.getenv("BLUR_KERNEL_SIZE", "9")),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "DetectionSettings":
        if not data:
            return cls.from_env()
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})
