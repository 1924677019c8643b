from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Union
import logging
import numpy as np

from ..models.image import Image
from ..models.detection_settings import DetectionSettings
from ..models.vision_engine import VisionEngine
from ..repositories.image_repository import ImageRepository

logger = logging.getLogger(__name__)


class ImageService:
    """I/O helpers plus the grayscale preprocessing detection runs on."""
    def __init__(self, engine: VisionEngine | None = None):
        self.image_repository = ImageRepository()
        self.engine = engine or VisionEngine()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, path)

    def load(self, path: str | Path) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def expand_paths(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        """
        Files are kept as given; folders are expanded to their supported images.
        """
        expanded: List[Path] = []
        for p in map(Path, paths):
            if p.is_dir():
                expanded.extend(self.image_repository.list_dir(p))
            elif p.is_file():
                expanded.append(p)
            else:
                raise FileNotFoundError(f"No such image or folder: {p}")
        return expanded

    def save(self, image: Image) -> None:
        self.image_repository.save(image)

    # ─── Detection preprocessing ──────────────────────────────────
    def preprocess_for_detection(self, img: Image, settings: DetectionSettings) -> np.ndarray:
        """
        Grayscale copy of `img` with the optional brightness/contrast, CLAHE
        and sharpening knobs applied, in that order. Blurring is left to the
        detector because each mode blurs differently.
        """
        gray = self.engine.to_grayscale(img.pixels)
        if not settings.needs_preprocessing:
            return gray
        if settings.brightness != 0 or settings.contrast != 1.0:
            gray = self.engine.adjust_brightness_contrast(gray, settings.contrast, settings.brightness)
        if settings.clahe_enabled:
            gray = self.engine.equalize_adaptive(gray, settings.clahe_clip_limit)
        if settings.sharpen_enabled:
            gray = self.engine.sharpen(gray, settings.sharpen_amount)
        return gray

    def preview_preprocessing(self, img: Image, settings: DetectionSettings, path: Union[str, Path]) -> Image:
        """
        Render what the detector sees as an RGB image at `path` and save it.
        """
        gray = self.preprocess_for_detection(img, settings)
        preview = self.create_image(np.repeat(gray[:, :, None], 3, axis=2), path)
        self.save(preview)
        logger.info(f"Preprocessing preview written to {preview.path}")
        return preview
