from __future__ import annotations
from pathlib import Path
from typing import Union, Iterable, List
import logging
import os
import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv
from ..models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O for Image entities.
    """
    def __init__(self):
        exts = os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.tif,.tiff,.webp")
        self.VALID_EXTS = {ext.strip().lower() for ext in exts.split(",") if ext.strip()}

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def load(path: Union[str, Path], rgb: bool = True) -> Image:
        path = Path(path)
        arr_bgr = cv2.imread(str(path))
        if arr_bgr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        arr = np.ascontiguousarray(arr_bgr[:, :, ::-1]) if rgb else arr_bgr
        return Image(pixels=arr, path=path)

    @staticmethod
    def save(image: Image) -> None:
        if image.path is None:
            raise ValueError("Image has no path to save to")
        Path(image.path).parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(image.pixels).save(image.path)

    def list_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> List[Path]:
        """
        Supported image files in `folder`, in file-name order.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        paths = []
        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed or not p.is_file():
                logger.debug(f"Skipping {p}")
                continue
            paths.append(p)
        return paths
