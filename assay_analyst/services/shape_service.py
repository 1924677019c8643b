from __future__ import annotations
import logging
import os
from typing import Optional

from dotenv import load_dotenv

from ..models.image import Image
from ..models.shape import Shape, CIRCLE, RECTANGLE
from ..repositories.shape_registry import ShapeRegistry
from .color_sampler import ColorSampler

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ShapeService:
    """
    Manual edits on top of the registry: committing a drawn shape, renaming,
    moving and resizing. Geometry edits resample the color from the image.
    """

    def __init__(
        self,
        registry: ShapeRegistry,
        sampler: ColorSampler | None = None,
        min_size: float | None = None,
    ):
        self.registry = registry
        self.sampler = sampler or ColorSampler()
        self.min_size = min_size if min_size is not None else float(os.getenv("MIN_SHAPE_SIZE", "5"))

    # ------------------------- draw-commit -------------------------
    def commit_drawn_shape(
        self,
        image: Image,
        image_index: int,
        kind: str,
        x: float,
        y: float,
        *,
        width: float | None = None,
        height: float | None = None,
        radius: float | None = None,
        fraction: float = 1.0,
    ) -> Optional[Shape]:
        """
        Turn a finished drag into a stored shape.

        Args:
            image: The image the shape was drawn on.
            image_index: Position of that image in the session.
            kind: "circle" (x, y = center) or "rectangle" (x, y = drag start).
            width, height: Rectangle drag extent; may be negative.
            radius: Circle radius.
            fraction: Sampling fraction for the color.

        Returns:
            The new Shape, or None when the drag was smaller than the
            minimum size (accidental micro-drags are dropped silently).
        """
        if kind == RECTANGLE:
            width, height = width or 0, height or 0
            if abs(width) < self.min_size or abs(height) < self.min_size:
                logger.debug(f"Dropped undersized rectangle {width}x{height}")
                return None
            shape = Shape.rectangle(
                self.registry.next_label(),
                min(x, x + width), min(y, y + height), abs(width), abs(height),
                image_index=image_index,
            )
        elif kind == CIRCLE:
            radius = radius or 0
            if radius < self.min_size:
                logger.debug(f"Dropped undersized circle r={radius}")
                return None
            shape = Shape.circle(self.registry.next_label(), x, y, radius, image_index=image_index)
        else:
            raise ValueError(f"Unknown shape kind: {kind!r}")

        shape.color = self.sampler.sample(image.pixels, shape, fraction)
        return self.registry.add(shape)

    # ------------------------- edits -------------------------
    def rename_shape(self, shape_id: str, label: str) -> Shape:
        """Last write wins: an existing shape with `label` is not touched."""
        label = label.strip()
        if not label:
            raise ValueError("Label cannot be empty")
        return self.registry.update(shape_id, label=label)

    def move_shape(self, image: Image, shape_id: str, x: float, y: float, fraction: float = 1.0) -> Shape:
        shape = self.registry.update(shape_id, x=x, y=y)
        return self._resample(image, shape, fraction)

    def resize_shape(
        self,
        image: Image,
        shape_id: str,
        *,
        width: float | None = None,
        height: float | None = None,
        radius: float | None = None,
        fraction: float = 1.0,
    ) -> Shape:
        shape = self.registry.get(shape_id)
        if shape.kind == CIRCLE:
            if radius is None or radius <= 0:
                raise ValueError(f"Circle radius must be positive, got {radius}")
            shape = self.registry.update(shape_id, radius=radius)
        else:
            width = shape.width if width is None else width
            height = shape.height if height is None else height
            if width <= 0 or height <= 0:
                raise ValueError(f"Rectangle size must be positive, got {width}x{height}")
            shape = self.registry.update(shape_id, width=width, height=height)
        return self._resample(image, shape, fraction)

    def delete_shape(self, shape_id: str) -> Shape:
        return self.registry.remove(shape_id)

    def _resample(self, image: Image, shape: Shape, fraction: float) -> Shape:
        color = self.sampler.sample(image.pixels, shape, fraction)
        return self.registry.update(shape.id, color=color)
