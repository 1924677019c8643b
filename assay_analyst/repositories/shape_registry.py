from __future__ import annotations
import logging
from dataclasses import fields, replace
from typing import Dict, Iterable, Iterator, List, Set

from ..models.shape import Shape, new_shape_id
from .label_namespace import next_label

logger = logging.getLogger(__name__)

_SHAPE_FIELDS = {f.name for f in fields(Shape)}


class ShapeRegistry:
    """
    In-memory store of every shape across every loaded image, keyed by id.
    *   The single mutable store: all changes go through the methods below.
    *   Labels form one namespace across all images; the registry answers
        "next free label" but does not police renames (last write wins).
    """

    def __init__(self, shapes: Iterable[Shape] = ()):
        self._shapes: Dict[str, Shape] = {}
        for shape in shapes:
            self.add(shape)

    # ---------- reads ----------
    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(list(self._shapes.values()))

    def __contains__(self, shape_id: str) -> bool:
        return shape_id in self._shapes

    def get(self, shape_id: str) -> Shape:
        try:
            return self._shapes[shape_id]
        except KeyError:
            raise KeyError(f"No shape with id {shape_id!r}") from None

    def all(self) -> List[Shape]:
        return list(self._shapes.values())

    def for_image(self, image_index: int) -> List[Shape]:
        return [s for s in self._shapes.values() if s.image_index == image_index]

    def find_by_label(self, label: str) -> Shape | None:
        """First shape (in insertion order) carrying `label`."""
        return next((s for s in self._shapes.values() if s.label == label), None)

    def labels(self, exclude_image: int | None = None) -> Set[str]:
        return {
            s.label for s in self._shapes.values()
            if exclude_image is None or s.image_index != exclude_image
        }

    def next_label(self) -> str:
        return next_label(self.labels())

    # ---------- writes ----------
    def add(self, shape: Shape) -> Shape:
        if not shape.id:
            shape.id = new_shape_id()
        if shape.id in self._shapes:
            raise ValueError(f"Duplicate shape id {shape.id!r}")
        self._shapes[shape.id] = shape
        return shape

    def remove(self, shape_id: str) -> Shape:
        shape = self.get(shape_id)
        del self._shapes[shape_id]
        return shape

    def update(self, shape_id: str, **changes) -> Shape:
        """
        Merge `changes` into the stored shape. A label change is stored as is,
        even if another shape already carries that label.
        """
        if "id" in changes:
            raise ValueError("Shape id is immutable")
        unknown = set(changes) - _SHAPE_FIELDS
        if unknown:
            raise ValueError(f"Unknown shape fields: {sorted(unknown)}")
        updated = replace(self.get(shape_id), **changes)
        self._shapes[shape_id] = updated
        return updated

    def clear_for_image(self, image_index: int) -> int:
        doomed = [sid for sid, s in self._shapes.items() if s.image_index == image_index]
        for sid in doomed:
            del self._shapes[sid]
        logger.debug(f"Cleared {len(doomed)} shapes from image {image_index}")
        return len(doomed)

    def replace_for_image(self, image_index: int, new_shapes: Iterable[Shape]) -> List[Shape]:
        """
        Swap every shape of `image_index` for `new_shapes` in one step.
        If any new shape is invalid, the registry is left untouched.
        """
        new_shapes = list(new_shapes)
        staged = {sid: s for sid, s in self._shapes.items() if s.image_index != image_index}
        for shape in new_shapes:
            if shape.image_index != image_index:
                raise ValueError(f"Shape {shape.label!r} belongs to image {shape.image_index}, not {image_index}")
            if not shape.id:
                shape.id = new_shape_id()
            if shape.id in staged:
                raise ValueError(f"Duplicate shape id {shape.id!r}")
            staged[shape.id] = shape
        self._shapes = staged
        return new_shapes

    def remove_image(self, image_index: int) -> int:
        """
        Drop every shape of `image_index` and shift later images down by one
        so indices stay contiguous.
        """
        removed = self.clear_for_image(image_index)
        for sid, shape in list(self._shapes.items()):
            if shape.image_index > image_index:
                self._shapes[sid] = replace(shape, image_index=shape.image_index - 1)
        return removed

    def clear(self) -> None:
        self._shapes.clear()
