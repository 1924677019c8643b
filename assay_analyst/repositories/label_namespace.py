from __future__ import annotations
import string
from typing import Iterable, Set

LETTERS = string.ascii_lowercase
FALLBACK_PREFIX = "?"


def next_label(used: Iterable[str]) -> str:
    """
    First unused label of the global namespace: 'a'..'z', then '?1', '?2', ...
    """
    used = set(used)
    for letter in LETTERS:
        if letter not in used:
            return letter
    n = 1
    while f"{FALLBACK_PREFIX}{n}" in used:
        n += 1
    return f"{FALLBACK_PREFIX}{n}"


class LabelAllocator:
    """
    Hands out labels one at a time and remembers them, so a batch of new
    shapes never collides with itself or with `used`.
    The `used` set is shared, not copied: callers see every label taken.
    """

    def __init__(self, used: Set[str] | None = None):
        self.used: Set[str] = used if used is not None else set()

    def allocate(self) -> str:
        label = next_label(self.used)
        self.used.add(label)
        return label
