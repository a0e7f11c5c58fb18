"""Round-robin selection over an ordered list of clip ids."""

from typing import Optional, Sequence


def clamp_index(index: int, length: int) -> int:
    """Clamp a cursor into ``[0, length)``; 0 for empty sequences."""
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


class RotationCursor:
    """Stateful cursor cycling through ``ids``.

    ``next()`` returns the id at the current index and then advances the
    index, wrapping at the end. When the sequence is empty or rotation is
    disabled it returns None and leaves the index untouched.
    """

    def __init__(self, ids: Sequence[int], index: int = 0, enabled: bool = True):
        self.ids = list(ids)
        self.index = clamp_index(index, len(self.ids))
        self.enabled = enabled

    def next(self) -> Optional[int]:
        if not self.enabled or not self.ids:
            return None
        selected = self.ids[self.index]
        self.index = (self.index + 1) % len(self.ids)
        return selected

    def __len__(self) -> int:
        return len(self.ids)
