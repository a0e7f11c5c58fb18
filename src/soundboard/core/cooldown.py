"""Timer-driven cooldown set."""

import asyncio
import logging
from typing import Hashable, Optional

logger = logging.getLogger(__name__)


class CooldownSet:
    """Set of keys that remove themselves after an expiry.

    Expiry is scheduled on the event loop with ``call_later``, so membership
    checks are plain set lookups that reflect the truth at call time. Must be
    used from the loop's thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: dict[Hashable, asyncio.TimerHandle] = {}

    def has(self, key: Hashable) -> bool:
        return key in self._handles

    __contains__ = has

    def add(self, key: Hashable, seconds: float) -> bool:
        """Activate ``key`` for ``seconds``.

        Returns:
            False if the key was already active (its expiry is unchanged)
        """
        if key in self._handles:
            return False
        loop = self._loop or asyncio.get_running_loop()
        self._handles[key] = loop.call_later(max(0.0, seconds), self._expire, key)
        return True

    def _expire(self, key: Hashable):
        self._handles.pop(key, None)
        logger.debug(f"Cooldown expired: {key}")

    def clear(self):
        """Drop every key and cancel its timer."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)
