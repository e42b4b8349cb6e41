"""
In-flight guard

A set of vault paths that are currently being processed. It only blocks
re-entry: a notification for a held path is dropped, not queued.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Set

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Per-path re-entry guard shared by the reclassifier and the commands"""

    def __init__(self):
        self._paths: Set[str] = set()

    def __contains__(self, path: str) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def try_acquire(self, path: str) -> bool:
        if path in self._paths:
            return False
        self._paths.add(path)
        return True

    def release(self, path: str) -> None:
        self._paths.discard(path)

    @contextmanager
    def hold(self, path: str) -> Iterator[bool]:
        """Hold `path` for the duration of the block.

        Yields False (and holds nothing) when the path is already held.
        """
        if not self.try_acquire(path):
            yield False
            return
        try:
            yield True
        finally:
            self.release(path)

    def suppress(self, path: str, delay: float,
                 loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.TimerHandle:
        """Hold `path` now and release it automatically after `delay` seconds.

        Used around note creation so the change notification caused by the
        new file does not reach the reclassifier before its content settles.
        """
        self._paths.add(path)
        loop = loop or asyncio.get_running_loop()
        logger.debug("Suppressing %s for %.2fs", path, delay)
        return loop.call_later(delay, self.release, path)
