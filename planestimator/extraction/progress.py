"""Monotonic progress reporting for extraction calls."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class ProgressReporter:
    """Wrap a progress callback so reported values never go backwards.

    Values are clamped to 0..100 and a value lower than the last one
    reported is replaced by the last one.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self.value = 0

    def report(self, percent: float) -> int:
        pct = int(max(0, min(100, percent)))
        if pct < self.value:
            pct = self.value
        self.value = pct
        if self._callback is not None:
            try:
                self._callback(pct)
            except Exception:
                logger.debug("Progress callback failed", exc_info=True)
        return pct

    def done(self) -> int:
        return self.report(100)
