"""
Repeating timers for the services.

QtTicker runs on the Qt event loop (QTimer), so tick callbacks execute on the
main thread alongside everything else. ManualTicker has the same interface and
is fired by hand in tests.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QTimer

logger = logging.getLogger(__name__)


class Ticker:
    """Interface: call `callback` every `interval_s` seconds until stopped."""

    def start(self, interval_s: float, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    @property
    def is_active(self) -> bool:
        raise NotImplementedError


class QtTicker(Ticker):
    def __init__(self) -> None:
        self._timer = QTimer()
        self._timer.timeout.connect(self._fire)
        self._callback: Optional[Callable[[], None]] = None

    def start(self, interval_s: float, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._timer.start(int(interval_s * 1000))

    def stop(self) -> None:
        self._timer.stop()

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def _fire(self) -> None:
        if self._callback:
            self._callback()


class ManualTicker(Ticker):
    """Ticker that only fires when `fire()` is called."""

    def __init__(self) -> None:
        self.interval_s: Optional[float] = None
        self.start_count = 0
        self._callback: Optional[Callable[[], None]] = None
        self._active = False

    def start(self, interval_s: float, callback: Callable[[], None]) -> None:
        self.interval_s = interval_s
        self._callback = callback
        self._active = True
        self.start_count += 1

    def stop(self) -> None:
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self._active and self._callback:
                self._callback()
