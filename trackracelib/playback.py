from __future__ import annotations

import time
from typing import Callable


class PlaybackClock:
    """Turns wall-clock time into looping replay progress.

    The only state is the instant :meth:`start` was called; every
    :meth:`progress_at` call recomputes progress from scratch as
    ``((now - start) mod period) / period``, wrapping from 1.0 back to 0.0.

    Times are in seconds on *clock* (``time.monotonic`` unless a test
    injects its own).
    """

    def __init__(self, period: float, clock: Callable[[], float] = time.monotonic):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.period = float(period)
        self._clock = clock
        self._start: float | None = None

    @property
    def started(self) -> bool:
        return self._start is not None

    def start(self, now: float | None = None, from_progress: float = 0.0) -> None:
        """Anchor the replay so that *now* corresponds to *from_progress*."""
        if now is None:
            now = self._clock()
        self._start = now - (from_progress % 1.0) * self.period

    def reset(self) -> None:
        self._start = None

    def progress_at(self, now: float | None = None) -> float:
        """Progress in ``[0, 1)`` at *now*; 0.0 before :meth:`start`."""
        if self._start is None:
            return 0.0
        if now is None:
            now = self._clock()
        elapsed = max(0.0, now - self._start)
        return (elapsed % self.period) / self.period
