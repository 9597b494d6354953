"""Race replay controller driven by a QTimer."""

from __future__ import annotations

import time

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from trackracelib.log import dbg
from trackracelib.playback import PlaybackClock
from trackracelib.registry import TrackRegistry


class PlaybackController(QObject):
    """Owns the replay timer and every write to the registry's progress.

    While playing, each timer tick recomputes progress from the wall clock
    and pushes it through :meth:`TrackRegistry.set_progress`.  Scrubbing
    only reaches the registry while stopped; during playback the timer is
    the single writer.

    :meth:`stop` clears the run token before anything else, so a tick that
    was already due when playback stopped finds no token and does nothing.

    Signals:
        progress_changed(float, str): New progress and its ``m:ss`` label.
        playback_started(): Emitted by :meth:`play`.
        playback_stopped(): Emitted by :meth:`stop` when it ended a replay.
    """

    progress_changed = Signal(float, str)
    playback_started = Signal()
    playback_stopped = Signal()

    def __init__(self, registry: TrackRegistry, period_ms: int | None = None,
                 interval_ms: int | None = None, clock=time.monotonic,
                 parent=None):
        super().__init__(parent)
        self._registry = registry
        if period_ms is None:
            period_ms = registry.config["animation_period_ms"]
        if interval_ms is None:
            interval_ms = registry.config["tick_interval_ms"]
        self._clock = PlaybackClock(period_ms / 1000.0, clock=clock)
        self._token: object | None = None

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timer)

    @property
    def is_playing(self) -> bool:
        return self._token is not None

    @property
    def registry(self) -> TrackRegistry:
        return self._registry

    def play(self):
        """Start the replay from the registry's current progress."""
        if self.is_playing:
            return
        self._token = object()
        self._clock.start(from_progress=self._registry.progress)
        self._timer.start()
        dbg(f"replay started at progress {self._registry.progress:.3f}")
        self.playback_started.emit()

    def stop(self):
        """Stop the replay; no further progress updates follow."""
        was_playing = self._token is not None
        self._token = None
        self._timer.stop()
        self._clock.reset()
        if was_playing:
            dbg(f"replay stopped at progress {self._registry.progress:.3f}")
            self.playback_stopped.emit()

    def toggle(self):
        if self.is_playing:
            self.stop()
        else:
            self.play()

    def scrub(self, value: float) -> bool:
        """Set progress directly.  Ignored (returns False) while playing."""
        if self.is_playing:
            dbg(f"scrub to {value} ignored during replay")
            return False
        self._publish(value)
        return True

    def _publish(self, value: float):
        self._registry.set_progress(value)
        self.progress_changed.emit(self._registry.progress,
                                   self._registry.elapsed_label)

    @Slot()
    def _on_timer(self):
        """Push the wall-clock progress through the registry."""
        if self._token is None:
            return
        self._publish(self._clock.progress_at())
