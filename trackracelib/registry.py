from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

from .config import ConfigError, default_config, merge_configs, validate_config
from .events import (
    EventBus,
    PROGRESS_CHANGED,
    SMOOTHING_CHANGED,
    TRACK_LOADED,
    TRACK_REMOVED,
    TRACKS_CLEARED,
)
from .log import dbg
from .models import Sample, Track, samples_from_records
from .smoothing import TrackSmoother
from .sync import synchronize
from .utils import format_elapsed, start_time_sort_key, track_color

log = logging.getLogger(__name__)


class TrackRegistry:
    """The set of loaded tracks and the shared playback progress.

    Every state change is a plain method call that runs to completion:
    loading or removing a track, flipping the smoothing setting, or
    moving the progress.  Each one leaves all tracks with up-to-date
    display samples and current positions, then announces itself on the
    event bus.

    Display samples are always re-derived from a track's raw samples,
    never from a previous display copy.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        event_bus: EventBus | None = None,
    ):
        self.config = merge_configs(default_config(), config or {})
        validate_config(self.config)
        self.event_bus = event_bus
        self.smoother = TrackSmoother()
        self.smoother.configure(self.config)
        self._tracks: list[Track] = []
        self._progress = 0.0
        self._max_duration: timedelta | None = None
        # Colors follow load order and are never handed out twice
        self._load_count = 0

    def _emit(self, event_type: str, **data):
        if self.event_bus:
            self.event_bus.emit(event_type, **data)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def tracks(self) -> list[Track]:
        return list(self._tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def smoothing_enabled(self) -> bool:
        return self.smoother.enabled

    @property
    def smoothing_window(self) -> int:
        return self.smoother.window_size

    @property
    def max_duration(self) -> timedelta | None:
        """Duration of the longest synchronized track."""
        return self._max_duration

    @property
    def elapsed(self) -> timedelta | None:
        if self._max_duration is None:
            return None
        return self._max_duration * self._progress

    @property
    def elapsed_label(self) -> str:
        return format_elapsed(self.elapsed)

    def snapshot(self) -> list[dict[str, Any]]:
        """Per-track values the display layer draws from."""
        return [
            {
                "filename": t.filename,
                "color": t.color,
                "start_date": t.start_date,
                "duration": t.duration,
                "display_samples": t.display_samples,
                "current_position": t.current_position,
            }
            for t in self._tracks
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def load(
        self,
        filename: str,
        parsed_samples: Iterable[Sample | Mapping[str, Any]],
    ) -> Track:
        """Add a recording delivered by the file parser.

        Raises :class:`~trackracelib.models.TrackLoadError` if a record has
        no usable coordinates.  Missing timestamps are not an error: the
        track is kept but stays out of synchronized playback.
        """
        raw = samples_from_records(parsed_samples, filename)
        color_index = self._load_count
        track = Track(
            filename=filename,
            raw_samples=raw,
            color=track_color(color_index),
            color_index=color_index,
        )
        track.set_display_samples(self.smoother.apply(track.raw_samples))
        self._load_count += 1

        self._tracks.append(track)
        self._tracks.sort(key=lambda t: start_time_sort_key(t.start_time))
        if not track.is_synchronized:
            log.info("%s: duration undefined, shown statically", filename)
        dbg(f"loaded {filename}: {len(raw)} samples, "
            f"duration {track.duration}, color {track.color}")

        self._resync()
        self._emit(TRACK_LOADED, track=track, index=self._index_of(track))
        return track

    def remove(self, index: int) -> Track:
        """Remove the track at list position *index*.

        Remaining tracks keep their colors.
        """
        if not 0 <= index < len(self._tracks):
            raise IndexError(f"no track at index {index}")
        track = self._tracks.pop(index)
        dbg(f"removed {track.filename}")
        self._resync()
        self._emit(TRACK_REMOVED, track=track, index=index)
        return track

    def clear(self) -> None:
        """Drop every track and rewind progress (load order keeps counting)."""
        count = len(self._tracks)
        self._tracks.clear()
        self._progress = 0.0
        self._resync()
        dbg(f"cleared {count} tracks")
        self._emit(TRACKS_CLEARED, count=count)

    def set_smoothing_enabled(self, enabled: bool) -> None:
        self._reconfigure(smoothing_enabled=bool(enabled))

    def set_smoothing_window(self, window_size: int) -> None:
        self._reconfigure(smoothing_window=window_size)

    def _reconfigure(self, **changes: Any) -> None:
        config = merge_configs(self.config, changes)
        validate_config(config)
        self.config = config
        self.smoother.configure(config)
        for track in self._tracks:
            track.set_display_samples(self.smoother.apply(track.raw_samples))
        self._resync()
        self._emit(SMOOTHING_CHANGED,
                   enabled=self.smoother.enabled,
                   window=self.smoother.window_size)

    def set_progress(self, value: float) -> None:
        """Move every track to *value* (clamped into ``[0, 1]``)."""
        try:
            value = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"progress must be a number, got {value!r}") from e
        if math.isnan(value):
            raise ConfigError("progress must not be NaN")
        self._progress = min(1.0, max(0.0, value))
        self._resync()
        self._emit(PROGRESS_CHANGED, progress=self._progress, elapsed=self.elapsed)

    def _index_of(self, track: Track) -> int:
        return next(i for i, t in enumerate(self._tracks) if t is track)

    def _resync(self) -> None:
        self._max_duration = synchronize(self._tracks, self._progress)
