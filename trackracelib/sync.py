"""Maps global playback progress to a position on every track.

Progress ``p`` in ``[0, 1]`` is a fraction of the longest track's
duration.  Every track starts at its own first timestamp, so recordings
made on different days line up at ``p = 0``; at ``p = 1`` the longest
track reaches its last sample and shorter tracks have long since
finished.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import numpy as np

from .log import timed
from .models import Track


def global_max_duration(tracks: Sequence[Track]) -> timedelta | None:
    """Longest defined duration, or None if no track has one."""
    durations = [t.duration for t in tracks if t.duration is not None]
    return max(durations) if durations else None


def target_instant(track: Track, progress: float, max_duration: timedelta) -> datetime:
    """The instant on *track*'s own clock that *progress* corresponds to."""
    return track.start_time + max_duration * progress


def nearest_sample_index(timestamps_ms: np.ndarray, target_ms: float) -> int:
    """Index of the timestamp closest to *target_ms*.

    Ties go to the earliest index (``argmin`` returns the first minimum).
    """
    return int(np.argmin(np.abs(timestamps_ms - target_ms)))


def position_at(track: Track, progress: float, max_duration: timedelta | None):
    """The display sample *track* shows at *progress*.

    Tracks outside synchronized playback (undefined duration) stay on
    their first display sample; empty tracks have no position.
    """
    if not track.display_samples:
        return None
    if track.duration is None or max_duration is None:
        return track.display_samples[0]
    target_ms = target_instant(track, progress, max_duration).timestamp() * 1000.0
    idx = nearest_sample_index(track.display_timestamps_ms(), target_ms)
    return track.display_samples[idx]


def synchronize(tracks: Sequence[Track], progress: float) -> timedelta | None:
    """Update ``current_position`` on every track for *progress*.

    Returns the global reference duration the positions were computed
    against.
    """
    with timed(f"synchronized {len(tracks)} tracks at progress {progress:.4f}"):
        max_duration = global_max_duration(tracks)
        for track in tracks:
            track.current_position = position_at(track, progress, max_duration)
    return max_duration
