from __future__ import annotations

import colorsys
from datetime import datetime, timedelta

GOLDEN_ANGLE = 137.5
TRACK_SATURATION = 70
TRACK_LIGHTNESS = 50


def track_hue(index: int) -> float:
    """Hue in degrees for the *index*-th loaded track.

    Successive golden-angle steps never land close to an earlier hue, so
    any number of tracks stay distinguishable and the colors only depend
    on load order.
    """
    return (index * GOLDEN_ANGLE) % 360.0


def track_color(index: int) -> str:
    """CSS ``hsl()`` color for the *index*-th loaded track."""
    return f"hsl({track_hue(index):g}, {TRACK_SATURATION}%, {TRACK_LIGHTNESS}%)"


def track_color_hex(index: int) -> str:
    """The :func:`track_color` of *index* as ``#rrggbb`` (for Qt / rich)."""
    r, g, b = colorsys.hls_to_rgb(
        track_hue(index) / 360.0,
        TRACK_LIGHTNESS / 100.0,
        TRACK_SATURATION / 100.0,
    )
    return "#{:02x}{:02x}{:02x}".format(
        round(r * 255), round(g * 255), round(b * 255),
    )


def format_elapsed(elapsed: timedelta | float | None) -> str:
    """``m:ss`` label for the scrub bar; accepts a timedelta or seconds."""
    if elapsed is None:
        return "0:00"
    seconds = elapsed.total_seconds() if isinstance(elapsed, timedelta) else float(elapsed)
    seconds = max(0, int(seconds))
    m = seconds // 60
    s = seconds % 60
    return f"{m}:{s:02d}"


def start_time_sort_key(start_time: datetime | None) -> tuple[int, float]:
    """Sort key putting known start times in order and unknown ones last."""
    if start_time is None:
        return (1, 0.0)
    return (0, start_time.timestamp())
