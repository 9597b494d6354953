from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from .config import ParamSpec
from .log import timed
from .models import Sample, timestamps_ms

DEFAULT_WINDOW = 5


def smooth_track(samples: Sequence[Sample], window_size: int = DEFAULT_WINDOW) -> list[Sample]:
    """Time-decayed moving average of a track's coordinates.

    Each output point ``i`` is the weighted mean of the samples in
    ``[i - window_size // 2, i + window_size // 2]`` (clipped at both
    ends, no padding).  A sample ``dt`` milliseconds away from the center
    weighs ``1 / (1 + |dt| / 1000)``; the center itself weighs 1, so the
    weight total is never zero.  Timestamps are copied from the center
    sample unchanged and the output always has the input's length.

    Tracks no longer than *window_size*, and tracks with a missing
    timestamp, come back unchanged.

    Smoothing an already smoothed track blurs it further; callers keep
    the raw samples and always smooth from those.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")

    samples = list(samples)
    n = len(samples)
    if n <= window_size:
        return samples

    t_ms = timestamps_ms(samples)
    if np.isnan(t_ms).any():
        return samples

    lat = np.fromiter((s.latitude for s in samples), dtype=np.float64, count=n)
    lon = np.fromiter((s.longitude for s in samples), dtype=np.float64, count=n)
    half = window_size // 2

    smoothed: list[Sample] = []
    for i in range(n):
        lo = max(0, i - half)
        hi = min(n - 1, i + half) + 1
        weights = 1.0 / (1.0 + np.abs(t_ms[lo:hi] - t_ms[i]) / 1000.0)
        total = weights.sum()
        smoothed.append(Sample(
            latitude=float(np.dot(weights, lat[lo:hi]) / total),
            longitude=float(np.dot(weights, lon[lo:hi]) / total),
            timestamp=samples[i].timestamp,
        ))
    return smoothed


class TrackSmoother:
    """Derives a track's display samples from its raw samples.

    Reads ``smoothing_enabled`` and ``smoothing_window`` in
    :meth:`configure`.  :meth:`apply` is a pure function of the raw samples
    and the current settings.
    """
    id = "smoothing"
    name = "Track Smoothing"

    def __init__(self) -> None:
        self.enabled = False
        self.window_size = DEFAULT_WINDOW

    @classmethod
    def config_params(cls) -> list[ParamSpec]:
        return [
            ParamSpec(
                key="smoothing_enabled", type=bool, default=False,
                label="Smooth tracks",
                description=(
                    "Replace each point with a time-weighted average of its "
                    "neighbours. Turning it off restores the recorded points."
                ),
            ),
            ParamSpec(
                key="smoothing_window", type=int, default=DEFAULT_WINDOW, min=1,
                label="Smoothing window (points)",
                description=(
                    "Number of neighbouring points averaged around each point. "
                    "Tracks with this many points or fewer are left untouched."
                ),
            ),
        ]

    def configure(self, config: dict[str, Any]) -> None:
        self.enabled = bool(config.get("smoothing_enabled", False))
        self.window_size = int(config.get("smoothing_window", DEFAULT_WINDOW))

    def apply(self, raw_samples: Sequence[Sample]) -> tuple[Sample, ...]:
        if not self.enabled:
            return tuple(raw_samples)
        with timed(f"smoothed {len(raw_samples)} samples (window {self.window_size})"):
            result = tuple(smooth_track(raw_samples, self.window_size))
        return result
