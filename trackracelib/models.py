from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import numpy as np

log = logging.getLogger(__name__)

UNKNOWN_DATE = "Unknown date"


class TrackLoadError(ValueError):
    """Raised when parsed records cannot be turned into samples."""
    pass


@dataclass(frozen=True)
class Sample:
    """One timestamped geographic point.

    Attributes:
        latitude:  Degrees north.
        longitude: Degrees east.
        timestamp: Timezone-aware instant, or None when the parser could
                   not supply one.
    """
    latitude: float
    longitude: float
    timestamp: datetime | None


@dataclass
class Track:
    """One loaded recording.

    ``raw_samples`` is fixed at construction.  ``display_samples`` is
    either the raw samples or a smoothed copy of them and is only replaced
    through :meth:`set_display_samples`, which keeps both the same length
    and drops the cached timestamp array.
    """
    filename: str
    raw_samples: tuple[Sample, ...]
    color: str = ""
    color_index: int = 0
    display_samples: tuple[Sample, ...] = ()
    current_position: Sample | None = None
    start_time: datetime | None = field(init=False, default=None)
    duration: timedelta | None = field(init=False, default=None)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.raw_samples = tuple(self.raw_samples)
        if not self.display_samples:
            self.display_samples = self.raw_samples
        elif len(self.display_samples) != len(self.raw_samples):
            raise ValueError("display_samples must match raw_samples in length")
        self.start_time = self.raw_samples[0].timestamp if self.raw_samples else None
        self.duration = _duration(self.raw_samples)

    @property
    def start_date(self) -> str:
        """Legend label for the recording's start, or ``Unknown date``."""
        if self.start_time is None:
            return UNKNOWN_DATE
        return self.start_time.strftime("%Y-%m-%d %H:%M")

    @property
    def is_synchronized(self) -> bool:
        """True when the track takes part in synchronized playback."""
        return self.duration is not None

    def set_display_samples(self, samples: Sequence[Sample]) -> None:
        samples = tuple(samples)
        if len(samples) != len(self.raw_samples):
            raise ValueError(
                f"{self.filename}: display samples ({len(samples)}) must "
                f"match raw samples ({len(self.raw_samples)})"
            )
        self.display_samples = samples
        self._cache.pop("display_ms", None)

    def display_timestamps_ms(self) -> np.ndarray:
        """Display sample timestamps as epoch milliseconds (NaN if missing)."""
        cached = self._cache.get("display_ms")
        if cached is None:
            cached = timestamps_ms(self.display_samples)
            self._cache["display_ms"] = cached
        return cached


def _duration(samples: Sequence[Sample]) -> timedelta | None:
    """Last minus first timestamp; None for short or partially timed tracks."""
    if len(samples) < 2:
        return None
    if any(s.timestamp is None for s in samples):
        return None
    return samples[-1].timestamp - samples[0].timestamp


def timestamps_ms(samples: Sequence[Sample]) -> np.ndarray:
    return np.array(
        [s.timestamp.timestamp() * 1000.0 if s.timestamp is not None else np.nan
         for s in samples],
        dtype=np.float64,
    )


# ---------------------------------------------------------------------------
# Parser output conversion
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken as UTC.  Anything unparseable yields None so the
    owning track simply drops out of synchronized playback.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def sample_from_record(record: Mapping[str, Any]) -> Sample:
    """Build a :class:`Sample` from a ``{latitude, longitude, timestamp}``
    record as delivered by the file parser."""
    try:
        lat = float(record["latitude"])
        lon = float(record["longitude"])
    except (KeyError, TypeError, ValueError) as e:
        raise TrackLoadError(f"record without usable coordinates: {record!r}") from e
    return Sample(lat, lon, parse_timestamp(record.get("timestamp")))


def _as_utc(sample: Sample) -> Sample:
    ts = sample.timestamp
    if isinstance(ts, datetime) and ts.tzinfo is None:
        return Sample(sample.latitude, sample.longitude, parse_timestamp(ts))
    return sample


def samples_from_records(
    records: Iterable[Sample | Mapping[str, Any]],
    filename: str = "",
) -> tuple[Sample, ...]:
    """Convert parser records (or ready-made samples) into a sample tuple.

    Ready-made samples with naive timestamps are rebuilt as UTC, the same
    as naive record strings, so every instant in a track is comparable.
    """
    samples = tuple(
        _as_utc(r) if isinstance(r, Sample) else sample_from_record(r)
        for r in records
    )
    missing = sum(1 for s in samples if s.timestamp is None)
    if missing:
        log.warning(
            "%s: %d of %d samples have no usable timestamp; "
            "track will not take part in synchronized playback",
            filename or "<track>", missing, len(samples),
        )
    return samples
