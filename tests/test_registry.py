from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone

import pytest

from trackracelib.config import ConfigError
from trackracelib.events import EventBus, TRACKS_CLEARED
from trackracelib.models import Sample, TrackLoadError, UNKNOWN_DATE
from trackracelib.registry import TrackRegistry
from trackracelib.smoothing import smooth_track

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


def _wiggly(make_samples, n=12, start=T0):
    return make_samples(
        [i * 1000 for i in range(n)],
        start=start,
        lats=[52.0 + (0.001 if i % 2 else -0.001) for i in range(n)],
    )


def test_load_from_parser_records(records) -> None:
    registry = TrackRegistry()
    track = registry.load("morning.gpx", records)

    assert len(registry) == 1
    assert track.filename == "morning.gpx"
    assert len(track.raw_samples) == 4
    assert track.start_time == datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)
    assert track.duration == timedelta(seconds=3)
    assert track.start_date == "2024-05-01 08:00"
    assert track.display_samples == track.raw_samples
    assert track.current_position == track.raw_samples[0]


def test_colors_follow_load_order(make_samples) -> None:
    registry = TrackRegistry()
    a = registry.load("a", make_samples([0, 1000]))
    b = registry.load("b", make_samples([0, 1000]))
    c = registry.load("c", make_samples([0, 1000]))
    assert a.color == "hsl(0, 70%, 50%)"
    assert b.color == "hsl(137.5, 70%, 50%)"
    assert c.color == "hsl(275, 70%, 50%)"


def test_tracks_sorted_by_start(make_samples) -> None:
    registry = TrackRegistry()
    registry.load("late", make_samples([0, 1000], start=T0 + timedelta(days=2)))
    registry.load("early", make_samples([0, 1000], start=T0))
    registry.load("untimed", [{"latitude": 1.0, "longitude": 2.0, "timestamp": None}])
    registry.load("middle", make_samples([0, 1000], start=T0 + timedelta(days=1)))

    assert [t.filename for t in registry.tracks] == ["early", "middle", "late", "untimed"]


def test_remove_keeps_colors_and_never_reuses_them(make_samples) -> None:
    registry = TrackRegistry()
    registry.load("a", make_samples([0, 1000], start=T0))
    b = registry.load("b", make_samples([0, 1000], start=T0 + timedelta(hours=1)))
    c = registry.load("c", make_samples([0, 1000], start=T0 + timedelta(hours=2)))

    removed = registry.remove(0)
    assert removed.filename == "a"
    assert [t.color_index for t in registry.tracks] == [1, 2]
    assert registry.tracks[0].color == b.color
    assert registry.tracks[1].color == c.color

    d = registry.load("d", make_samples([0, 1000], start=T0 + timedelta(hours=3)))
    assert d.color_index == 3


def test_remove_bad_index(make_samples) -> None:
    registry = TrackRegistry()
    registry.load("a", make_samples([0, 1000]))
    with pytest.raises(IndexError):
        registry.remove(1)
    with pytest.raises(IndexError):
        registry.remove(-1)


def test_smoothing_toggle_restores_raw_samples(make_samples) -> None:
    registry = TrackRegistry()
    track = registry.load("run", _wiggly(make_samples))
    raw = track.raw_samples

    registry.set_smoothing_enabled(True)
    assert track.display_samples != raw
    assert len(track.display_samples) == len(raw)

    registry.set_smoothing_enabled(False)
    assert track.display_samples == raw
    assert track.raw_samples is raw


def test_smoothing_always_starts_from_raw(make_samples) -> None:
    registry = TrackRegistry({"smoothing_enabled": True})
    track = registry.load("run", _wiggly(make_samples))
    expected = tuple(smooth_track(track.raw_samples, 5))
    assert track.display_samples == expected

    # Re-deriving (window change and back) must not smooth the smoothed copy
    registry.set_smoothing_window(3)
    registry.set_smoothing_window(5)
    registry.set_smoothing_enabled(True)
    assert track.display_samples == expected


def test_smoothing_recomputes_current_position(make_samples) -> None:
    registry = TrackRegistry()
    track = registry.load("run", _wiggly(make_samples))
    registry.set_progress(0.5)
    before = track.current_position

    registry.set_smoothing_enabled(True)
    assert track.current_position in track.display_samples
    assert track.current_position != before
    assert track.current_position.timestamp == before.timestamp


def test_new_tracks_get_current_smoothing(make_samples) -> None:
    registry = TrackRegistry()
    registry.set_smoothing_enabled(True)
    track = registry.load("run", _wiggly(make_samples))
    assert track.display_samples == tuple(smooth_track(track.raw_samples))


def test_invalid_window_is_rejected(make_samples) -> None:
    registry = TrackRegistry()
    with pytest.raises(ConfigError):
        registry.set_smoothing_window(0)
    assert registry.smoothing_window == 5

    with pytest.raises(ConfigError):
        TrackRegistry({"smoothing_window": "wide"})


def test_progress_end_to_end(make_samples) -> None:
    registry = TrackRegistry()
    a = registry.load("a", make_samples([0, 1000, 2000, 4000], start=T0))
    b = registry.load("b", make_samples([0, 4000, 6000, 8000], start=T0 + timedelta(days=1)))

    registry.set_progress(0.5)

    assert registry.max_duration == timedelta(seconds=8)
    assert registry.elapsed == timedelta(seconds=4)
    assert registry.elapsed_label == "0:04"
    assert a.current_position == a.display_samples[-1]
    assert b.current_position == b.display_samples[1]


def test_progress_is_clamped(make_samples) -> None:
    registry = TrackRegistry()
    track = registry.load("a", make_samples([0, 1000, 2000]))

    registry.set_progress(1.7)
    assert registry.progress == 1.0
    assert track.current_position == track.display_samples[-1]

    registry.set_progress(-3)
    assert registry.progress == 0.0
    assert track.current_position == track.display_samples[0]

    with pytest.raises(ConfigError):
        registry.set_progress(float("nan"))
    with pytest.raises(ConfigError):
        registry.set_progress("halfway")


def test_malformed_timestamps_make_track_static(caplog) -> None:
    registry = TrackRegistry()
    with caplog.at_level(logging.WARNING, logger="trackracelib.models"):
        track = registry.load("broken.gpx", [
            {"latitude": 1.0, "longitude": 2.0, "timestamp": "yesterday-ish"},
            {"latitude": 1.1, "longitude": 2.1, "timestamp": "2024-05-01T08:00:01Z"},
        ])

    assert "broken.gpx" in caplog.text
    assert track.duration is None
    assert track.start_date == UNKNOWN_DATE
    assert registry.max_duration is None
    assert registry.elapsed_label == "0:00"

    registry.set_progress(0.8)
    assert track.current_position == track.raw_samples[0]


def test_records_without_coordinates_fail_the_load() -> None:
    registry = TrackRegistry()
    with pytest.raises(TrackLoadError):
        registry.load("bad.gpx", [{"longitude": 2.0, "timestamp": "2024-05-01T08:00:00Z"}])
    assert len(registry) == 0


def test_events_are_emitted(make_samples) -> None:
    bus = EventBus()
    seen = []
    for event in ("track.loaded", "track.removed", "smoothing.changed", "progress.changed"):
        bus.subscribe(event, lambda event=event, **data: seen.append((event, data)))

    registry = TrackRegistry(event_bus=bus)
    track = registry.load("a", make_samples([0, 1000, 2000]))
    registry.set_smoothing_enabled(True)
    registry.set_progress(0.5)
    registry.remove(0)

    assert [e for e, _ in seen] == [
        "track.loaded", "smoothing.changed", "progress.changed", "track.removed",
    ]
    assert seen[0][1] == {"track": track, "index": 0}
    assert seen[1][1] == {"enabled": True, "window": 5}
    assert seen[2][1] == {"progress": 0.5, "elapsed": timedelta(seconds=1)}


def test_snapshot_for_display(make_samples) -> None:
    registry = TrackRegistry()
    track = registry.load("a", make_samples([0, 1000, 2000]))
    registry.set_progress(1.0)

    (view,) = registry.snapshot()
    assert view["filename"] == "a"
    assert view["color"] == track.color
    assert view["start_date"] == track.start_date
    assert view["display_samples"] == track.display_samples
    assert view["current_position"] == track.display_samples[-1]


def test_clear_resets_progress_but_not_colors(make_samples) -> None:
    registry = TrackRegistry()
    registry.load("a", make_samples([0, 1000]))
    registry.set_progress(0.4)
    registry.clear()

    assert len(registry) == 0
    assert registry.progress == 0.0
    assert registry.max_duration is None
    assert registry.load("b", make_samples([0, 1000])).color_index == 1


def test_mixed_naive_and_aware_samples_load_as_utc() -> None:
    registry = TrackRegistry()
    track = registry.load("mixed", [
        Sample(52.0, 13.0, datetime(2024, 5, 1, 8, 0, 0)),
        Sample(52.1, 13.1, datetime(2024, 5, 1, 8, 0, 1, tzinfo=timezone.utc)),
    ])
    assert track.start_time == T0
    assert track.duration == timedelta(seconds=1)


def test_naive_start_times_sort_as_utc(monkeypatch) -> None:
    monkeypatch.setenv("TZ", "Europe/Berlin")
    if hasattr(time, "tzset"):
        time.tzset()
    try:
        registry = TrackRegistry()
        registry.load("naive0800", [
            Sample(52.0, 13.0, datetime(2024, 5, 1, 8, 0, 0)),
            Sample(52.0, 13.0, datetime(2024, 5, 1, 8, 0, 10)),
        ])
        registry.load("aware0700", [
            Sample(52.0, 13.0, T0 - timedelta(hours=1)),
            Sample(52.0, 13.0, T0 - timedelta(hours=1) + timedelta(seconds=10)),
        ])
        assert [t.filename for t in registry.tracks] == ["aware0700", "naive0800"]
    finally:
        monkeypatch.undo()
        if hasattr(time, "tzset"):
            time.tzset()


def test_clear_is_announced(make_samples) -> None:
    bus = EventBus()
    seen = []
    bus.subscribe(TRACKS_CLEARED, lambda **data: seen.append(data))

    registry = TrackRegistry(event_bus=bus)
    registry.load("a", make_samples([0, 1000]))
    registry.load("b", make_samples([0, 2000]))
    registry.clear()

    assert seen == [{"count": 2}]
