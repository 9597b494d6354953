from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from trackracelib.models import Sample

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_samples():
    """Factory: samples at *offsets_ms* after *start*, walking north-east."""

    def _make(offsets_ms, start=T0, lats=None, lons=None):
        samples = []
        for i, offset in enumerate(offsets_ms):
            lat = lats[i] if lats is not None else 52.0 + i * 0.001
            lon = lons[i] if lons is not None else 13.0 + i * 0.001
            samples.append(Sample(lat, lon, start + timedelta(milliseconds=offset)))
        return samples

    return _make


@pytest.fixture
def records():
    """Parser-style records as the file collaborator delivers them."""
    return [
        {"latitude": 52.5200, "longitude": 13.4050, "timestamp": "2024-05-01T08:00:00Z"},
        {"latitude": 52.5201, "longitude": 13.4052, "timestamp": "2024-05-01T08:00:01Z"},
        {"latitude": 52.5203, "longitude": 13.4055, "timestamp": "2024-05-01T08:00:02Z"},
        {"latitude": 52.5206, "longitude": 13.4057, "timestamp": "2024-05-01T08:00:03Z"},
    ]


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
