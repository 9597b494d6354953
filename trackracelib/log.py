"""Env-gated debug traces for the replay engine.

``dbg()`` prints one line per call; ``timed`` reports how long a block
took (a smoothing pass, one synchronization tick)::

    from trackracelib.log import dbg, timed

    dbg(f"loaded {filename}")
    with timed(f"synchronized {len(tracks)} tracks"):
        ...

Nothing is printed unless ``TR_DEBUG`` is ``1`` or ``true``.  Lines look
like ``[HH:MM:SS.mmm Caller] message`` on stderr, where *Caller* is the
class (or module) that issued them.
"""

from __future__ import annotations

import os
import sys
import time
from types import FrameType

DEBUG_ENV = "TR_DEBUG"

_ENABLED: bool | None = None


def _is_enabled() -> bool:
    global _ENABLED
    if _ENABLED is None:
        val = os.environ.get(DEBUG_ENV, "").strip().lower()
        _ENABLED = val in ("1", "true")
    return _ENABLED


def reset() -> None:
    """Forget the cached ``TR_DEBUG`` lookup (re-read on next use)."""
    global _ENABLED
    _ENABLED = None


def _frame_name(frame: FrameType | None) -> str:
    if frame is None:
        return "?"
    self_obj = frame.f_locals.get("self")
    if self_obj is not None:
        return type(self_obj).__name__
    mod = frame.f_globals.get("__name__", "")
    return mod.rsplit(".", 1)[-1] if mod else "?"


def _write(name: str, msg: str) -> None:
    t = time.strftime("%H:%M:%S")
    ms = int((time.time() % 1) * 1000)
    print(f"[{t}.{ms:03d} {name}] {msg}", file=sys.stderr, flush=True)


def dbg(msg: str) -> None:
    if _is_enabled():
        _write(_frame_name(sys._getframe(1)), msg)


class timed:
    """Context manager timing its block; ``elapsed_ms`` is set on exit
    whether or not tracing is on."""

    def __init__(self, msg: str) -> None:
        self.msg = msg
        self.elapsed_ms = 0.0
        self._name = _frame_name(sys._getframe(1))
        self._t0 = 0.0

    def __enter__(self) -> "timed":
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.elapsed_ms = (time.perf_counter() - self._t0) * 1000
        if exc_type is None and _is_enabled():
            _write(self._name, f"{self.msg} in {self.elapsed_ms:.2f} ms")
        return False
