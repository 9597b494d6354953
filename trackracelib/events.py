from __future__ import annotations

import threading
from typing import Any, Callable

# Event types the track registry announces, with the keyword data each carries
TRACK_LOADED = "track.loaded"            # track, index
TRACK_REMOVED = "track.removed"          # track, index
TRACKS_CLEARED = "tracks.cleared"        # count
SMOOTHING_CHANGED = "smoothing.changed"  # enabled, window
PROGRESS_CHANGED = "progress.changed"    # progress, elapsed

EVENT_TYPES = frozenset({
    TRACK_LOADED,
    TRACK_REMOVED,
    TRACKS_CLEARED,
    SMOOTHING_CHANGED,
    PROGRESS_CHANGED,
})


class EventBus:
    """Publish/subscribe channel between the track registry and the display
    layer (Qt controller, CLI progress bar).

    Only the names in :data:`EVENT_TYPES` are accepted, so a misspelt
    subscription fails loudly instead of never firing.  Handlers run
    synchronously inside :meth:`emit`, in subscription order.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable[..., Any]]] = {
            name: [] for name in EVENT_TYPES
        }
        self._lock = threading.Lock()

    @staticmethod
    def _check(event_type: str) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(
                f"unknown event type {event_type!r}; "
                f"expected one of {', '.join(sorted(EVENT_TYPES))}"
            )

    def subscribe(self, event_type: str, handler: Callable[..., Any]) -> None:
        self._check(event_type)
        with self._lock:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Callable[..., Any]) -> None:
        self._check(event_type)
        with self._lock:
            handlers = self._handlers[event_type]
            if handler in handlers:
                handlers.remove(handler)

    def has_subscribers(self, event_type: str) -> bool:
        self._check(event_type)
        with self._lock:
            return bool(self._handlers[event_type])

    def emit(self, event_type: str, **data: Any) -> None:
        """Call every handler of *event_type* with *data* as keywords."""
        self._check(event_type)
        with self._lock:
            handlers = list(self._handlers[event_type])
        for handler in handlers:
            handler(**data)
