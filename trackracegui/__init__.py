"""Qt front-end plumbing for TrackRace.

Only the replay controller lives here; map and legend widgets consume its
``progress_changed`` signal and the registry's snapshot.
"""

from .playback import PlaybackController

__all__ = ["PlaybackController"]
