from ._version import __version__
from .models import (
    Sample,
    Track,
    TrackLoadError,
    parse_timestamp,
    samples_from_records,
)
from .smoothing import smooth_track, TrackSmoother
from .sync import global_max_duration, nearest_sample_index, synchronize
from .playback import PlaybackClock
from .registry import TrackRegistry
from .config import (
    default_config,
    merge_configs,
    validate_config,
    validate_config_fields,
    validate_param_values,
    ConfigError,
    ConfigFieldError,
    ParamSpec,
    DISPLAY_PARAMS,
    PLAYBACK_PARAMS,
)
from .utils import format_elapsed, track_color, track_color_hex
from .events import EventBus

__all__ = [
    "__version__",
    "Sample",
    "Track",
    "TrackLoadError",
    "parse_timestamp",
    "samples_from_records",
    "smooth_track",
    "TrackSmoother",
    "global_max_duration",
    "nearest_sample_index",
    "synchronize",
    "PlaybackClock",
    "TrackRegistry",
    "default_config",
    "merge_configs",
    "validate_config",
    "validate_config_fields",
    "validate_param_values",
    "ConfigError",
    "ConfigFieldError",
    "ParamSpec",
    "DISPLAY_PARAMS",
    "PLAYBACK_PARAMS",
    "format_elapsed",
    "track_color",
    "track_color_hex",
    "EventBus",
]
