from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class ConfigFieldError:
    """A single validation error for one configuration field.

    Attributes:
        key:     The config key that failed validation.
        value:   The offending value.
        message: Human-readable explanation of what is wrong.
    """
    key: str
    value: Any
    message: str


@dataclass(frozen=True)
class ParamSpec:
    """Declarative specification for a single configuration parameter.

    Used by the smoother and the shared display / playback sections to
    describe their parameters: type, default, valid range and a
    human-readable label.
    """
    key: str
    type: type | tuple              # expected Python type(s)
    default: Any
    label: str                       # short UI label
    description: str = ""            # longer tooltip / help text
    min: float | int | None = None   # inclusive lower bound (unless min_exclusive)
    max: float | int | None = None   # inclusive upper bound (unless max_exclusive)
    min_exclusive: bool = False
    max_exclusive: bool = False
    choices: list | None = None      # allowed values
    nullable: bool = False           # True if None is valid


def default_config() -> dict[str, Any]:
    """Returns the built-in default configuration."""
    return {p.key: p.default for p in _all_param_specs()}


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """
    Merge multiple config dicts left-to-right.
    Later values override earlier ones.
    """
    result: dict[str, Any] = {}
    for cfg in configs:
        result.update(cfg)
    return result


# ---------------------------------------------------------------------------
# Shared parameter sections
# ---------------------------------------------------------------------------

DISPLAY_PARAMS: list[ParamSpec] = [
    ParamSpec(
        key="track_opacity", type=(int, float), default=1.0,
        min=0.0, max=1.0,
        label="Track transparency",
        description=(
            "Opacity of the rendered track paths. Purely cosmetic: it is "
            "handed through to the display layer and never affects "
            "smoothing or synchronization."
        ),
    ),
]

PLAYBACK_PARAMS: list[ParamSpec] = [
    ParamSpec(
        key="animation_period_ms", type=int, default=60000,
        min=0, min_exclusive=True,
        label="Race replay length (ms)",
        description=(
            "Wall-clock time one full replay takes. Progress runs from 0 to "
            "1 over this period and then wraps back to the start."
        ),
    ),
    ParamSpec(
        key="tick_interval_ms", type=int, default=30,
        min=0, min_exclusive=True,
        label="Animation tick interval (ms)",
        description="How often the running replay pushes a new progress value.",
    ),
]


# ---------------------------------------------------------------------------
# Validation  (ParamSpec-driven)
# ---------------------------------------------------------------------------

def validate_param_values(
    params: list[ParamSpec],
    values: dict[str, Any],
) -> list[ConfigFieldError]:
    """Validate *values* against a list of :class:`ParamSpec` definitions.

    Returns a (possibly empty) list of :class:`ConfigFieldError` objects.
    Only keys present in *values* are checked; missing keys are not errors
    (they will receive their default).
    """
    errors: list[ConfigFieldError] = []

    for spec in params:
        if spec.key not in values:
            continue

        value = values[spec.key]

        if value is None:
            if spec.nullable:
                continue
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must not be empty.",
            ))
            continue

        # bool is an int subclass; only accept it where bool is expected
        expected = spec.type
        if expected is not bool and isinstance(value, bool):
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must be {_type_label(expected)}, got boolean.",
            ))
            continue
        if not isinstance(value, expected):
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must be {_type_label(expected)}, "
                f"got {type(value).__name__}.",
            ))
            continue

        if spec.choices is not None and value not in spec.choices:
            opts = ", ".join(repr(c) for c in spec.choices)
            errors.append(ConfigFieldError(
                spec.key, value,
                f"{spec.label} must be one of {opts}.",
            ))
            continue

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if spec.min is not None:
                if spec.min_exclusive and value <= spec.min:
                    errors.append(ConfigFieldError(
                        spec.key, value,
                        f"{spec.label} must be greater than {spec.min}.",
                    ))
                    continue
                if not spec.min_exclusive and value < spec.min:
                    errors.append(ConfigFieldError(
                        spec.key, value,
                        f"{spec.label} must be at least {spec.min}.",
                    ))
                    continue
            if spec.max is not None:
                if spec.max_exclusive and value >= spec.max:
                    errors.append(ConfigFieldError(
                        spec.key, value,
                        f"{spec.label} must be less than {spec.max}.",
                    ))
                    continue
                if not spec.max_exclusive and value > spec.max:
                    errors.append(ConfigFieldError(
                        spec.key, value,
                        f"{spec.label} must be at most {spec.max}.",
                    ))
                    continue

    return errors


def _all_param_specs() -> list[ParamSpec]:
    """Collect every :class:`ParamSpec` from the smoother and the shared
    display / playback sections."""
    from .smoothing import TrackSmoother

    return TrackSmoother.config_params() + DISPLAY_PARAMS + PLAYBACK_PARAMS


def validate_config_fields(config: dict[str, Any]) -> list[ConfigFieldError]:
    """Validate a config dict against all known :class:`ParamSpec`
    definitions.

    Returns structured errors.  Never raises.
    """
    return validate_param_values(_all_param_specs(), config)


def validate_config(config: dict[str, Any]) -> None:
    """Validate a config dict.

    Raises :class:`ConfigError` listing every invalid field.
    """
    errors = validate_config_fields(config)
    if errors:
        lines = [e.message for e in errors]
        raise ConfigError(
            "Configuration has invalid values:\n  • " + "\n  • ".join(lines)
        )


def _type_label(t) -> str:
    """Human-readable label for an expected type or tuple of types."""
    if isinstance(t, tuple):
        return " or ".join(x.__name__ for x in t)
    return t.__name__
