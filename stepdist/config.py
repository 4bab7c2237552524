"""Session configuration with strict validation and JSON loading."""

from __future__ import annotations

import math
from dataclasses import MISSING, asdict, dataclass, fields
from pathlib import Path
from typing import Any

import orjson


class ConfigurationError(ValueError):
    """Raised when a start configuration is missing parameters or out of range."""


# camelCase names used by the plugin interface -> dataclass field names
CAMEL_CASE_ALIASES = {
    'updateInterval': 'update_interval',
    'smoothingTimeframe': 'smoothing_timeframe',
    'deviationLength': 'deviation_length',
    'deviationAmplitude': 'deviation_amplitude',
    'minStrideAmplitude': 'min_stride_amplitude',
    'betterStrideFactor': 'better_stride_factor',
    'stepLengthFactor': 'step_length_factor',
    'horizontalDistanceFilter': 'horizontal_distance_filter',
    'horizontalAccuracyFilter': 'horizontal_accuracy_filter',
    'verticalDistanceFilter': 'vertical_distance_filter',
    'verticalAccuracyFilter': 'vertical_accuracy_filter',
    'distanceToCalibrate': 'distance_to_calibrate',
    'distanceWalkedToCalibrate': 'distance_to_calibrate',
    'enableGPSCalibration': 'enable_gps_calibration',
    'enableGNSSCalibration': 'enable_gps_calibration',
    'similarityDepth': 'similarity_depth',
    'backfillSteps': 'backfill_steps',
    'lockAfterSteps': 'lock_after_steps',
    'motionTimeout': 'motion_timeout',
}

# Shipped defaults of the plugin. Only used where a caller asks for them
# explicitly (the replay CLI); start() never fills in missing values.
DEFAULT_OPTIONS = {
    'update_interval': 0.1,
    'smoothing_timeframe': 6,
    'deviation_length': 0.35,
    'deviation_amplitude': 0.35,
    'min_stride_amplitude': 0.2,
    'better_stride_factor': 1.2,
    'step_length_factor': 0.33,
    'horizontal_distance_filter': 4.0,
    'horizontal_accuracy_filter': 8.0,
    'vertical_distance_filter': 4,
    'vertical_accuracy_filter': 10.0,
    'distance_to_calibrate': 40.0,
    'enable_gps_calibration': True,
}


@dataclass(frozen=True)
class TrackerConfig:
    """
    Parameters of one tracking session.

    Every field without a default is required. The four tuning knobs at the
    end have documented defaults:
        similarity_depth: consecutive positive stride comparisons needed to
            elect a representative stride
        backfill_steps: steps implied before the pattern was recognised,
            credited when a representative is elected
        lock_after_steps: once the active pattern has this many steps, no
            other axis may take over
        motion_timeout: seconds without any motion sample before the motion
            source is reported missing
    """

    update_interval: float
    smoothing_timeframe: int
    deviation_length: float
    deviation_amplitude: float
    min_stride_amplitude: float
    better_stride_factor: float
    step_length_factor: float
    horizontal_distance_filter: float
    horizontal_accuracy_filter: float
    vertical_distance_filter: int
    vertical_accuracy_filter: float
    distance_to_calibrate: float
    enable_gps_calibration: bool
    similarity_depth: int = 3
    backfill_steps: int = 4
    lock_after_steps: int = 15
    motion_timeout: float = 2.0

    def __post_init__(self) -> None:
        errors = []

        def number(name: str, minimum: float, inclusive: bool = True, integer: bool = False) -> None:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"{name} must be a number, got {value!r}")
                return
            if integer and not float(value).is_integer():
                errors.append(f"{name} must be an integer, got {value!r}")
                return
            if not math.isfinite(value):
                errors.append(f"{name} must be finite, got {value!r}")
                return
            if value < minimum or (not inclusive and value == minimum):
                bound = '>=' if inclusive else '>'
                errors.append(f"{name} must be {bound} {minimum}, got {value!r}")

        number('update_interval', 0, inclusive=False)
        number('smoothing_timeframe', 2, integer=True)
        number('deviation_length', 0, inclusive=False)
        number('deviation_amplitude', 0, inclusive=False)
        number('min_stride_amplitude', 0)
        number('better_stride_factor', 0)
        number('step_length_factor', 0)
        number('horizontal_distance_filter', 0)
        number('horizontal_accuracy_filter', 0, inclusive=False)
        number('vertical_distance_filter', 2, integer=True)
        number('vertical_accuracy_filter', 0, inclusive=False)
        number('distance_to_calibrate', 0, inclusive=False)
        number('similarity_depth', 1, integer=True)
        number('backfill_steps', 1, integer=True)
        number('lock_after_steps', 1, integer=True)
        number('motion_timeout', 0, inclusive=False)

        if not isinstance(self.enable_gps_calibration, bool):
            errors.append(f"enable_gps_calibration must be a bool, got {self.enable_gps_calibration!r}")

        if errors:
            raise ConfigurationError('Invalid configuration: ' + '; '.join(errors))

        # Integer-valued floats from JSON are normalised to int
        for name in ('smoothing_timeframe', 'vertical_distance_filter', 'similarity_depth',
                     'backfill_steps', 'lock_after_steps'):
            object.__setattr__(self, name, int(getattr(self, name)))

    @property
    def smoothing_lag(self) -> float:
        """Output delay of the smoothing filter in seconds."""
        return self.update_interval * self.smoothing_timeframe

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerConfig:
        """
        Build a configuration from snake_case or camelCase keys.

        Raises:
            ConfigurationError: on unknown, duplicated or missing keys, or invalid values
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        required = {f.name for f in fields(cls) if f.default is MISSING}
        kwargs: dict[str, Any] = {}
        unknown = []

        for key, value in data.items():
            name = CAMEL_CASE_ALIASES.get(key, key)
            if name not in known:
                unknown.append(key)
                continue
            if name in kwargs:
                raise ConfigurationError(f"Parameter {name} given more than once")
            kwargs[name] = value

        if unknown:
            raise ConfigurationError(f"Unknown configuration parameters: {', '.join(sorted(unknown))}")

        missing = sorted(required - kwargs.keys())
        if missing:
            raise ConfigurationError(f"Missing configuration parameters: {', '.join(missing)}")

        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Path | str) -> TrackerConfig:
        """Load a configuration from a JSON file."""
        path = Path(path)
        try:
            data = orjson.loads(path.read_bytes())
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
        except orjson.JSONDecodeError as e:
            raise ConfigurationError(f"Configuration {path} is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
