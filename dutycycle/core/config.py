# dutycycle/core/config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from dutycycle.core.errors import ConfigurationError

DEFAULT_CYCLE_INTERVAL = 10.0
MIN_CYCLE_INTERVAL = 2.0
MAX_CYCLE_INTERVAL = 170.0
MIN_ACCEPTABLE_ACCURACY = 5.0
DEFAULT_ACCEPTABLE_ACCURACY = 100.0
WAIT_FOR_SAMPLES = 3.0
GRANT_RELEASE_DELAY = 1.0
ACTIVE_DISTANCE_FILTER = 5.0
LOW_POWER_DISTANCE_FILTER = 99999.0

ENV_PREFIX = "DUTYCYCLE_"


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Tunables that stay fixed for the lifetime of a scheduler. The defaults are
    the production values; tests shrink the durations.

    :param wait_for_samples: Wait window length, seconds.
    :param grant_release_delay: Delay before releasing the grant after sensing resumes, seconds.
    :param min_cycle_interval: Lower clamp bound for the cycle interval.
    :param max_cycle_interval: Upper clamp bound for the cycle interval.
    :param min_accuracy: Lower clamp bound for the accuracy threshold.
    :param default_accuracy: Threshold used when start() is given none.
    :param active_distance_filter: Sensor distance filter while sampling.
    :param low_power_distance_filter: Sensor distance filter while idling between cycles.
    :param history_size: Number of transitions kept by the monitor.
    """

    wait_for_samples: float = WAIT_FOR_SAMPLES
    grant_release_delay: float = GRANT_RELEASE_DELAY
    min_cycle_interval: float = MIN_CYCLE_INTERVAL
    max_cycle_interval: float = MAX_CYCLE_INTERVAL
    min_accuracy: float = MIN_ACCEPTABLE_ACCURACY
    default_accuracy: float = DEFAULT_ACCEPTABLE_ACCURACY
    active_distance_filter: float = ACTIVE_DISTANCE_FILTER
    low_power_distance_filter: float = LOW_POWER_DISTANCE_FILTER
    history_size: int = 100

    def __post_init__(self) -> None:
        if self.wait_for_samples <= 0:
            raise ConfigurationError(f"wait_for_samples must be positive, got {self.wait_for_samples}")
        if self.grant_release_delay < 0:
            raise ConfigurationError(f"grant_release_delay must be non-negative, got {self.grant_release_delay}")
        if self.min_cycle_interval <= 0:
            raise ConfigurationError(f"min_cycle_interval must be positive, got {self.min_cycle_interval}")
        if self.min_cycle_interval > self.max_cycle_interval:
            raise ConfigurationError(
                f"min_cycle_interval ({self.min_cycle_interval}) exceeds max_cycle_interval ({self.max_cycle_interval})"
            )
        if self.min_accuracy < 0:
            raise ConfigurationError(f"min_accuracy must be non-negative, got {self.min_accuracy}")
        if self.history_size < 0:
            raise ConfigurationError(f"history_size must be non-negative, got {self.history_size}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SchedulerSettings":
        """
        Build settings from a mapping of field name to value. Unknown keys are
        rejected so that typos do not silently fall back to defaults.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = set(values) - set(known)
        if unknown:
            raise ConfigurationError(f"Unknown scheduler settings: {', '.join(sorted(unknown))}")

        kwargs = {}
        for name, value in values.items():
            caster = int if name == "history_size" else float
            try:
                kwargs[name] = caster(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SchedulerSettings":
        """
        Build settings from DUTYCYCLE_* variables, e.g. DUTYCYCLE_WAIT_FOR_SAMPLES=2.5.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in environ:
                values[f.name] = environ[key]
        return cls.from_mapping(values)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(value, upper))


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Effective per-start configuration. Out-of-range input is clamped silently.
    """

    cycle_interval: float
    acceptable_accuracy: float

    @classmethod
    def clamped(
        cls,
        cycle_interval: float,
        acceptable_accuracy: Optional[float] = None,
        settings: Optional[SchedulerSettings] = None,
    ) -> "SchedulerConfig":
        settings = settings or SchedulerSettings()
        if acceptable_accuracy is None:
            acceptable_accuracy = settings.default_accuracy
        return cls(
            cycle_interval=clamp(cycle_interval, settings.min_cycle_interval, settings.max_cycle_interval),
            acceptable_accuracy=max(acceptable_accuracy, settings.min_accuracy),
        )
