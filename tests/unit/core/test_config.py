# tests/unit/core/test_config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dutycycle.core.config import (
    DEFAULT_ACCEPTABLE_ACCURACY,
    MAX_CYCLE_INTERVAL,
    MIN_ACCEPTABLE_ACCURACY,
    MIN_CYCLE_INTERVAL,
    SchedulerConfig,
    SchedulerSettings,
    clamp,
)
from dutycycle.core.errors import ConfigurationError

finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)


@pytest.mark.property
@given(interval=finite)
def test_cycle_interval_is_clamped(interval: float) -> None:
    config = SchedulerConfig.clamped(interval)
    assert config.cycle_interval == min(max(interval, 2.0), 170.0)
    assert MIN_CYCLE_INTERVAL <= config.cycle_interval <= MAX_CYCLE_INTERVAL


@pytest.mark.property
@given(accuracy=finite)
def test_accuracy_is_raised_to_minimum(accuracy: float) -> None:
    config = SchedulerConfig.clamped(10.0, accuracy)
    assert config.acceptable_accuracy == max(accuracy, 5.0)


@pytest.mark.parametrize(
    "interval,expected",
    [(0.5, 2.0), (2.0, 2.0), (10.0, 10.0), (170.0, 170.0), (600.0, 170.0)],
)
def test_cycle_interval_examples(interval: float, expected: float) -> None:
    assert SchedulerConfig.clamped(interval).cycle_interval == expected


def test_lower_bound_uses_clamped_value_not_raw_input() -> None:
    # A value above the maximum must end at the maximum, never at the raw input.
    assert SchedulerConfig.clamped(1000.0).cycle_interval == MAX_CYCLE_INTERVAL


def test_default_accuracy_when_omitted() -> None:
    assert SchedulerConfig.clamped(10.0).acceptable_accuracy == DEFAULT_ACCEPTABLE_ACCURACY
    assert SchedulerConfig.clamped(10.0, 1.0).acceptable_accuracy == MIN_ACCEPTABLE_ACCURACY


def test_clamped_honours_custom_settings() -> None:
    settings = SchedulerSettings(min_cycle_interval=0.1, max_cycle_interval=0.5, min_accuracy=1.0)
    config = SchedulerConfig.clamped(0.01, 0.5, settings)
    assert config.cycle_interval == 0.1
    assert config.acceptable_accuracy == 1.0


def test_clamp() -> None:
    assert clamp(5, 0, 10) == 5
    assert clamp(-1, 0, 10) == 0
    assert clamp(11, 0, 10) == 10


def test_settings_defaults() -> None:
    settings = SchedulerSettings()
    assert settings.wait_for_samples == 3.0
    assert settings.grant_release_delay == 1.0
    assert settings.active_distance_filter == 5.0
    assert settings.low_power_distance_filter == 99999.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"wait_for_samples": 0},
        {"grant_release_delay": -1},
        {"min_cycle_interval": 0},
        {"min_cycle_interval": 10, "max_cycle_interval": 5},
        {"min_accuracy": -1},
        {"history_size": -1},
    ],
)
def test_invalid_settings_raise(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        SchedulerSettings(**kwargs)


def test_settings_from_mapping() -> None:
    settings = SchedulerSettings.from_mapping({"wait_for_samples": "1.5", "history_size": "7"})
    assert settings.wait_for_samples == 1.5
    assert settings.history_size == 7


def test_settings_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigurationError, match="wait_for_sample"):
        SchedulerSettings.from_mapping({"wait_for_sample": 1.0})


def test_settings_from_mapping_rejects_bad_values() -> None:
    with pytest.raises(ConfigurationError):
        SchedulerSettings.from_mapping({"wait_for_samples": "soon"})


def test_settings_from_env() -> None:
    env = {"DUTYCYCLE_GRANT_RELEASE_DELAY": "0.25", "UNRELATED": "x"}
    settings = SchedulerSettings.from_env(env)
    assert settings.grant_release_delay == 0.25
    assert settings.wait_for_samples == 3.0


def test_settings_from_process_env(monkeypatch) -> None:
    monkeypatch.setenv("DUTYCYCLE_MAX_CYCLE_INTERVAL", "60")
    assert SchedulerSettings.from_env().max_cycle_interval == 60.0
