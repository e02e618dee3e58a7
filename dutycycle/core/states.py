# dutycycle/core/states.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from enum import Enum, auto


class SchedulerState(Enum):
    """Defines the possible states of the duty-cycle scheduler.

    Used to decide how inbound samples and timer firings are handled.
    """

    IDLE = auto()  # Not started, sensor off
    ACTIVE_SAMPLING = auto()  # Sensor at high accuracy, no batch yet
    WAITING_FOR_ACCURACY = auto()  # Wait window armed, buffering batches
    LOW_POWER = auto()  # Sensor coarse, cycle timer armed

    @property
    def is_sensing(self) -> bool:
        """True while the sensor runs at high accuracy."""
        return self in (SchedulerState.ACTIVE_SAMPLING, SchedulerState.WAITING_FOR_ACCURACY)
