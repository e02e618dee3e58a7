# dutycycle/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from enum import Enum, auto
from typing import Any, Callable, Sequence

from dutycycle.core.samples import Sample

Token = Any
Batch = Sequence[Sample]


class AuthorizationStatus(Enum):
    """Sensor permission states reported by the in-memory driver. Real drivers
    may report their own status objects; the scheduler forwards them untouched."""

    NOT_DETERMINED = auto()
    RESTRICTED = auto()
    DENIED = auto()
    AUTHORIZED_ALWAYS = auto()
    AUTHORIZED_WHEN_IN_USE = auto()


class LifecycleSignal(Enum):
    ENTERED_BACKGROUND = auto()
    BECAME_ACTIVE = auto()


# Callback Types
TimerCallback = Callable[[], None]
ExpirationHandler = Callable[[], None]
LifecycleCallback = Callable[[], None]
