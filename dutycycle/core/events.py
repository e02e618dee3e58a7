# dutycycle/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class EventKind(Enum):
    """Kinds of inbound messages processed on the control context."""

    SAMPLES_RECEIVED = auto()  # Sensor pushed a batch of samples
    SENSOR_FAILED = auto()  # Sensor reported an error
    AUTHORIZATION_CHANGED = auto()  # Sensor permission status changed
    ENTERED_BACKGROUND = auto()  # Host moved to the background
    BECAME_ACTIVE = auto()  # Host returned to the foreground
    GRANT_EXPIRING = auto()  # Host is force-expiring the extended execution grant


@dataclass(frozen=True)
class Event:
    """
    Represents a signal delivered to the scheduler. Events are created on
    whatever thread the collaborator calls from and are processed, in arrival
    order, on the scheduler's control context.

    :param kind: What happened.
    :param payload: Data attached by the producer (a batch, an error, a status, a token).
    """

    kind: EventKind
    payload: Any = None
    created_at: float = field(default_factory=time.time)

    @property
    def name(self) -> str:
        """The name of the event kind."""
        return self.kind.name
