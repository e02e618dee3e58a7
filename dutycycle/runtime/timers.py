# dutycycle/runtime/timers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from dutycycle.core.errors import TimerSchedulingError
from dutycycle.interfaces.types import TimerCallback
from dutycycle.runtime.context import ControlContext

logger = logging.getLogger(__name__)


class TimerState(Enum):
    """Lifecycle of a single-shot timer."""

    IDLE = auto()  # Never armed
    ARMED = auto()  # Waiting to fire
    FIRED = auto()  # Callback delivered
    CANCELLED = auto()  # Cancelled before firing


@dataclass(frozen=True)
class TimerInfo:
    """Snapshot of a timer, safe to hand out."""

    name: str
    state: TimerState
    duration: Optional[float] = None
    armed_at: Optional[float] = None
    remaining: Optional[float] = None


class Timer:
    """
    A single-shot, restartable delay timer running on the control context.
    The wait window, the cycle timer and the deferred grant release are all
    instances of this class.

    Arming cancels any pending firing first. Cancelling is idempotent. A
    firing that was already queued by the loop when the timer got cancelled
    or re-armed is discarded.
    """

    def __init__(self, name: str, context: ControlContext) -> None:
        """
        :param name: Identifier used in logs and TimerInfo.
        :param context: Control context the callback is delivered on.
        """
        if not name:
            raise ValueError("Timer name cannot be empty")
        self._name = name
        self._context = context
        self._state = TimerState.IDLE
        self._handle: Optional[asyncio.TimerHandle] = None
        self._generation = 0
        self._duration: Optional[float] = None
        self._armed_at: Optional[float] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_armed(self) -> bool:
        return self._state == TimerState.ARMED

    def arm(self, duration: float, on_fire: TimerCallback) -> None:
        """
        Schedule on_fire to run once after duration seconds, replacing any
        pending firing.

        :param duration: Delay in seconds, non-negative.
        :param on_fire: Zero-argument callback.
        """
        if duration < 0:
            raise ValueError(f"Timer duration must be non-negative, got {duration}")
        if on_fire is None:
            raise ValueError("Timer callback cannot be None")
        if self._context.loop.is_closed():
            raise TimerSchedulingError(
                f"Cannot arm timer '{self._name}'", self._name, duration, "control context is closed"
            )

        self._cancel_handle()
        self._generation += 1
        self._duration = duration
        self._armed_at = self._context.time()
        self._state = TimerState.ARMED
        self._handle = self._context.call_later(duration, self._fire, self._generation, on_fire)
        logger.debug("Armed timer %s for %.3fs", self._name, duration)

    def cancel(self) -> None:
        """Cancel a pending firing. Safe to call when not armed."""
        if self._state != TimerState.ARMED:
            return
        self._cancel_handle()
        self._generation += 1
        self._state = TimerState.CANCELLED
        self._duration = None
        self._armed_at = None
        logger.debug("Cancelled timer %s", self._name)

    def info(self) -> TimerInfo:
        remaining = None
        if self._state == TimerState.ARMED and self._armed_at is not None:
            remaining = max(0.0, self._armed_at + self._duration - self._context.time())
        return TimerInfo(
            name=self._name,
            state=self._state,
            duration=self._duration,
            armed_at=self._armed_at,
            remaining=remaining,
        )

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int, on_fire: TimerCallback) -> None:
        if generation != self._generation or self._state != TimerState.ARMED:
            logger.debug("Discarding stale firing of timer %s", self._name)
            return
        self._handle = None
        self._state = TimerState.FIRED
        logger.debug("Timer %s fired", self._name)
        on_fire()

    def __repr__(self) -> str:
        return f"Timer(name={self._name!r}, state={self._state.name})"
