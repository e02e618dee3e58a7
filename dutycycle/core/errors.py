# dutycycle/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, Dict, Optional


class DutyCycleError(Exception):
    """
    Base exception class for errors within the duty-cycle scheduler library.
    """


class ConfigurationError(DutyCycleError):
    """
    Raised when scheduler settings are inconsistent (non-positive durations,
    inverted bounds). Per-start values are clamped instead and never raise.
    """


class TimerError(DutyCycleError):
    """
    Base class for timer misuse.

    :param message: Human readable description.
    :param details: Optional extra context, rendered into the message.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.details = details or {}
        if self.details:
            message = f"{message} (details: {self.details})"
        super().__init__(message)


class TimerSchedulingError(TimerError):
    """
    Raised when a timer cannot be armed.
    """

    def __init__(self, message: str, timer_name: str, duration: float, reason: str) -> None:
        self.timer_name = timer_name
        self.duration = duration
        self.reason = reason
        super().__init__(message, {"timer_name": timer_name, "duration": duration, "reason": reason})


class GrantUnavailableError(DutyCycleError):
    """
    Raised by a grant host that refuses to hand out an extended execution grant.
    The scheduler absorbs it; it is never surfaced to the delegate.
    """


class SensorError(DutyCycleError):
    """
    Error reported by a sensor driver. Real drivers may report any error
    object; this type is what the in-memory driver emits.
    """

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        super().__init__(message)
