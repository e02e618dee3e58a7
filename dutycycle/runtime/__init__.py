"""
Runtime package: the control context, timers, grant bookkeeping, monitoring
and the duty-cycle scheduler itself.
"""

from .context import ControlContext
from .grant import ExtendedExecutionGrant
from .monitor import SchedulerMonitor
from .scheduler import DutyCycleScheduler
from .timers import Timer, TimerInfo, TimerState

__all__ = [
    "ControlContext",
    "DutyCycleScheduler",
    "ExtendedExecutionGrant",
    "SchedulerMonitor",
    "Timer",
    "TimerInfo",
    "TimerState",
]
