"""dutycycle: power-aware duty-cycle scheduling for position sampling

Runs a position sensor in short high-accuracy bursts separated by long
low-power pauses, reporting one accuracy-gated batch of samples per cycle,
and keeps just enough extended execution time to survive host suspension.

Responsibilities:
    - Scheduler state machine (idle, sampling, waiting, low power)
    - Wait window and cycle timers
    - Extended execution grant bookkeeping
    - Accuracy gating of sample batches

Interactions:
    - Sensor driver, lifecycle notifier and grant host through protocols
    - Caller through the SchedulerDelegate callbacks
    - asyncio for the single control context
    - Logging system for diagnostics
"""

from dutycycle.core.config import SchedulerConfig, SchedulerSettings
from dutycycle.core.errors import (
    ConfigurationError,
    DutyCycleError,
    GrantUnavailableError,
    SensorError,
    TimerError,
    TimerSchedulingError,
)
from dutycycle.core.samples import Sample, SampleBatch, SampleBuffer, qualifies
from dutycycle.core.states import SchedulerState
from dutycycle.runtime.context import ControlContext
from dutycycle.runtime.scheduler import DutyCycleScheduler

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ControlContext",
    "DutyCycleError",
    "DutyCycleScheduler",
    "GrantUnavailableError",
    "Sample",
    "SampleBatch",
    "SampleBuffer",
    "SchedulerConfig",
    "SchedulerSettings",
    "SchedulerState",
    "SensorError",
    "TimerError",
    "TimerSchedulingError",
    "qualifies",
]
