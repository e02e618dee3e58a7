# dutycycle/runtime/monitor.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List

COUNTERS = (
    "transitions",
    "samples_received",
    "batches_ignored",
    "wait_retries",
    "emissions",
    "cycles",
    "grant_acquired",
    "grant_failures",
    "grant_expired",
    "sensor_errors",
)


class SchedulerMonitor:
    """Collects scheduler counters and a bounded transition history.

    Updates come from the control context; reads may come from any thread,
    so both collections sit behind a lock and are handed out as copies.
    """

    def __init__(self, history_size: int = 100):
        self._metrics: Dict[str, int] = dict.fromkeys(COUNTERS, 0)
        self._history: Deque[Dict[str, Any]] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    @property
    def metrics(self) -> Dict[str, int]:
        """Get a copy of the counters."""
        with self._lock:
            return self._metrics.copy()

    @property
    def history(self) -> List[Dict[str, Any]]:
        """Get a copy of the transition history, oldest first."""
        with self._lock:
            return list(self._history)

    def increment(self, counter: str, amount: int = 1) -> None:
        if counter not in self._metrics:
            raise KeyError(f"Unknown counter: {counter}")
        with self._lock:
            self._metrics[counter] += amount

    def track_transition(self, source: Any, target: Any) -> None:
        with self._lock:
            self._metrics["transitions"] += 1
            self._history.append({"source": source, "target": target, "timestamp": time.time()})

    def reset(self) -> None:
        with self._lock:
            self._metrics = dict.fromkeys(COUNTERS, 0)
            self._history.clear()
