# dutycycle/plugins/memory.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
In-memory collaborators for driving the scheduler without a real sensor or
host: simulations, demos and tests.
"""

from __future__ import annotations

import itertools
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dutycycle.core.errors import GrantUnavailableError
from dutycycle.core.samples import Sample, SampleBatch
from dutycycle.interfaces.protocols import SensorListener
from dutycycle.interfaces.types import (
    AuthorizationStatus,
    ExpirationHandler,
    LifecycleCallback,
    LifecycleSignal,
    Token,
)


class InMemorySensorDriver:
    """
    A sensor driver whose output is pushed by the caller. Records every
    enable/disable call so tests can assert on the sensor's power mode.
    """

    def __init__(self, authorization: Any = AuthorizationStatus.NOT_DETERMINED) -> None:
        self.allows_background_updates = False
        self.pauses_automatically = True
        self.authorization = authorization
        self.enabled = False
        self.high_accuracy: Optional[bool] = None
        self.distance_filter: Optional[float] = None
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.authorization_requests: List[str] = []
        self._listener: Optional[SensorListener] = None

    @property
    def listener(self) -> Optional[SensorListener]:
        return self._listener

    def set_listener(self, listener: Optional[SensorListener]) -> None:
        self._listener = listener

    def enable(self, high_accuracy: bool, distance_filter: float) -> None:
        self.enabled = True
        self.high_accuracy = high_accuracy
        self.distance_filter = distance_filter
        self.calls.append(("enable", (high_accuracy, distance_filter)))

    def disable(self) -> None:
        self.enabled = False
        self.calls.append(("disable", ()))

    def request_broad_authorization(self) -> None:
        self.authorization_requests.append("broad")

    def request_in_use_authorization(self) -> None:
        self.authorization_requests.append("in_use")

    # Push side
    def push_samples(self, samples: Sequence[Sample]) -> None:
        if self._listener is not None:
            self._listener.samples_received(samples)

    def push_error(self, error: Any) -> None:
        if self._listener is not None:
            self._listener.sensor_failed(error)

    def change_authorization(self, status: Any) -> None:
        self.authorization = status
        if self._listener is not None:
            self._listener.authorization_changed(status)


class InMemoryGrantHost:
    """
    Hands out integer grant tokens while the host is background-eligible.
    Tests force expiry with expire().
    """

    def __init__(self, background_eligible: bool = False, available: bool = True) -> None:
        self.background_eligible = background_eligible
        self.available = available
        self.begun: List[Token] = []
        self.ended: List[Token] = []
        self._active: Dict[Token, ExpirationHandler] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def active_tokens(self) -> List[Token]:
        with self._lock:
            return list(self._active)

    def is_background_eligible(self) -> bool:
        return self.background_eligible

    def begin_grant(self, on_expiring: ExpirationHandler) -> Optional[Token]:
        if not self.available:
            raise GrantUnavailableError("extended execution budget exhausted")
        with self._lock:
            token = next(self._tokens)
            self._active[token] = on_expiring
            self.begun.append(token)
        return token

    def end_grant(self, token: Token) -> None:
        with self._lock:
            self._active.pop(token, None)
            self.ended.append(token)

    def expire(self, token: Optional[Token] = None) -> None:
        """
        Invoke the expiration handler of token, or of the most recent active
        grant. The grant stays active until its owner ends it.
        """
        with self._lock:
            if not self._active:
                return
            if token is None:
                token = next(reversed(self._active))
            handler = self._active.get(token)
        if handler is not None:
            handler()


class InMemoryLifecycleNotifier:
    """
    Host lifecycle notifier driven by the caller. When given a grant host, it
    keeps the host's background eligibility in step with the signals.
    """

    def __init__(self, grant_host: Optional[InMemoryGrantHost] = None) -> None:
        self._grant_host = grant_host
        self._subscribers: Dict[LifecycleSignal, List[LifecycleCallback]] = {s: [] for s in LifecycleSignal}
        self._lock = threading.Lock()

    def subscribe(self, signal: LifecycleSignal, callback: LifecycleCallback) -> None:
        with self._lock:
            if callback not in self._subscribers[signal]:
                self._subscribers[signal].append(callback)

    def unsubscribe(self, signal: LifecycleSignal, callback: LifecycleCallback) -> None:
        with self._lock:
            if callback in self._subscribers[signal]:
                self._subscribers[signal].remove(callback)

    def subscriber_count(self, signal: Optional[LifecycleSignal] = None) -> int:
        with self._lock:
            if signal is not None:
                return len(self._subscribers[signal])
            return sum(len(callbacks) for callbacks in self._subscribers.values())

    def enter_background(self) -> None:
        if self._grant_host is not None:
            self._grant_host.background_eligible = True
        self._notify(LifecycleSignal.ENTERED_BACKGROUND)

    def become_active(self) -> None:
        if self._grant_host is not None:
            self._grant_host.background_eligible = False
        self._notify(LifecycleSignal.BECAME_ACTIVE)

    def _notify(self, signal: LifecycleSignal) -> None:
        with self._lock:
            callbacks = list(self._subscribers[signal])
        for callback in callbacks:
            callback()


class RecordingDelegate:
    """Delegate that keeps everything it is told."""

    def __init__(self, on_batch: Optional[Callable[[SampleBatch], None]] = None) -> None:
        self.errors: List[Any] = []
        self.batches: List[SampleBatch] = []
        self.statuses: List[Any] = []
        self._on_batch = on_batch

    def on_error(self, error: Any) -> None:
        self.errors.append(error)

    def on_samples_updated(self, samples: SampleBatch) -> None:
        self.batches.append(samples)
        if self._on_batch is not None:
            self._on_batch(samples)

    def on_authorization_changed(self, status: Any) -> None:
        self.statuses.append(status)
