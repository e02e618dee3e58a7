# dutycycle/interfaces/protocols.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Optional, Protocol, runtime_checkable

from dutycycle.core.samples import SampleBatch
from dutycycle.interfaces.types import (
    Batch,
    ExpirationHandler,
    LifecycleCallback,
    LifecycleSignal,
    Token,
)


@runtime_checkable
class SchedulerDelegate(Protocol):
    """
    Output collaborator implemented by the caller.

    Runtime Invariants:
    - Called only from the scheduler's control context.
    - on_error and on_authorization_changed receive the driver's objects verbatim.
    """

    def on_error(self, error: Any) -> None: ...

    def on_samples_updated(self, samples: SampleBatch) -> None: ...

    def on_authorization_changed(self, status: Any) -> None: ...


@runtime_checkable
class SensorListener(Protocol):
    """
    Receives the sensor driver's push stream. May be called from any thread.
    """

    def samples_received(self, samples: Batch) -> None: ...

    def sensor_failed(self, error: Any) -> None: ...

    def authorization_changed(self, status: Any) -> None: ...


@runtime_checkable
class SensorDriver(Protocol):
    """
    Raw sensor driver consumed by the scheduler.

    Attributes:
        allows_background_updates: keep delivering after the host suspends foreground execution.
        pauses_automatically: let the driver pause itself when it sees no movement.
    """

    allows_background_updates: bool
    pauses_automatically: bool

    def set_listener(self, listener: Optional[SensorListener]) -> None: ...

    def enable(self, high_accuracy: bool, distance_filter: float) -> None: ...

    def disable(self) -> None: ...

    def request_broad_authorization(self) -> None: ...

    def request_in_use_authorization(self) -> None: ...


@runtime_checkable
class LifecycleNotifier(Protocol):
    """
    Host application lifecycle notifications. Subscribing the same callback
    twice for one signal has no extra effect; unsubscribing an unknown callback
    is a no-op.
    """

    def subscribe(self, signal: LifecycleSignal, callback: LifecycleCallback) -> None: ...

    def unsubscribe(self, signal: LifecycleSignal, callback: LifecycleCallback) -> None: ...


@runtime_checkable
class GrantHost(Protocol):
    """
    Host API handing out time-bounded extended execution grants.

    Error Handling:
    - begin_grant may raise GrantUnavailableError or return None when no grant
      can be given.
    """

    def is_background_eligible(self) -> bool: ...

    def begin_grant(self, on_expiring: ExpirationHandler) -> Optional[Token]: ...

    def end_grant(self, token: Token) -> None: ...


class SchedulerHook(Protocol):
    """
    Optional observer of scheduler transitions. Any subset of the methods may
    be implemented; missing ones are skipped.
    """

    def on_enter(self, state: Any) -> None: ...

    def on_exit(self, state: Any) -> None: ...

    def on_transition(self, source: Any, target: Any) -> None: ...
