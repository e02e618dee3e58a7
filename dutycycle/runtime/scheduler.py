# dutycycle/runtime/scheduler.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Duty-cycle scheduler: alternates the sensor between short high-accuracy bursts
and long low-power pauses, reporting one accuracy-gated batch per cycle.

States:
    IDLE -> ACTIVE_SAMPLING            start()
    ACTIVE_SAMPLING -> WAITING         first non-empty batch, wait window armed
    WAITING -> WAITING                 wait window elapsed, freshest sample too coarse
    WAITING -> LOW_POWER               wait window elapsed, freshest sample qualifies
    LOW_POWER -> ACTIVE_SAMPLING       cycle timer elapsed (or grant expiring)
    any -> IDLE                        stop()

Everything below runs on the ControlContext; collaborators call in from any
thread through the relays, which only post events.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dutycycle.core.config import DEFAULT_CYCLE_INTERVAL, SchedulerConfig, SchedulerSettings
from dutycycle.core.events import Event, EventKind
from dutycycle.core.samples import Sample, SampleBuffer
from dutycycle.core.states import SchedulerState
from dutycycle.interfaces.protocols import (
    GrantHost,
    LifecycleNotifier,
    SchedulerDelegate,
    SchedulerHook,
    SensorDriver,
)
from dutycycle.interfaces.types import Batch, LifecycleSignal
from dutycycle.runtime.context import ControlContext
from dutycycle.runtime.grant import ExtendedExecutionGrant
from dutycycle.runtime.monitor import SchedulerMonitor
from dutycycle.runtime.timers import Timer, TimerInfo

logger = logging.getLogger(__name__)


class DutyCycleScheduler:
    """
    Orchestrates the sensor, the wait window, the cycle timer and the extended
    execution grant.

    Public operations must be called from the control context. Sensor,
    lifecycle and grant-expiry callbacks may arrive from any thread.
    """

    def __init__(
        self,
        delegate: SchedulerDelegate,
        sensor: SensorDriver,
        lifecycle: LifecycleNotifier,
        grant_host: GrantHost,
        settings: Optional[SchedulerSettings] = None,
        context: Optional[ControlContext] = None,
        hooks: Optional[List[SchedulerHook]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        :param delegate: Receives qualifying batches, sensor errors and authorization changes.
        :param sensor: Raw sensor driver.
        :param lifecycle: Host foreground/background notifier.
        :param grant_host: Host API for extended execution grants.
        :param settings: Tunables; production defaults when omitted.
        :param context: Control context; one bound to the running loop when omitted.
        :param hooks: Objects notified of transitions (on_enter, on_exit, on_transition).
        :param clock: Wall clock used to stamp qualifying batches.
        """
        self._delegate = delegate
        self._sensor = sensor
        self._lifecycle = lifecycle
        self._settings = settings or SchedulerSettings()
        self._context = context or ControlContext()
        self._hooks = list(hooks or [])
        self._clock = clock

        self._monitor = SchedulerMonitor(self._settings.history_size)
        self._grant = ExtendedExecutionGrant(grant_host, self._context, self._monitor)
        self._buffer = SampleBuffer()
        self._wait_window = Timer("wait-window", self._context)
        self._cycle_timer = Timer("cycle", self._context)
        self._release_timer = Timer("grant-release", self._context)

        self._state = SchedulerState.IDLE
        self._running = False
        self._config = SchedulerConfig.clamped(DEFAULT_CYCLE_INTERVAL, None, self._settings)

        self._handlers: Dict[EventKind, Callable[[Any], None]] = {
            EventKind.SAMPLES_RECEIVED: self._handle_samples,
            EventKind.SENSOR_FAILED: self._handle_sensor_failure,
            EventKind.AUTHORIZATION_CHANGED: self._handle_authorization_change,
            EventKind.ENTERED_BACKGROUND: self._handle_entered_background,
            EventKind.BECAME_ACTIVE: self._handle_became_active,
            EventKind.GRANT_EXPIRING: self._handle_grant_expiring,
        }
        self._lifecycle_callbacks: Tuple[Tuple[LifecycleSignal, Callable[[], None]], ...] = (
            (LifecycleSignal.ENTERED_BACKGROUND, self._post_entered_background),
            (LifecycleSignal.BECAME_ACTIVE, self._post_became_active),
        )

        self._context.bind(self.process_event)
        self._configure_sensor()

    def _configure_sensor(self) -> None:
        self._sensor.allows_background_updates = True
        self._sensor.pauses_automatically = False
        self._sensor.set_listener(_SensorRelay(self._context))

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def cycle_interval(self) -> float:
        """Effective (clamped) cycle interval in seconds."""
        return self._config.cycle_interval

    @property
    def acceptable_accuracy(self) -> float:
        """Effective (clamped) accuracy threshold."""
        return self._config.acceptable_accuracy

    @property
    def settings(self) -> SchedulerSettings:
        return self._settings

    @property
    def context(self) -> ControlContext:
        return self._context

    @property
    def last_samples(self) -> Tuple[Sample, ...]:
        return self._buffer.samples

    @property
    def grant_held(self) -> bool:
        return self._grant.held

    @property
    def monitor(self) -> SchedulerMonitor:
        return self._monitor

    def timers(self) -> Dict[str, TimerInfo]:
        """Snapshot of the three timers, keyed by name."""
        return {t.name: t.info() for t in (self._wait_window, self._cycle_timer, self._release_timer)}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def request_broad_authorization(self) -> None:
        self._sensor.request_broad_authorization()

    def request_in_use_authorization(self) -> None:
        self._sensor.request_in_use_authorization()

    def start(self, cycle_interval: float, acceptable_accuracy: Optional[float] = None) -> None:
        """
        Begin duty cycling. Restarts from scratch if already running.

        :param cycle_interval: Seconds to stay in low power between bursts,
                               clamped to the configured bounds.
        :param acceptable_accuracy: Accuracy threshold, raised to the configured minimum.
        """
        if self._running:
            self.stop()

        config = SchedulerConfig.clamped(cycle_interval, acceptable_accuracy, self._settings)
        if config.cycle_interval != cycle_interval:
            logger.debug("Cycle interval %.3f clamped to %.3f", cycle_interval, config.cycle_interval)
        if acceptable_accuracy is not None and config.acceptable_accuracy != acceptable_accuracy:
            logger.debug(
                "Acceptable accuracy %.3f raised to %.3f", acceptable_accuracy, config.acceptable_accuracy
            )

        self._config = config
        self._running = True
        self._buffer.clear()
        self._subscribe_lifecycle()
        logger.info(
            "Starting duty cycling: interval=%.1fs accuracy=%.1f",
            config.cycle_interval,
            config.acceptable_accuracy,
        )
        self._start_sensing()
        self._transition(SchedulerState.ACTIVE_SAMPLING)

    def stop(self) -> None:
        """
        Stop duty cycling from any state, including from inside a timer or
        delegate callback. Leaves no armed timer and no held grant.
        """
        if not self._running:
            return
        self._running = False

        self._wait_window.cancel()
        self._cycle_timer.cancel()
        self._release_timer.cancel()
        self._sensor.disable()
        self._grant.release()
        self._unsubscribe_lifecycle()
        logger.info("Stopped duty cycling")
        self._transition(SchedulerState.IDLE)

    def process_event(self, event: Event) -> None:
        """Handle one inbound event. Runs on the control context."""
        handler = self._handlers.get(event.kind)
        if handler is None:
            logger.debug("No handler for %s", event.name)
            return
        handler(event.payload)

    # ------------------------------------------------------------------
    # Sensor events
    # ------------------------------------------------------------------
    def _handle_samples(self, samples: Batch) -> None:
        if not self._state.is_sensing:
            self._monitor.increment("batches_ignored")
            logger.debug("Ignoring batch of %d samples in %s", len(samples), self._state.name)
            return
        if not self._buffer.store(samples):
            self._monitor.increment("batches_ignored")
            return

        self._monitor.increment("samples_received", len(self._buffer))
        if not self._wait_window.is_armed:
            self._wait_window.arm(self._settings.wait_for_samples, self._on_wait_window_elapsed)
        if self._state == SchedulerState.ACTIVE_SAMPLING:
            self._transition(SchedulerState.WAITING_FOR_ACCURACY)

    def _handle_sensor_failure(self, error: Any) -> None:
        self._monitor.increment("sensor_errors")
        logger.debug("Forwarding sensor error: %r", error)
        self._delegate.on_error(error)

    def _handle_authorization_change(self, status: Any) -> None:
        logger.debug("Forwarding authorization status: %r", status)
        self._delegate.on_authorization_changed(status)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    def _on_wait_window_elapsed(self) -> None:
        if self._state != SchedulerState.WAITING_FOR_ACCURACY:
            return

        if not self._buffer.qualifies(self._config.acceptable_accuracy):
            self._monitor.increment("wait_retries")
            last = self._buffer.last
            logger.debug(
                "Freshest sample accuracy %s above %.1f, waiting again",
                last.horizontal_accuracy if last else None,
                self._config.acceptable_accuracy,
            )
            self._wait_window.arm(self._settings.wait_for_samples, self._on_wait_window_elapsed)
            return

        self._grant.acquire()
        self._cycle_timer.arm(self._config.cycle_interval, self._on_cycle_elapsed)
        self._sensor.enable(high_accuracy=False, distance_filter=self._settings.low_power_distance_filter)
        self._transition(SchedulerState.LOW_POWER)
        if not self._running:
            return

        self._monitor.increment("emissions")
        self._delegate.on_samples_updated(self._buffer.snapshot(self._clock()))

    def _on_cycle_elapsed(self) -> None:
        if self._state != SchedulerState.LOW_POWER:
            return
        self._monitor.increment("cycles")
        self._start_sensing()
        self._transition(SchedulerState.ACTIVE_SAMPLING)
        # Hooks may have stopped the scheduler.
        if not self._running:
            return
        # Ending the grant before sensing has resumed can keep sensing from resuming.
        self._release_timer.arm(self._settings.grant_release_delay, self._on_release_due)

    def _on_release_due(self) -> None:
        if not self._running:
            return
        if self._state.is_sensing:
            self._grant.release()
        else:
            self._grant.refresh()

    def _start_sensing(self) -> None:
        self._sensor.enable(high_accuracy=True, distance_filter=self._settings.active_distance_filter)

    # ------------------------------------------------------------------
    # Lifecycle and grant
    # ------------------------------------------------------------------
    def _subscribe_lifecycle(self) -> None:
        self._unsubscribe_lifecycle()
        for signal, callback in self._lifecycle_callbacks:
            self._lifecycle.subscribe(signal, callback)

    def _unsubscribe_lifecycle(self) -> None:
        for signal, callback in self._lifecycle_callbacks:
            self._lifecycle.unsubscribe(signal, callback)

    def _post_entered_background(self) -> None:
        self._context.post(Event(EventKind.ENTERED_BACKGROUND))

    def _post_became_active(self) -> None:
        self._context.post(Event(EventKind.BECAME_ACTIVE))

    def _handle_entered_background(self, _payload: Any) -> None:
        if not self._running:
            return
        self._grant.refresh()

    def _handle_became_active(self, _payload: Any) -> None:
        if not self._running:
            return
        self._grant.release()

    def _handle_grant_expiring(self, token: Any) -> None:
        if not self._grant.owns(token):
            logger.debug("Ignoring expiry of grant %r that is no longer held", token)
            return
        self._monitor.increment("grant_expired")
        logger.debug("Grant %r expiring in %s, resuming sensing", token, self._state.name)

        if self._state == SchedulerState.LOW_POWER:
            self._cycle_timer.cancel()
            self._on_cycle_elapsed()
        else:
            self._start_sensing()
            self._release_timer.arm(self._settings.grant_release_delay, self._on_release_due)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _transition(self, target: SchedulerState) -> None:
        source = self._state
        if source == target:
            return
        self._notify_hooks("on_exit", source)
        self._state = target
        self._monitor.track_transition(source, target)
        logger.debug("Transition %s -> %s", source.name, target.name)
        self._notify_hooks("on_transition", source, target)
        self._notify_hooks("on_enter", target)

    def _notify_hooks(self, method: str, *args: Any) -> None:
        for hook in self._hooks:
            callback = getattr(hook, method, None)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception:
                logger.exception("Hook %r failed in %s", hook, method)


class _SensorRelay:
    """
    Listener registered with the sensor driver. Turns driver callbacks into
    events on the control context.
    """

    def __init__(self, context: ControlContext) -> None:
        self._context = context

    def samples_received(self, samples: Sequence[Sample]) -> None:
        self._context.post(Event(EventKind.SAMPLES_RECEIVED, tuple(samples)))

    def sensor_failed(self, error: Any) -> None:
        self._context.post(Event(EventKind.SENSOR_FAILED, error))

    def authorization_changed(self, status: Any) -> None:
        self._context.post(Event(EventKind.AUTHORIZATION_CHANGED, status))
