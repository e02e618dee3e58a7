# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio
import threading
from typing import Any, Callable, Optional

import pytest
from async_timeout import timeout

from dutycycle.core.config import SchedulerSettings
from dutycycle.core.samples import Sample
from dutycycle.plugins.memory import (
    InMemoryGrantHost,
    InMemoryLifecycleNotifier,
    InMemorySensorDriver,
    RecordingDelegate,
)


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "property: mark test as a property-based test")
    config.addinivalue_line("markers", "integration: mark test as an end-to-end scenario")


@pytest.fixture
def sensor() -> InMemorySensorDriver:
    return InMemorySensorDriver()


@pytest.fixture
def grant_host() -> InMemoryGrantHost:
    """A grant host that starts in the background so grants are available."""
    return InMemoryGrantHost(background_eligible=True)


@pytest.fixture
def lifecycle(grant_host: InMemoryGrantHost) -> InMemoryLifecycleNotifier:
    return InMemoryLifecycleNotifier(grant_host)


@pytest.fixture
def delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture
def fast_settings() -> SchedulerSettings:
    """Short durations so timer-driven tests finish quickly."""
    return SchedulerSettings(
        wait_for_samples=0.05,
        grant_release_delay=0.03,
        min_cycle_interval=0.05,
        max_cycle_interval=1.0,
    )


@pytest.fixture
def make_scheduler(sensor, lifecycle, grant_host, delegate, fast_settings):
    """
    Returns a factory building a scheduler wired to the in-memory collaborators.
    Must be called from inside a running event loop.
    """
    from dutycycle.runtime.scheduler import DutyCycleScheduler

    created = []

    def _factory(settings: Optional[SchedulerSettings] = None, **kwargs: Any) -> DutyCycleScheduler:
        scheduler = DutyCycleScheduler(
            delegate=delegate,
            sensor=sensor,
            lifecycle=lifecycle,
            grant_host=grant_host,
            settings=settings or fast_settings,
            **kwargs,
        )
        created.append(scheduler)
        return scheduler

    yield _factory

    for scheduler in created:
        scheduler.stop()


@pytest.fixture
def make_sample() -> Callable[..., Sample]:
    def _factory(accuracy: float, position: Any = (59.437, 24.7536), timestamp: float = 0.0) -> Sample:
        return Sample(position=position, horizontal_accuracy=accuracy, timestamp=timestamp)

    return _factory


@pytest.fixture
def flush() -> Callable[[], Any]:
    """Let callbacks already posted to the loop run."""

    async def _flush(rounds: int = 3) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _flush


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    """Poll a predicate on the loop until it holds or the deadline passes."""

    async def _wait_until(predicate: Callable[[], bool], deadline: float = 1.0, interval: float = 0.005) -> None:
        async with timeout(deadline):
            while not predicate():
                await asyncio.sleep(interval)

    return _wait_until


@pytest.fixture(autouse=True)
def cleanup_threads():
    yield
    # Cleanup any remaining threads after each test
    for thread in threading.enumerate():
        if thread != threading.current_thread() and thread.is_alive() and not thread.daemon:
            thread.join(timeout=1.0)
