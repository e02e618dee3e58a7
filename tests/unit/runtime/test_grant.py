# tests/unit/runtime/test_grant.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging
import threading
from typing import List

import pytest

from dutycycle.core.events import Event, EventKind
from dutycycle.plugins.memory import InMemoryGrantHost
from dutycycle.runtime.context import ControlContext
from dutycycle.runtime.grant import ExtendedExecutionGrant
from dutycycle.runtime.monitor import SchedulerMonitor


@pytest.fixture
def events() -> List[Event]:
    return []


def make_grant(host: InMemoryGrantHost, events: List[Event], monitor=None) -> ExtendedExecutionGrant:
    context = ControlContext()
    context.bind(events.append)
    return ExtendedExecutionGrant(host, context, monitor)


@pytest.mark.asyncio
async def test_acquire_requires_background_eligibility(events) -> None:
    host = InMemoryGrantHost(background_eligible=False)
    grant = make_grant(host, events)

    assert grant.acquire() is False
    assert not grant.held
    assert host.begun == []


@pytest.mark.asyncio
async def test_acquire_is_idempotent(events) -> None:
    host = InMemoryGrantHost(background_eligible=True)
    monitor = SchedulerMonitor()
    grant = make_grant(host, events, monitor)

    assert grant.acquire()
    assert grant.acquire()
    assert host.begun == [1]
    assert grant.token == 1
    assert grant.owns(1)
    assert monitor.metrics["grant_acquired"] == 1


@pytest.mark.asyncio
async def test_release_returns_token_once(events) -> None:
    host = InMemoryGrantHost(background_eligible=True)
    grant = make_grant(host, events)
    grant.acquire()

    grant.release()
    grant.release()
    assert host.ended == [1]
    assert not grant.held
    assert grant.token is None
    assert not grant.owns(1)


@pytest.mark.asyncio
async def test_release_without_grant_is_noop(events) -> None:
    host = InMemoryGrantHost(background_eligible=True)
    grant = make_grant(host, events)
    grant.release()
    assert host.ended == []


@pytest.mark.asyncio
async def test_refresh_replaces_grant(events) -> None:
    host = InMemoryGrantHost(background_eligible=True)
    grant = make_grant(host, events)
    grant.acquire()

    assert grant.refresh()
    assert host.ended == [1]
    assert grant.token == 2


@pytest.mark.asyncio
async def test_unavailable_grant_is_logged_not_raised(events, caplog) -> None:
    host = InMemoryGrantHost(background_eligible=True, available=False)
    monitor = SchedulerMonitor()
    grant = make_grant(host, events, monitor)

    with caplog.at_level(logging.WARNING, logger="dutycycle.runtime.grant"):
        assert grant.acquire() is False

    assert not grant.held
    assert monitor.metrics["grant_failures"] == 1
    assert "unavailable" in caplog.text


@pytest.mark.asyncio
async def test_host_returning_no_token_counts_as_failure(events) -> None:
    class NoTokenHost(InMemoryGrantHost):
        def begin_grant(self, on_expiring):
            return None

    monitor = SchedulerMonitor()
    grant = make_grant(NoTokenHost(background_eligible=True), events, monitor)
    assert grant.acquire() is False
    assert monitor.metrics["grant_failures"] == 1


@pytest.mark.asyncio
async def test_expiry_is_posted_to_context_with_token(events, wait_until) -> None:
    host = InMemoryGrantHost(background_eligible=True)
    grant = make_grant(host, events)
    grant.acquire()

    # Hosts may expire grants from their own thread.
    t = threading.Thread(target=host.expire)
    t.start()
    t.join()

    await wait_until(lambda: len(events) == 1)
    assert events[0].kind == EventKind.GRANT_EXPIRING
    assert events[0].payload == 1
    assert grant.held  # the owner decides when to end it
