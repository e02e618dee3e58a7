# dutycycle/runtime/context.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Single serializing control context for the scheduler, backed by an asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from dutycycle.core.events import Event

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], None]


class ControlContext:
    """
    Funnels every inbound event and timer firing onto one asyncio loop so that
    scheduler state is only ever touched from that loop's thread.

    Events may be posted from any thread; they are handled in arrival order.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        :param loop: Loop to run on. Defaults to the running loop, which means
                     the context must then be created from inside a coroutine.
        """
        self._loop = loop or asyncio.get_running_loop()
        self._handler: Optional[EventHandler] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def bind(self, handler: EventHandler) -> None:
        """Set the single consumer of posted events."""
        self._handler = handler

    def time(self) -> float:
        """Loop clock, used for timer bookkeeping."""
        return self._loop.time()

    def in_context(self) -> bool:
        """True when called from the loop's own thread while it is running."""
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def post(self, event: Event) -> bool:
        """
        Queue an event for handling on the control context. Safe from any thread.

        :return: False if the loop is closed and the event was dropped.
        """
        if self._loop.is_closed():
            logger.debug("Dropping %s: control context is closed", event.name)
            return False
        try:
            self._loop.call_soon_threadsafe(self._dispatch, event)
        except RuntimeError:
            # Loop closed between the check and the call.
            logger.debug("Dropping %s: control context is closed", event.name)
            return False
        return True

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        """Schedule a callback on the control context. Must be called from the context."""
        return self._loop.call_later(delay, callback, *args)

    def _dispatch(self, event: Event) -> None:
        if self._handler is None:
            logger.debug("No handler bound, dropping %s", event.name)
            return
        self._handler(event)

    def __repr__(self) -> str:
        return f"ControlContext(loop={self._loop!r})"
