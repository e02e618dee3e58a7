# dutycycle/runtime/grant.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import Optional

from dutycycle.core.errors import GrantUnavailableError
from dutycycle.core.events import Event, EventKind
from dutycycle.interfaces.protocols import GrantHost
from dutycycle.interfaces.types import Token
from dutycycle.runtime.context import ControlContext
from dutycycle.runtime.monitor import SchedulerMonitor

logger = logging.getLogger(__name__)


class ExtendedExecutionGrant:
    """
    Bookkeeping for the host's extended execution grant. At most one grant is
    held at a time. Acquiring while held and releasing while not held are
    no-ops, so duplicate lifecycle signals are absorbed.

    When the host expires a grant, a GRANT_EXPIRING event carrying the token
    is posted to the control context; the scheduler decides what to do with it.
    """

    def __init__(
        self, host: GrantHost, context: ControlContext, monitor: Optional[SchedulerMonitor] = None
    ) -> None:
        self._host = host
        self._context = context
        self._monitor = monitor
        self._token: Optional[Token] = None
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @property
    def token(self) -> Optional[Token]:
        return self._token

    def owns(self, token: Token) -> bool:
        """True if token is the grant currently held."""
        return self._held and self._token == token

    def acquire(self) -> bool:
        """
        Obtain a grant if none is held and the host is in a background-eligible
        state. Failures are logged, never raised.

        :return: Whether a grant is held afterwards.
        """
        if self._held:
            return True
        if not self._host.is_background_eligible():
            logger.debug("Host not background-eligible, skipping grant acquisition")
            return False

        expiring = _ExpirationRelay(self._context)
        try:
            token = self._host.begin_grant(expiring)
        except GrantUnavailableError as e:
            logger.warning("Extended execution grant unavailable: %s", e)
            self._count("grant_failures")
            return False

        if token is None:
            logger.warning("Extended execution grant unavailable: host returned no token")
            self._count("grant_failures")
            return False

        expiring.token = token
        self._token = token
        self._held = True
        self._count("grant_acquired")
        logger.debug("Acquired extended execution grant %r", token)
        return True

    def release(self) -> None:
        """Return the grant to the host. No-op when none is held."""
        if not self._held:
            return
        token = self._token
        self._token = None
        self._held = False
        self._host.end_grant(token)
        logger.debug("Released extended execution grant %r", token)

    def refresh(self) -> bool:
        """Release then re-acquire, replacing a possibly stale grant."""
        self.release()
        return self.acquire()

    def _count(self, counter: str) -> None:
        if self._monitor is not None:
            self._monitor.increment(counter)


class _ExpirationRelay:
    """
    Expiration handler handed to the host. The host may call it from any
    thread, so it only posts an event.
    """

    def __init__(self, context: ControlContext) -> None:
        self._context = context
        self.token: Optional[Token] = None

    def __call__(self) -> None:
        self._context.post(Event(EventKind.GRANT_EXPIRING, self.token))
