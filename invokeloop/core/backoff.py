"""Adaptive error backoff for the invocation loop.

The first three failures of a burst cost nothing. From the fourth on, each
failure doubles the delay (50ms, 100ms, 200ms, ...). A quiet period longer
than three delays plus one second halves the delay and restarts the count.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

FREE_FAILURES = 3
INITIAL_WAIT = 0.05
QUIET_GRACE = 1.0


class Backoff:
    """Failure bookkeeping for one runtime connection.

    Args:
        logger: Logger receiving delay changes.
        clock: Monotonic clock in seconds.
        sleep: Coroutine function used to wait out the delay.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._log = logger or logging.getLogger("invokeloop.runtime")
        self._clock = clock
        self._sleep = sleep
        self._failcount = 0
        self._failwait = 0.0
        self._faillast: float | None = None

    @property
    def failcount(self) -> int:
        return self._failcount

    @property
    def failwait(self) -> float:
        """Current delay in seconds."""
        return self._failwait

    @property
    def faillast(self) -> float | None:
        return self._faillast

    async def failure(self) -> None:
        """Record one failure, sleeping if the burst has exceeded its free allowance."""
        now = self._clock()
        if self._faillast is not None:
            if now > self._faillast + 3 * self._failwait + QUIET_GRACE:
                self._failwait /= 2
                self._failcount = 0
                self._log.info(
                    f"Error backoff delay reduced to {self._failwait:.3f}s",
                    extra={"failwait": self._failwait},
                )

        self._failcount += 1
        self._faillast = now

        if self._failcount > FREE_FAILURES:
            if self._failwait == 0:
                self._failwait = INITIAL_WAIT
            else:
                self._failwait *= 2
            self._log.info(
                f"Error backoff delay increased to {self._failwait:.3f}s",
                extra={"failwait": self._failwait, "failcount": self._failcount},
            )
            await self._sleep(self._failwait)
