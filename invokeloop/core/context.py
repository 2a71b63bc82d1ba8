"""Deadline-bound cancellation context handed to runners."""

import asyncio
import time
from contextvars import ContextVar
from datetime import UTC, datetime

_current_request_id: ContextVar[str] = ContextVar("invokeloop_request_id", default="")


def get_request_id() -> str:
    """Return the request id of the invocation being dispatched, or ""."""
    return _current_request_id.get()


class InvocationContext:
    """Cancellable context bound to an absolute invocation deadline.

    The runtime only propagates the deadline; runners that start their own
    concurrent work are expected to observe it, e.g.::

        async with ctx.timeout():
            await fetch_everything()

    Args:
        deadline_ms: Absolute deadline as milliseconds since the Unix epoch.
        request_id: Request id of the invocation this context belongs to.
    """

    def __init__(self, deadline_ms: int, request_id: str = "") -> None:
        self.deadline_ms = deadline_ms
        self.deadline = datetime.fromtimestamp(deadline_ms / 1000, UTC)
        self.request_id = request_id
        self._cancelled = False
        self._waiters: list[asyncio.Future[None]] = []

    def __repr__(self) -> str:
        return (
            f"InvocationContext(request_id={self.request_id!r}, "
            f"deadline={self.deadline.isoformat()}, cancelled={self._cancelled})"
        )

    def remaining(self) -> float:
        """Seconds left until the deadline, never negative."""
        return max(0.0, self.deadline_ms / 1000 - time.time())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def deadline_exceeded(self) -> bool:
        return time.time() * 1000 >= self.deadline_ms

    @property
    def done(self) -> bool:
        """True once the context was cancelled or its deadline passed."""
        return self._cancelled or self.deadline_exceeded

    def cancel(self) -> None:
        """Cancel the context; idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)
        self._waiters.clear()

    def timeout(self) -> asyncio.Timeout:
        """Return an ``asyncio.timeout_at`` context manager expiring at the deadline."""
        loop = asyncio.get_running_loop()
        return asyncio.timeout_at(loop.time() + self.remaining())

    async def wait(self) -> None:
        """Block until the context is cancelled or the deadline passes."""
        if self.done:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await asyncio.wait_for(waiter, timeout=self.remaining())
        except TimeoutError:
            pass
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
