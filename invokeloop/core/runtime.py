"""Runtime API connection and the invocation loop.

The Runtime is the central driver that:
- Fetches the next invocation from the runtime API
- Dispatches it to a runner, which answers exactly once
- Applies error backoff when fetching or answering fails

IMPORTANT: the runtime API allows one outstanding invocation per
connection. Fetch, dispatch and send run strictly in sequence.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from invokeloop.core.backoff import Backoff
from invokeloop.core.config import RuntimeSettings, load_settings
from invokeloop.core.context import InvocationContext
from invokeloop.core.dispatch import dispatch
from invokeloop.core.errors import ProtocolFormatError, TransportError, status_error
from invokeloop.core.logging import configure_runtime_logger
from invokeloop.core.payload import Payload
from invokeloop.core.runner import RunningFunc, as_runner

DEADLINE_HEADER = "Lambda-Runtime-Deadline-Ms"
REQUEST_ID_HEADER = "Lambda-Runtime-Aws-Request-Id"
INVOKED_ARN_HEADER = "Lambda-Runtime-Invoked-Function-Arn"
TRACE_ID_HEADER = "Lambda-Runtime-Trace-Id"

_DEADLINE_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


@dataclass
class LoopStats:
    """Statistics from an invocation loop run."""

    invocations: int = 0
    fetch_errors: int = 0
    unhandled_errors: int = 0


def build_wait_client() -> httpx.AsyncClient:
    """Client for fetching invocations; the runtime API may hold it indefinitely."""
    return httpx.AsyncClient(timeout=httpx.Timeout(None))


def build_response_client(settings: RuntimeSettings | None = None) -> httpx.AsyncClient:
    """Client for delivering results; fails fast rather than hanging."""
    connect = settings.response_connect_timeout if settings else 5.0
    header = settings.response_header_timeout if settings else 5.0
    keepalive = settings.response_keepalive_expiry if settings else 60.0
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=connect, read=header, write=None, pool=None),
        limits=httpx.Limits(keepalive_expiry=keepalive),
    )


def _parse_deadline(raw: str, request_id: str) -> InvocationContext:
    """Build the invocation context from a signed 64-bit epoch-millisecond header."""
    if not _DEADLINE_PATTERN.fullmatch(raw):
        raise ProtocolFormatError(f"cannot parse deadline: {raw!r}")
    deadline_ms = int(raw)
    if not _INT64_MIN <= deadline_ms <= _INT64_MAX:
        raise ProtocolFormatError(f"deadline out of range: {raw!r}")
    try:
        return InvocationContext(deadline_ms, request_id=request_id)
    except (ValueError, OverflowError, OSError) as e:
        raise ProtocolFormatError(f"deadline not representable: {raw!r}") from e


class Runtime:
    """A connection to the runtime API.

    Args:
        endpoint: Base URL, e.g. ``http://127.0.0.1:9001/2018-06-01/runtime``.
        wait_client: Client used for the blocking "next invocation" request.
        response_client: Client used to send responses and failures.
        response_timeout: Overall limit in seconds for one send.
        backoff: Error backoff state; a fresh one is created when omitted.
        logger: Logger for loop events; the JSON runtime logger by default.
    """

    def __init__(
        self,
        endpoint: str,
        wait_client: httpx.AsyncClient | None = None,
        response_client: httpx.AsyncClient | None = None,
        response_timeout: float = 30.0,
        backoff: Backoff | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.wait_client = wait_client or build_wait_client()
        self.response_client = response_client or build_response_client()
        self.response_timeout = response_timeout
        self._log = logger or configure_runtime_logger()
        self.backoff = backoff or Backoff(logger=self._log)
        self._running = False
        self._stats = LoopStats()

    @classmethod
    def from_env(cls, **overrides: Any) -> "Runtime":
        """Build a Runtime from ``AWS_LAMBDA_RUNTIME_API`` and related settings.

        Raises:
            ConfigurationError: If the runtime API address is not configured.
        """
        settings = load_settings(**overrides)
        return cls(
            settings.endpoint,
            response_client=build_response_client(settings),
            response_timeout=settings.response_timeout,
            logger=configure_runtime_logger(settings.log_level),
        )

    async def aclose(self) -> None:
        await self.wait_client.aclose()
        await self.response_client.aclose()

    async def __aenter__(self) -> "Runtime":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def next_invocation(self, payload: Payload) -> None:
        """Wait for the next invocation and load it into ``payload``.

        The runtime API may suspend the whole process while waiting; callers
        must be prepared for an indefinite delay.

        Raises:
            TransportError: The runtime API could not be reached.
            ProtocolStatusError: The runtime API answered with a non-200 status.
            ProtocolFormatError: The deadline header is missing or invalid.
        """
        try:
            response = await self.wait_client.get(f"{self.endpoint}/invocation/next")
        except httpx.TransportError as e:
            raise TransportError(f"error waiting for next invocation: {e!r}") from e

        error = status_error(response, expected=200)
        if error is not None:
            raise error

        payload.reset()
        request_id = response.headers.get(REQUEST_ID_HEADER, "")
        payload.context = _parse_deadline(response.headers.get(DEADLINE_HEADER, ""), request_id)
        payload.request_id = request_id
        payload.invoked_arn = response.headers.get(INVOKED_ARN_HEADER, "")
        payload.trace_id = response.headers.get(TRACE_ID_HEADER, "")
        payload.body = response.content
        payload.bind(self)

    def stop(self) -> None:
        """Stop the loop once the current cycle finishes."""
        self._running = False

    def get_stats(self) -> LoopStats:
        """Return a copy of current statistics."""
        return LoopStats(
            invocations=self._stats.invocations,
            fetch_errors=self._stats.fetch_errors,
            unhandled_errors=self._stats.unhandled_errors,
        )

    async def loop(self, handler: Any) -> LoopStats:
        """Fetch and dispatch invocations until ``stop()`` is called.

        Handler and transport failures never end the loop; they are logged
        and fed to the backoff.

        Args:
            handler: A Runner, an object with ``run(ctx, payload)``, or a callable.
        """
        runner = as_runner(handler)
        payload = Payload(logger=self._log)
        self._stats = LoopStats()
        self._running = True
        self._log.info("Started invocation loop", extra={"endpoint": self.endpoint})

        while self._running:
            try:
                await self.next_invocation(payload)
            except Exception as e:
                self._stats.fetch_errors += 1
                self._log.error(
                    f"Error attempting to fetch payload: {e}",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                await self.backoff.failure()
                continue

            self._stats.invocations += 1
            count = self._stats.invocations
            self._log.info(
                f"Invocation #{count}, request id {payload.request_id} started",
                extra={"invocation": count, "request_id": payload.request_id},
            )
            started = time.perf_counter()
            error: Exception | None = None
            try:
                await dispatch(runner, payload)
            except Exception as e:
                error = e
            elapsed = time.perf_counter() - started
            self._log.info(
                f"Invocation #{count}, request id {payload.request_id} complete ({elapsed:.3f}s)",
                extra={
                    "invocation": count,
                    "request_id": payload.request_id,
                    "duration_ms": round(elapsed * 1000, 3),
                },
            )
            if error is not None:
                self._stats.unhandled_errors += 1
                self._log.error(
                    f"Unhandled function error: {error}",
                    extra={"request_id": payload.request_id, "error": str(error)},
                )
                await self.backoff.failure()

        payload.reset()
        return self._stats

    async def loop_func(self, func: RunningFunc) -> LoopStats:
        """Run ``loop()`` with a plain ``(ctx, payload)`` callable."""
        return await self.loop(as_runner(func))
