"""Pytest configuration, Hypothesis profiles and a fake runtime API."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable

import httpx
import pytest
from hypothesis import settings

from invokeloop.core.backoff import Backoff
from invokeloop.core.payload import Payload
from invokeloop.core.runtime import (
    DEADLINE_HEADER,
    INVOKED_ARN_HEADER,
    REQUEST_ID_HEADER,
    TRACE_ID_HEADER,
    Runtime,
)

# Register Hypothesis profiles
settings.register_profile("ci", max_examples=100)
settings.register_profile("dev", max_examples=20)

# Load dev profile by default, CI can override via --hypothesis-profile=ci
settings.load_profile("dev")

ENDPOINT = "http://127.0.0.1:9001/2018-06-01/runtime"
FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:echo"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep, recording requested delays."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._clock is not None:
            self._clock.advance(delay)


class FakeRuntimeAPI:
    """In-process runtime API served through httpx.MockTransport.

    "next" responses are served from a queue; when it runs dry,
    ``on_exhausted`` is called and a 500 is returned. POSTs can be slowed
    with ``post_delay`` or answered with a custom ``post_stream`` body.
    """

    def __init__(self) -> None:
        self.next_responses: deque[httpx.Response | Exception] = deque()
        self.requests: list[httpx.Request] = []
        self.post_status = 202
        self.post_error: Exception | None = None
        self.post_delay = 0.0
        self.post_stream: httpx.AsyncByteStream | None = None
        self.on_exhausted: Callable[[], None] | None = None

    def queue_invocation(
        self,
        request_id: str,
        body: bytes = b"{}",
        deadline_ms: int | None = None,
    ) -> int:
        if deadline_ms is None:
            deadline_ms = int(time.time() * 1000) + 5000
        headers = {
            DEADLINE_HEADER: str(deadline_ms),
            REQUEST_ID_HEADER: request_id,
            INVOKED_ARN_HEADER: FUNCTION_ARN,
            TRACE_ID_HEADER: f"Root=1-{request_id}",
        }
        self.next_responses.append(httpx.Response(200, headers=headers, content=body))
        return deadline_ms

    def queue(self, item: httpx.Response | Exception) -> None:
        self.next_responses.append(item)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path.endswith("/invocation/next"):
            if not self.next_responses:
                if self.on_exhausted is not None:
                    self.on_exhausted()
                return httpx.Response(500)
            item = self.next_responses.popleft()
            if isinstance(item, Exception):
                raise item
            return item

        if self.post_delay:
            await asyncio.sleep(self.post_delay)
        if self.post_error is not None:
            raise self.post_error
        if self.post_stream is not None:
            return httpx.Response(self.post_status, stream=self.post_stream)
        return httpx.Response(self.post_status, json={"status": "OK"})

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def fetches(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


@pytest.fixture
def api() -> FakeRuntimeAPI:
    return FakeRuntimeAPI()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps(clock: FakeClock) -> SleepRecorder:
    return SleepRecorder(clock)


@pytest.fixture
async def runtime(api: FakeRuntimeAPI, clock: FakeClock, sleeps: SleepRecorder):
    transport = httpx.MockTransport(api.handler)
    rt = Runtime(
        ENDPOINT,
        wait_client=httpx.AsyncClient(transport=transport),
        response_client=httpx.AsyncClient(transport=transport),
        backoff=Backoff(clock=clock, sleep=sleeps),
    )
    yield rt
    await rt.aclose()


@pytest.fixture
async def payload(api: FakeRuntimeAPI, runtime: Runtime) -> Payload:
    """A payload populated by a successful fetch of request "req-1"."""
    api.queue_invocation("req-1", body=b'{"k": 1}')
    p = Payload()
    await runtime.next_invocation(p)
    return p


class LogCapture(logging.Handler):
    """Custom handler to capture log records for testing."""

    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self) -> list[str]:
        return [r.getMessage() for r in self.records]


@pytest.fixture
def log_capture(runtime):
    logger = logging.getLogger("invokeloop.runtime")
    handler = LogCapture()
    logger.addHandler(handler)
    yield handler
    logger.removeHandler(handler)
