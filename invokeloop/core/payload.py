"""Invocation payload and its single-response protocol.

A Payload holds one invocation fetched from the runtime API. Exactly one
terminal outcome may be delivered for it: once any send reaches the runtime
API and its response status arrives, the payload is complete and every further
send raises AlreadyCompletedError without touching the network.

The loop reuses a single Payload; ``reset()`` prepares it for the next fetch.
"""

import asyncio
import io
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import IO, TYPE_CHECKING, Any, Union

import httpx

from invokeloop.core.context import InvocationContext
from invokeloop.core.errors import (
    AlreadyCompletedError,
    InvocationNotReadyError,
    TransportError,
    status_error,
)
from invokeloop.core.failure import Failure

if TYPE_CHECKING:
    from invokeloop.core.runtime import Runtime

ERROR_TYPE_HEADER = "Lambda-Runtime-Function-Error-Type"

_CHUNK_SIZE = 64 * 1024

Body = Union[bytes, bytearray, memoryview, str, IO[bytes], Iterable[bytes], AsyncIterable[bytes]]


async def _iterate_sync(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def _iterate_file(stream: IO[bytes]) -> AsyncIterator[bytes]:
    while chunk := stream.read(_CHUNK_SIZE):
        yield chunk


def _wrap_body(body: Body | None) -> bytes | AsyncIterable[bytes]:
    """Prepare a response body for sending.

    Sources that know their size are returned as bytes so a Content-Length is
    advertised; everything else is streamed with an unknown length.
    """
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, io.BytesIO):
        return body.read()
    if hasattr(body, "read"):
        return _iterate_file(body)
    if isinstance(body, AsyncIterable):
        return body
    if isinstance(body, Iterable):
        return _iterate_sync(body)
    raise TypeError(f"unsupported response body type: {type(body).__name__}")


class Payload:
    """A single invocation and the means to answer it.

    Attributes:
        context: Deadline-bound context for the current invocation.
        request_id: Opaque request id, unique per invocation.
        invoked_arn: Identifier of the invoked function resource.
        trace_id: Distributed tracing header value.
        body: Raw invocation payload bytes.
        logger: Logger of the loop that fetched this payload.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._runtime: "Runtime | None" = None
        self._done = False
        self.context: InvocationContext | None = None
        self.request_id = ""
        self.invoked_arn = ""
        self.trace_id = ""
        self.body = b""
        self.logger = logger or logging.getLogger("invokeloop.runtime")

    def __repr__(self) -> str:
        return f"Payload(request_id={self.request_id!r}, done={self._done})"

    @property
    def done(self) -> bool:
        """True once a response or failure reached the runtime API."""
        return self._done

    def reset(self) -> None:
        """Make the payload ready for the next fetch."""
        if self.context is not None:
            self.context.cancel()
        self.context = None
        self._runtime = None
        self._done = False
        self.request_id = ""
        self.invoked_arn = ""
        self.trace_id = ""
        self.body = b""

    def bind(self, runtime: "Runtime") -> None:
        self._runtime = runtime

    def json(self) -> Any:
        """Decode the invocation body as JSON."""
        return json.loads(self.body)

    def _url(self, suffix: str) -> str:
        return f"{self._runtime.endpoint}/invocation/{self.request_id}/{suffix}"

    async def _send(self, suffix: str, headers: dict[str, str] | None, body: Body | None) -> None:
        if self._done:
            raise AlreadyCompletedError("payload is marked as done, cannot send another response")
        if self._runtime is None:
            raise InvocationNotReadyError("payload was not populated by a successful fetch")
        if not self.request_id:
            raise InvocationNotReadyError("payload has an empty request id")

        runtime = self._runtime
        request = runtime.response_client.build_request(
            "POST",
            self._url(suffix),
            headers=headers,
            content=_wrap_body(body),
        )
        response: httpx.Response | None = None
        try:
            async with asyncio.timeout(runtime.response_timeout):
                response = await runtime.response_client.send(request, stream=True)
                # The outcome is delivered once the status line arrives.
                self._done = True
                await response.aread()
        except (httpx.TransportError, TimeoutError) as e:
            if response is None:
                raise TransportError(f"unable to send response: {e!r}") from e
            await response.aclose()
            self.logger.warning(
                f"Could not read runtime API reply body: {e!r}",
                extra={"request_id": self.request_id, "status_code": response.status_code},
            )

        error = status_error(response, prefix="runtime rejected response")
        if error is not None:
            raise error

    async def respond(self, body: Body | None = None) -> None:
        """Send a success response for this invocation.

        Args:
            body: Response body. bytes, str and in-memory buffers are sent
                with a known length; file objects and iterables of bytes are
                streamed. None sends an empty body.
        """
        await self._send("response", None, body)

    async def fail(self, error_type: str = "", detail: Failure | None = None) -> None:
        """Send a failure report for this invocation.

        Args:
            error_type: Value of the error-type header; omitted when empty.
            detail: Failure record sent as the JSON body; empty body when None.
        """
        headers = {}
        if error_type:
            headers[ERROR_TYPE_HEADER] = error_type
        body = detail.to_json() if detail is not None else None
        await self._send("error", headers, body)

    async def fail_with_error(self, description: str, err: BaseException) -> None:
        """Report ``err`` as the failure, prefixed by ``description`` when given."""
        failure = Failure.from_exception(err, description)
        await self.fail(failure.type, failure)
