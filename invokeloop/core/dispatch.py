"""Dispatch boundary between the loop and user runners.

``dispatch()`` runs a runner against a payload and turns every outcome into
exactly one terminal message for the runtime API:

- the runner answered itself: nothing more is sent
- the runner returned None: an empty success response is sent
- the runner returned an exception: a failure report is sent
- the runner raised: a failure report is sent, unless it had already answered

Only errors from sending itself (and a raise after the runner already
answered) propagate to the caller.
"""

import asyncio
import inspect
from typing import Any

from invokeloop.core.context import _current_request_id
from invokeloop.core.errors import HandlerPanic
from invokeloop.core.payload import Payload
from invokeloop.core.runner import Runner, RunResult, as_runner

PANICKED = "function invocation panicked"
FAILED = "function invocation failed"

# Signals that end the process rather than the invocation
_PASSTHROUGH = (KeyboardInterrupt, asyncio.CancelledError)


async def _invoke_runner(runner: Runner, payload: Payload) -> RunResult:
    """Invoke the runner, awaiting coroutines and validating the return value."""
    result = runner.run(payload.context, payload)
    if inspect.isawaitable(result):
        result = await result

    if result is None or isinstance(result, BaseException):
        return result
    return TypeError(
        f"Runner {runner.name} must return None or an exception, got {type(result).__name__}"
    )


async def dispatch(handler: Any, payload: Payload) -> None:
    """Run ``handler`` for ``payload`` under total failure containment.

    Args:
        handler: A Runner, an object with a ``run(ctx, payload)`` method, or
            a plain callable with the same signature. Sync or async.
        payload: A fully fetched payload.

    Raises:
        HandlerPanic: The runner raised after it had already answered.
        RuntimeClientError: Sending the terminal message failed.
    """
    runner = as_runner(handler)
    token = _current_request_id.set(payload.request_id)
    try:
        err = await _invoke_runner(runner, payload)
    except _PASSTHROUGH:
        raise
    except BaseException as e:
        panic = HandlerPanic(runner.name, e)
        panic.__cause__ = e
        if payload.done:
            raise panic from e
        await payload.fail_with_error(PANICKED, panic)
        return
    finally:
        _current_request_id.reset(token)

    if payload.done:
        return
    if err is None:
        await payload.respond(None)
        return
    await payload.fail_with_error(FAILED, err)
