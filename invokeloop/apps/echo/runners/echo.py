"""Echo runner: answers each invocation with its own body."""

import json

from invokeloop.core.context import InvocationContext
from invokeloop.core.payload import Payload
from invokeloop.core.runner import Runner


class Echo(Runner):
    """Echoes JSON invocations back, wrapped with invocation metadata.

    Bodies that are not valid JSON are reported as a ValueError failure
    by returning the error instead of raising it.
    """

    def __init__(self) -> None:
        self.handled = 0

    async def run(self, ctx: InvocationContext, payload: Payload) -> Exception | None:
        try:
            event = payload.json()
        except ValueError as e:
            return e

        self.handled += 1
        payload.logger.info(
            "Echoing invocation",
            extra={"request_id": payload.request_id, "remaining_s": round(ctx.remaining(), 3)},
        )
        await payload.respond(
            json.dumps(
                {
                    "request_id": payload.request_id,
                    "function_arn": payload.invoked_arn,
                    "event": event,
                }
            )
        )
        return None
