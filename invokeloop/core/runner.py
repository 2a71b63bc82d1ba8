"""Runner contract for invocation handlers."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from invokeloop.core.context import InvocationContext
from invokeloop.core.payload import Payload

RunResult = BaseException | None

RunningFunc = Callable[[InvocationContext, Payload], RunResult | Awaitable[RunResult]]


class Runner(ABC):
    """Base class for invocation handlers.

    A runner may answer explicitly through ``payload.respond()`` or
    ``payload.fail()``. If it returns without doing so, returning None
    reports an empty success and returning an exception reports a failure.
    Raising is contained by the dispatch boundary and reported as a failure.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def run(
        self,
        ctx: InvocationContext,
        payload: Payload,
    ) -> RunResult | Awaitable[RunResult]:
        """Handle one invocation.

        Args:
            ctx: Deadline-bound context of the invocation.
            payload: The invocation, also used to send its response.

        Returns:
            None, an exception instance, or an awaitable resolving to either.
        """
        ...


class FunctionRunner(Runner):
    """Adapts a plain ``(ctx, payload)`` callable to the Runner contract."""

    def __init__(self, func: RunningFunc, name: str | None = None) -> None:
        self.func = func
        self._name = name or getattr(func, "__qualname__", type(func).__name__)

    @property
    def name(self) -> str:
        return self._name

    def run(self, ctx: InvocationContext, payload: Payload) -> RunResult | Awaitable[RunResult]:
        return self.func(ctx, payload)


def as_runner(handler: Any) -> Runner:
    """Return ``handler`` as a Runner.

    Accepts Runner instances, any object with a callable ``run`` attribute,
    or a plain callable.
    """
    if isinstance(handler, Runner):
        return handler
    run = getattr(handler, "run", None)
    if callable(run):
        return FunctionRunner(run, name=type(handler).__name__)
    if callable(handler):
        return FunctionRunner(handler)
    raise TypeError(f"handler must be a Runner or callable, got {type(handler).__name__}")
