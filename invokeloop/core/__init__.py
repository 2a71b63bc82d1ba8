"""Core components of the invokeloop runtime API client.

Types:
    Runtime: Connection to the runtime API; fetches invocations and runs the loop.
    Payload: One invocation and its single-response protocol.
    InvocationContext: Deadline-bound cancellation context handed to runners.
    Runner: Abstract base class for invocation handlers.
    Failure: Failure record reported to the runtime API.
    Backoff: Adaptive error backoff state.
    LoopStats: Statistics dataclass from a loop run.

Functions:
    dispatch: Run a runner against a payload under failure containment.
    get_request_id: Request id of the invocation being dispatched.
    load_settings: Load RuntimeSettings from the environment.

Errors:
    RuntimeClientError: Base class of every invokeloop error.
    TransportError, ProtocolStatusError (ServerError, ClientError,
    UnexpectedStatusError), ProtocolFormatError, AlreadyCompletedError,
    InvocationNotReadyError, HandlerPanic, ConfigurationError.
"""

from invokeloop.core.backoff import Backoff
from invokeloop.core.config import RuntimeSettings, load_settings
from invokeloop.core.context import InvocationContext, get_request_id
from invokeloop.core.dispatch import dispatch
from invokeloop.core.errors import (
    AlreadyCompletedError,
    ClientError,
    ConfigurationError,
    HandlerPanic,
    InvocationNotReadyError,
    ProtocolFormatError,
    ProtocolStatusError,
    RuntimeClientError,
    ServerError,
    TransportError,
    UnexpectedStatusError,
)
from invokeloop.core.failure import Failure
from invokeloop.core.payload import Payload
from invokeloop.core.runner import FunctionRunner, Runner
from invokeloop.core.runtime import LoopStats, Runtime

__all__ = [
    "Backoff",
    "Failure",
    "FunctionRunner",
    "InvocationContext",
    "LoopStats",
    "Payload",
    "Runner",
    "Runtime",
    "RuntimeSettings",
    "dispatch",
    "get_request_id",
    "load_settings",
    "AlreadyCompletedError",
    "ClientError",
    "ConfigurationError",
    "HandlerPanic",
    "InvocationNotReadyError",
    "ProtocolFormatError",
    "ProtocolStatusError",
    "RuntimeClientError",
    "ServerError",
    "TransportError",
    "UnexpectedStatusError",
]
