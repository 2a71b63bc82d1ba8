"""invokeloop - Async client loop for serverless runtime APIs."""

from invokeloop.core import (
    AlreadyCompletedError,
    Backoff,
    ClientError,
    ConfigurationError,
    Failure,
    FunctionRunner,
    HandlerPanic,
    InvocationContext,
    InvocationNotReadyError,
    LoopStats,
    Payload,
    ProtocolFormatError,
    ProtocolStatusError,
    Runner,
    Runtime,
    RuntimeClientError,
    RuntimeSettings,
    ServerError,
    TransportError,
    UnexpectedStatusError,
    dispatch,
    get_request_id,
    load_settings,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Runtime",
    "Payload",
    "InvocationContext",
    "Runner",
    "FunctionRunner",
    "Failure",
    "Backoff",
    "LoopStats",
    "dispatch",
    "get_request_id",
    # Configuration
    "RuntimeSettings",
    "load_settings",
    # Errors
    "RuntimeClientError",
    "TransportError",
    "ProtocolStatusError",
    "ServerError",
    "ClientError",
    "UnexpectedStatusError",
    "ProtocolFormatError",
    "AlreadyCompletedError",
    "InvocationNotReadyError",
    "HandlerPanic",
    "ConfigurationError",
    # Meta
    "__version__",
]
