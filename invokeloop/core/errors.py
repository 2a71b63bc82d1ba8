"""Error kinds raised by the runtime API client."""

import httpx


class RuntimeClientError(Exception):
    """Base class for every error raised by invokeloop itself."""


class ConfigurationError(RuntimeClientError):
    """Raised when the runtime API address cannot be determined."""


class TransportError(RuntimeClientError):
    """Raised when the runtime API could not be reached at all."""


class ProtocolFormatError(RuntimeClientError):
    """Raised when a runtime API response is missing a required field."""


class AlreadyCompletedError(RuntimeClientError):
    """Raised on a second send attempt for the same invocation."""


class InvocationNotReadyError(RuntimeClientError):
    """Raised when sending for a payload that no fetch fully populated."""


class ProtocolStatusError(RuntimeClientError):
    """Raised when the runtime API answers outside the success range.

    Attributes:
        status_code: The HTTP status code returned by the runtime API.
        status: The status line, e.g. ``"503 Service Unavailable"``.
    """

    kind = "unexpected-status"

    def __init__(self, message: str, status_code: int = 0, status: str = "") -> None:
        self.status_code = status_code
        self.status = status
        super().__init__(message)


class ServerError(ProtocolStatusError):
    kind = "server-error"


class ClientError(ProtocolStatusError):
    kind = "client-error"


class UnexpectedStatusError(ProtocolStatusError):
    kind = "unexpected-status"


class HandlerPanic(RuntimeClientError):
    """Wraps anything a runner raised instead of returning.

    Attributes:
        runner_name: Type name of the runner that terminated abnormally.
        value: The raised object, also chained as ``__cause__``.
    """

    def __init__(self, runner_name: str, value: BaseException) -> None:
        self.runner_name = runner_name
        self.value = value
        if isinstance(value, Exception):
            message = f"{runner_name} error: {value}"
        else:
            message = f"{runner_name} panic: {value!r}"
        super().__init__(message)


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


def status_error(
    response: httpx.Response,
    prefix: str = "",
    expected: int | None = None,
) -> ProtocolStatusError | None:
    """Classify a runtime API response, returning None when it is acceptable.

    Args:
        response: The response to classify.
        prefix: Optional context prepended to the error message.
        expected: When given, any other 2xx status is treated as unexpected.
    """
    code = response.status_code
    status = _status_line(response)
    if code >= 500:
        cls, text = ServerError, f"runtime API returned server error: {status!r}"
    elif code >= 400:
        cls, text = ClientError, f"runtime API returned client error: {status!r}"
    elif code >= 300 or code < 200 or (expected is not None and code != expected):
        cls, text = UnexpectedStatusError, f"runtime API returned unexpected HTTP {status!r}"
    else:
        return None
    if prefix:
        text = f"{prefix}: {text}"
    return cls(text, status_code=code, status=status)
