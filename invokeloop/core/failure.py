"""Failure record reported to the runtime API."""

import traceback

from pydantic import BaseModel, Field


class Failure(BaseModel):
    """Immutable description of a failed invocation.

    Serialized with the runtime API's field names::

        {"errorMessage": "...", "errorType": "...", "stackTrace": ["..."]}

    Attributes:
        message: Human readable description of the failure.
        type: Type tag, normally the exception class name.
        stack_trace: Optional formatted stack frames, wrapping exception first.
    """

    message: str = Field(default="", alias="errorMessage")
    type: str = Field(default="", alias="errorType")
    stack_trace: list[str] = Field(default_factory=list, alias="stackTrace")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @classmethod
    def from_exception(cls, err: BaseException, description: str = "") -> "Failure":
        """Build a Failure whose type tag is the exception's class name."""
        message = f"{description}: {err}" if description else str(err)
        return cls(
            message=message,
            type=type(err).__name__,
            stack_trace=format_stack_trace(err),
        )

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


def format_stack_trace(err: BaseException) -> list[str]:
    """Return one string per traceback frame, following ``__cause__`` chains."""
    frames: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if current.__traceback__ is not None:
            frames.extend(
                line.rstrip("\n") for line in traceback.format_tb(current.__traceback__)
            )
        current = current.__cause__
    return frames
