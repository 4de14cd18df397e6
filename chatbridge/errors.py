"""Structured errors raised by the resolver, binder, executor and providers.

Every failure a caller can see is a ``ChatError`` carrying an ``ErrorKind``
and a message. Phase notes are appended with ``trace()`` as the error travels
outward, without changing its kind.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Error taxonomy shared by every component."""

    INVALID_REQUEST = "invalid-request"
    INVALID_RESPONSE = "invalid-response"
    VALIDATION_FAILED = "validation-failed"
    SERVICE_ERROR = "service-error"
    UNHANDLED = "unhandled"
    NOT_FOUND = "not-found"
    TIMEOUT = "timeout"


class ChatError(Exception):
    """A failure with a kind, a message and the phases it passed through."""

    default_kind = ErrorKind.UNHANDLED

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.traces: list[str] = []

    def trace(self, note: str) -> "ChatError":
        """Record the phase that surfaced this error and return it for re-raising."""
        self.traces.append(note)
        return self

    def __str__(self) -> str:
        text = f"[{self.kind.value}] {self.message}"
        if self.traces:
            text += f" (during: {' <- '.join(self.traces)})"
        return text


class BindError(ChatError):
    """Tool arguments could not be bound onto the function signature."""

    default_kind = ErrorKind.INVALID_REQUEST


class MissingParameterError(BindError):
    def __init__(self, parameter: str):
        super().__init__(f"Missing parameter: {parameter}")
        self.parameter = parameter


class InvalidEnumValueError(BindError):
    def __init__(self, parameter: str, value: Any):
        super().__init__(f"Invalid enum value for parameter '{parameter}': {value!r}")
        self.parameter = parameter
        self.value = value


class ParameterTypeError(BindError):
    """A JSON number does not fit the numeric type the parameter declares."""

    def __init__(self, parameter: str, value: Any, expected: str):
        super().__init__(
            f"Parameter '{parameter}' expects {expected}, got {value!r}"
        )
        self.parameter = parameter
        self.value = value


class UnknownToolError(ChatError):
    default_kind = ErrorKind.INVALID_REQUEST

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolInvocationError(ChatError):
    """A tool raised while running. The original exception is ``__cause__``."""

    default_kind = ErrorKind.UNHANDLED

    def __init__(self, tool: str, error: BaseException):
        super().__init__(f"Tool {tool} failed: {type(error).__name__}: {error}")
        self.tool = tool


class ToolReturnedNothingError(ChatError):
    default_kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, tool: str):
        super().__init__(f"Tool {tool} returned nothing")
        self.tool = tool


class ProviderError(ChatError):
    """The upstream model service failed or refused the request."""

    default_kind = ErrorKind.SERVICE_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message, kind)
        self.status_code = status_code


class ToolConfigurationError(TypeError):
    """A host function cannot be exposed as a tool.

    Raised while the catalog is being built, never during a conversation.
    """
