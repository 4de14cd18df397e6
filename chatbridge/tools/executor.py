"""Execute tool calls and return results.

Provides a safe execution wrapper that converts anything a tool raises into
a structured ``ChatError`` for the resolution loop.
"""

import asyncio
import inspect
import logging
from typing import Any, Iterable, Union

from ..errors import ChatError, ToolInvocationError, ToolReturnedNothingError, UnknownToolError
from ..messages import ToolRequest, ToolResponse, ToolResult, to_json_value
from .catalog import ToolCatalog, ToolWrapper

logger = logging.getLogger(__name__)


async def invoke(wrapper: ToolWrapper, args: list) -> Any:
    """Run a bound tool and return its value.

    Awaitable results are awaited in place. Cancellation propagates
    unchanged; every other exception becomes ``ToolInvocationError``.

    Raises:
        ToolInvocationError: the tool raised.
        ToolReturnedNothingError: the tool produced None.
    """
    try:
        result = wrapper(*args)
        if inspect.isawaitable(result):
            result = await result
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug("Tool %s raised with args %r", wrapper.qualified_name, args, exc_info=True)
        raise ToolInvocationError(wrapper.qualified_name, e).trace(
            f"calling {wrapper.qualified_name} with args {args!r}"
        ) from e

    if result is None:
        raise ToolReturnedNothingError(wrapper.qualified_name)
    return result


class ToolExecutor:
    """Execute catalog tools by name for ``ToolRequest``s."""

    def __init__(self, tools: Union[ToolCatalog, Iterable[ToolWrapper]]):
        self._tools = tools if isinstance(tools, ToolCatalog) else ToolCatalog(tools)

    @property
    def catalog(self) -> ToolCatalog:
        return self._tools

    @property
    def tool_names(self) -> list[str]:
        return self._tools.tool_names

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    async def execute(self, request: ToolRequest) -> ToolResult:
        """Look up, bind and run one request.

        Returns:
            The ``ToolResult`` answering ``request.id``.

        Raises:
            ChatError: unknown tool, binding failure or tool failure.
        """
        wrapper = self._tools.get(request.function)
        if wrapper is None:
            raise UnknownToolError(request.function)

        try:
            args = wrapper.bind(request.arguments)
        except ChatError as e:
            raise e.trace(f"binding arguments of {request.function}")

        logger.debug("Calling tool %s (request %s)", request.function, request.id)
        result = await invoke(wrapper, args)
        try:
            payload = to_json_value(result)
        except ChatError as e:
            raise e.trace(f"serializing result of {request.function}")
        return ToolResult(ToolResponse(request.id, payload))
