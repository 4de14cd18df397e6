"""Tests for invoking tools and executing tool requests."""

import asyncio
from datetime import date

import pytest

from chatbridge.errors import (
    ChatError,
    ErrorKind,
    MissingParameterError,
    ToolInvocationError,
    ToolReturnedNothingError,
    UnknownToolError,
)
from chatbridge.messages import ToolRequest, ToolResponse, ToolResult
from chatbridge.tools.catalog import ToolCatalog, ToolWrapper, ai_tool
from chatbridge.tools.executor import ToolExecutor, invoke


class Toolbox:
    @ai_tool
    def greet(self, name: str) -> str:
        """Greet someone."""
        return f"Hello, {name}!"

    @ai_tool
    async def slow_add(self, a: int, b: int) -> int:
        await asyncio.sleep(0)
        return a + b

    @ai_tool
    def fail(self, reason: str) -> str:
        raise ValueError(reason)

    @ai_tool
    def nothing(self) -> str:
        return None

    @ai_tool
    def today(self) -> date:
        return date(2025, 1, 2)

    @ai_tool
    def opaque(self) -> object:
        return object()


def _executor():
    return ToolExecutor(ToolCatalog.of(Toolbox()))


class TestInvoke:
    @pytest.mark.asyncio
    async def test_sync_tool(self):
        wrapper = ToolCatalog.of(Toolbox()).get("greet")
        assert await invoke(wrapper, ["Ada"]) == "Hello, Ada!"

    @pytest.mark.asyncio
    async def test_async_tool_is_awaited(self):
        wrapper = ToolCatalog.of(Toolbox()).get("slow_add")
        assert await invoke(wrapper, [2, 3]) == 5

    @pytest.mark.asyncio
    async def test_exception_is_wrapped(self):
        wrapper = ToolCatalog.of(Toolbox()).get("fail")
        with pytest.raises(ToolInvocationError) as exc:
            await invoke(wrapper, ["boom"])
        assert exc.value.kind == ErrorKind.UNHANDLED
        assert isinstance(exc.value.__cause__, ValueError)
        assert "boom" in str(exc.value)
        assert exc.value.traces

    @pytest.mark.asyncio
    async def test_none_result(self):
        wrapper = ToolCatalog.of(Toolbox()).get("nothing")
        with pytest.raises(ToolReturnedNothingError) as exc:
            await invoke(wrapper, [])
        assert exc.value.kind == ErrorKind.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        async def hang() -> str:
            await asyncio.sleep(10)
            return "late"

        wrapper = ToolWrapper.from_callable("hang", hang)
        task = asyncio.ensure_future(invoke(wrapper, []))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestToolExecutor:
    @pytest.mark.asyncio
    async def test_execute_returns_tool_result(self):
        result = await _executor().execute(ToolRequest("c1", "greet", {"name": "Ada"}))
        assert result == ToolResult(ToolResponse("c1", "Hello, Ada!"))

    @pytest.mark.asyncio
    async def test_result_is_json_value(self):
        result = await _executor().execute(ToolRequest("c2", "today"))
        assert result.response.response == "2025-01-02"

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        with pytest.raises(UnknownToolError) as exc:
            await _executor().execute(ToolRequest("c3", "launch", {}))
        assert exc.value.kind == ErrorKind.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_bind_error_is_traced(self):
        with pytest.raises(MissingParameterError) as exc:
            await _executor().execute(ToolRequest("c4", "greet", {}))
        assert exc.value.traces == ["binding arguments of greet"]

    @pytest.mark.asyncio
    async def test_unserializable_result(self):
        with pytest.raises(ChatError) as exc:
            await _executor().execute(ToolRequest("c5", "opaque"))
        assert exc.value.kind == ErrorKind.INVALID_RESPONSE

    def test_tool_names(self):
        executor = _executor()
        assert executor.has_tool("greet")
        assert not executor.has_tool("launch")
        assert "slow_add" in executor.tool_names
