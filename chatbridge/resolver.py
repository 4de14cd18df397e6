"""Tool-calling resolution loop.

Wraps a chat provider so that tool calls requested by the model are executed
and answered automatically:

    round 1:  provider(history)                      -> entries1, cost1
    tools:    run every ToolRequest concurrently     -> tool result entries
    round 2:  provider(history + round 1 + results)  -> entries2, cost2

The result is ``entries1 + tool results + entries2`` with ``cost1 + cost2``.
At most one tool round trip happens per ``send``; callers that want chained
tool use call ``send`` again with the extended history.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence, Union

from .cost import ChatCost
from .errors import ChatError, ErrorKind
from .messages import ChatEntry, ChatMessage, ToolRequest, ToolResult
from .providers.base import ChatFunc, ChatProvider, as_provider
from .providers.response import ChatResponse
from .tools.catalog import ToolCatalog, ToolWrapper
from .tools.executor import ToolExecutor
from .utils.time import utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ChatResolver(ChatProvider):
    """A ``ChatProvider`` that resolves one round of tool calls.

    Args:
        chat: The underlying provider, or an ``async def chat(messages)``.
        tools: Catalog (or wrappers) the model may call.
        clock: Timestamp source for tool result entries.
        timeout: Seconds allowed for a whole resolution, None for no limit.
    """

    def __init__(
        self,
        chat: Union[ChatProvider, ChatFunc],
        tools: Union[ToolCatalog, Iterable[ToolWrapper]] = (),
        clock: Optional[Clock] = None,
        timeout: Optional[float] = None,
    ):
        self.chat = as_provider(chat)
        self.executor = ToolExecutor(tools)
        self.clock = clock or utc_now
        self.timeout = timeout

    @property
    def catalog(self) -> ToolCatalog:
        return self.executor.catalog

    async def send(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Resolve the conversation, executing any requested tools.

        Raises:
            ChatError: provider failure, unknown tool, binding or tool failure,
                or TIMEOUT when the resolution exceeds ``timeout``.
            asyncio.CancelledError: the caller cancelled the resolution.
        """
        if self.timeout is None:
            return await self._resolve(messages)
        try:
            return await asyncio.wait_for(self._resolve(messages), self.timeout)
        except asyncio.TimeoutError:
            raise ChatError(
                f"Resolution did not finish within {self.timeout}s", ErrorKind.TIMEOUT,
            ) from None

    async def _resolve(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        history = tuple(messages)

        response = await self._call_provider(history)
        requests = [r for call in response.tool_calls for r in call.requests]
        if not requests:
            return response
        entries, cost = response

        logger.debug("Resolving %d tool request(s): %s",
                     len(requests), [r.function for r in requests])
        try:
            results = await self._run_tools(requests)
        except ChatError as e:
            raise e.trace("tool phase")

        now = self.clock()
        tool_entries = tuple(ChatEntry(now, r, admin=None, cost=ChatCost.ZERO) for r in results)
        continuation = history + tuple(e.message for e in entries) + tuple(results)

        try:
            entries2, cost2 = await self._call_provider(continuation)
        except ChatError as e:
            raise e.trace("continuation call")

        return ChatResponse(tuple(entries) + tool_entries + tuple(entries2), cost + cost2)

    async def _call_provider(self, messages: tuple) -> ChatResponse:
        try:
            return await self.chat.send(messages)
        except ChatError:
            raise
        except Exception as e:
            raise ChatError(f"Provider failed: {type(e).__name__}: {e}", ErrorKind.UNHANDLED) from e

    async def _run_tools(self, requests: list[ToolRequest]) -> list[ToolResult]:
        """Run all requests concurrently; results keep the request order.

        The first failure cancels the remaining tasks and is re-raised.
        """
        tasks = [asyncio.ensure_future(self.executor.execute(r)) for r in requests]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


def create_resolver(
    chat: Union[ChatProvider, ChatFunc],
    tools: Union[ToolCatalog, Iterable[ToolWrapper]] = (),
    clock: Optional[Clock] = None,
    timeout: Optional[float] = None,
) -> ChatResolver:
    """Wrap ``chat`` with automatic tool execution."""
    return ChatResolver(chat, tools, clock=clock, timeout=timeout)
