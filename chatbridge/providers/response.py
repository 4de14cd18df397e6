"""Response container returned by every chat provider."""

from typing import NamedTuple

from ..cost import ChatCost
from ..messages import ChatEntry, ToolCall


class ChatResponse(NamedTuple):
    """Transcript entries produced by one call plus what the call cost.

    Unpacks as ``entries, cost = await provider.send(messages)``.
    """

    entries: tuple[ChatEntry, ...]
    cost: ChatCost = ChatCost.ZERO

    @property
    def messages(self) -> list:
        return [e.message for e in self.entries]

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [e.message for e in self.entries if isinstance(e.message, ToolCall)]

    def format_cost(self) -> str:
        """Human-readable cost summary."""
        return (
            f"{self.cost.input_cost:.4f} in / {self.cost.output_cost:.4f} out"
            f" = {self.cost.total:.4f}"
        )
