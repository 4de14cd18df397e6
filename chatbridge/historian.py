"""Running conversation history on top of any chat provider."""

import logging
from typing import Iterable, Optional, Union

from .errors import ChatError
from .messages import ChatMessage, ChatRole, Content
from .providers.base import ChatFunc, ChatProvider, as_provider
from .providers.response import ChatResponse

logger = logging.getLogger(__name__)


class Historian:
    """Keeps the message history of one conversation.

    Each ``invoke`` appends the new message, sends a snapshot of the whole
    history and, on success, appends the response messages. On failure the
    new message stays in the history so the caller can retry.
    """

    def __init__(
        self,
        chat: Union[ChatProvider, ChatFunc],
        entries: Optional[Iterable[ChatMessage]] = None,
    ):
        self.chat = as_provider(chat)
        self._history: list[ChatMessage] = list(entries or [])

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        return tuple(self._history)

    async def invoke(
        self,
        message: Union[str, ChatMessage],
        role: ChatRole = ChatRole.USER,
    ) -> ChatResponse:
        if isinstance(message, str):
            message = Content(role, message)

        self._history.append(message)
        try:
            response = await self.chat.send(tuple(self._history))
        except ChatError as e:
            logger.debug("Conversation turn failed: %s", e)
            raise e.trace("historian")

        self._history.extend(entry.message for entry in response.entries)
        return response
