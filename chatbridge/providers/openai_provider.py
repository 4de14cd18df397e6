"""OpenAI provider for GPT-4o and GPT-4.1 models.

Speaks the Chat Completions API directly over httpx. Supports custom
base_url for Azure/proxies.
"""

import base64
import json
import logging
from typing import Optional, Sequence

from ..cost import CostStructure
from ..errors import ChatError, ErrorKind, ProviderError
from ..messages import (
    ChatMessage,
    ChatRole,
    Content,
    Image,
    ImageUri,
    MultiContent,
    Text,
    ToolCall,
    ToolRequest,
    ToolResult,
)
from ..tools.schema import EnumType, ToolDefinition, ToolParameter
from .base import BaseProvider, EntryBuilder
from .registry import register_provider
from .response import ChatResponse

logger = logging.getLogger(__name__)

GPT_4O_MINI = "gpt-4o-mini"
GPT_41_MINI = "gpt-4.1-mini"
GPT_41_NANO = "gpt-4.1-nano"
GPT_4O = "gpt-4o"
GPT_41 = "gpt-4.1"

_ROLE_MAP = {
    ChatRole.AGENT: "assistant",
    ChatRole.SYSTEM: "system",
    ChatRole.USER: "user",
    ChatRole.DEVELOPER: "user",
}


def _parameter_schema(parameter: ToolParameter) -> dict:
    value = {"type": parameter.type.json_type}
    if parameter.description is not None:
        value["description"] = parameter.description
    if isinstance(parameter.type, EnumType):
        value["enum"] = list(parameter.type.literals)
    return value


def to_chat_tool(definition: ToolDefinition) -> dict:
    """Convert a tool definition into a Chat Completions ``tools`` entry.

    Strict mode is only requested when every parameter is required, since
    strict schemas cannot express optional properties.
    """
    function: dict = {"name": definition.name}
    if definition.description is not None:
        function["description"] = definition.description

    if definition.parameters:
        required = definition.required
        parameters: dict = {
            "type": "object",
            "properties": {p.name: _parameter_schema(p) for p in definition.parameters},
            "additionalProperties": False,
        }
        if required:
            parameters["required"] = required
        function["parameters"] = parameters
        function["strict"] = len(required) == len(definition.parameters)

    return {"type": "function", "function": function}


@register_provider("openai")
class OpenAIProvider(BaseProvider):
    """OpenAI API provider."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    RATE_TABLE = {
        GPT_4O_MINI: CostStructure.simple("0.15", "0.6"),
        GPT_41_MINI: CostStructure.simple("0.4", "1.6"),
        GPT_41_NANO: CostStructure.simple("0.1", "0.4"),
        GPT_4O: CostStructure.simple("2.5", "10"),
        GPT_41: CostStructure.simple("2", "8"),
    }

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, messages: list) -> dict:
        payload: dict = {"model": self.config.model, "messages": messages}
        if self.config.temperature is not None:
            payload["temperature"] = self.config.temperature
        if self.config.top_p is not None:
            payload["top_p"] = self.config.top_p
        if self.config.max_tokens:
            payload["max_tokens"] = self.config.max_tokens
        if self.tools:
            payload["tools"] = [to_chat_tool(t) for t in self.tools]
        return payload

    async def send(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Run one Chat Completions call."""
        self.check_model()
        history = []
        for message in messages:
            converted = await self.convert_message(message)
            if converted is not None:
                history.append(converted)

        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            self.build_payload(history),
            headers=self._headers(),
        )

        usage = data.get("usage") or {}
        cost = self.cost_of(usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0))
        logger.debug("OpenAI usage for %s: %s", self.config.model, usage)

        choices = data.get("choices") or []
        if not choices:
            raise ChatError("OpenAI response has no choices", ErrorKind.INVALID_RESPONSE)

        make_entry = EntryBuilder(cost, self.clock())
        entries = tuple(make_entry(m) for m in read_choice(choices[0]))
        return ChatResponse(entries, cost)

    async def convert_message(self, message: ChatMessage) -> Optional[dict]:
        """Convert one message to the wire format; None for host-only messages."""
        if isinstance(message, Content):
            role = self._role(message.role)
            return {"role": role, "content": message.message} if role else None

        if isinstance(message, MultiContent):
            role = self._role(message.role)
            if role is None:
                return None
            parts = [await self._convert_part(p) for p in message.parts]
            return {"role": role, "content": parts}

        if isinstance(message, ToolCall):
            return {
                "role": "assistant",
                "tool_calls": [
                    {
                        "id": r.id,
                        "type": "function",
                        "function": {"name": r.function, "arguments": json.dumps(r.arguments or {})},
                    }
                    for r in message.requests
                ],
            }

        if isinstance(message, ToolResult):
            return {
                "role": "tool",
                "tool_call_id": message.response.id,
                "content": json.dumps(message.response.response),
            }

        raise ChatError(f"Unknown message type: {type(message).__name__}", ErrorKind.UNHANDLED)

    @staticmethod
    def _role(role: ChatRole) -> Optional[str]:
        if role.is_internal:
            return None
        if role in (ChatRole.TOOL, ChatRole.TOOL_RESPONSE):
            raise ChatError("Tool roles are not expected in content messages", ErrorKind.UNHANDLED)
        return _ROLE_MAP[role]

    async def _convert_part(self, part) -> dict:
        if isinstance(part, Text):
            return {"type": "text", "text": part.content}
        if isinstance(part, Image):
            return _image_part(part.media_type, part.content)
        if isinstance(part, ImageUri):
            media_type, data = await part.request.retrieve(self.client)
            return _image_part(media_type, data)
        raise ChatError(f"Unsupported content part: {type(part).__name__}", ErrorKind.UNHANDLED)


def _image_part(media_type: str, data: bytes) -> dict:
    encoded = base64.b64encode(data).decode("ascii")
    return {"type": "image_url", "image_url": {"url": f"data:{media_type};base64,{encoded}"}}


def read_choice(choice: dict) -> list[ChatMessage]:
    """Turn one completion choice into messages, by finish reason.

    Raises:
        ProviderError: truncated, filtered or deprecated function-call output.
        ChatError: unknown finish reason (UNHANDLED).
    """
    finish_reason = choice.get("finish_reason")
    message = choice.get("message") or {}

    if finish_reason == "stop":
        content = message.get("content")
        if isinstance(content, list):
            return [
                Content(ChatRole.AGENT, part.get("text", ""))
                for part in content if part.get("type") == "text"
            ]
        return [Content(ChatRole.AGENT, content)] if content else []

    if finish_reason == "tool_calls":
        requests = []
        for tc in message.get("tool_calls") or []:
            fn = tc.get("function", {})
            try:
                arguments = json.loads(fn.get("arguments") or "null")
            except json.JSONDecodeError as e:
                raise ChatError(
                    f"Tool call {tc.get('id')} has malformed arguments: {e}",
                    ErrorKind.INVALID_RESPONSE,
                ) from e
            requests.append(ToolRequest(tc["id"], fn.get("name", ""), arguments))
        return [ToolCall(tuple(requests))]

    if finish_reason == "length":
        raise ProviderError("Incomplete model output due to MaxTokens parameter or token limit exceeded.")
    if finish_reason == "content_filter":
        raise ProviderError("Omitted content due to a content filter flag.")
    if finish_reason == "function_call":
        raise ProviderError("Deprecated in favor of tool calls.")

    raise ChatError(f"Unknown finish reason: {finish_reason}", ErrorKind.UNHANDLED)
