"""Google Gemini provider implementation."""

import logging
import uuid
from typing import Optional, Sequence

from ..cost import CostStructure
from ..errors import ChatError, ErrorKind
from ..messages import (
    ChatMessage,
    ChatRole,
    Content,
    MultiContent,
    ToolCall,
    ToolRequest,
    ToolResult,
)
from ..tools.schema import EnumType, ToolDefinition
from .base import BaseProvider, EntryBuilder, ProviderConfig
from .registry import register_provider
from .response import ChatResponse

logger = logging.getLogger(__name__)

GEMINI_20_FLASH_LITE = "gemini-2.0-flash-lite"
GEMINI_20_FLASH = "gemini-2.0-flash"
GEMINI_25_FLASH = "gemini-2.5-flash-preview-04-17"

_MODEL_ALIASES = {"gemini-2.5-flash": GEMINI_25_FLASH}

_ROLE_FROM_WIRE = {
    "model": ChatRole.AGENT,
    "system": ChatRole.SYSTEM,
    "user": ChatRole.USER,
    "function": ChatRole.TOOL_RESPONSE,
}


def to_function_declaration(definition: ToolDefinition) -> dict:
    """Convert a tool definition into a Gemini ``function_declarations`` entry."""
    declaration: dict = {"name": definition.name}
    if definition.description is not None:
        declaration["description"] = definition.description
    if definition.parameters:
        properties = {}
        for p in definition.parameters:
            prop: dict = {"type": p.type.json_type}
            if p.description is not None:
                prop["description"] = p.description
            if isinstance(p.type, EnumType):
                prop["enum"] = list(p.type.literals)
            properties[p.name] = prop
        declaration["parameters"] = {
            "type": "object",
            "properties": properties,
            "required": definition.required,
        }
    return declaration


@register_provider("gemini")
class GeminiProvider(BaseProvider):
    """Google Gemini API provider."""

    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    RATE_TABLE = {
        GEMINI_20_FLASH_LITE: CostStructure.simple("0.075", "0.3"),
        GEMINI_20_FLASH: CostStructure.simple("0.15", "0.6"),
        GEMINI_25_FLASH: CostStructure.with_thought("0.15", "0.6", "3.5"),
    }

    def __init__(self, config: ProviderConfig, *args, **kwargs):
        super().__init__(config, *args, **kwargs)
        # OAuth tokens start with "ya29." and use Bearer auth
        # API keys use ?key= query param
        self._use_bearer = config.api_key.startswith("ya29.")

    @classmethod
    def model_name(cls, model: str) -> str:
        return _MODEL_ALIASES.get(model, model)

    def _auth_params(self) -> tuple[dict, dict]:
        """Return (headers, params) for authentication."""
        headers = {"Content-Type": "application/json"}
        if self._use_bearer:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
            return headers, {}
        return headers, {"key": self.config.api_key}

    def build_payload(self, messages: Sequence[ChatMessage]) -> dict:
        system, contents = to_gemini_content(messages)
        model = self.model_name(self.config.model)

        generation_config: dict = {}
        if self.config.temperature is not None:
            generation_config["temperature"] = self.config.temperature
        if self.config.top_p is not None:
            generation_config["topP"] = self.config.top_p
        if self.config.max_tokens:
            generation_config["maxOutputTokens"] = self.config.max_tokens
        if model == GEMINI_25_FLASH:
            generation_config["thinkingConfig"] = {"includeThoughts": False}

        payload: dict = {"contents": contents}
        if system is not None:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        if generation_config:
            payload["generationConfig"] = generation_config
        if self.tools:
            payload["tools"] = [{
                "function_declarations": [to_function_declaration(t) for t in self.tools],
            }]
        return payload

    async def send(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Run one generateContent call."""
        self.check_model()
        model = self.model_name(self.config.model)
        headers, params = self._auth_params()
        data = await self._post_json(
            f"{self.base_url}/{model}:generateContent",
            self.build_payload(messages),
            headers=headers,
            params=params,
        )

        meta = data.get("usageMetadata")
        if meta is None:
            raise ChatError("No usage metadata", ErrorKind.UNHANDLED)
        candidates = data.get("candidates")
        if candidates is None:
            raise ChatError("No candidates", ErrorKind.UNHANDLED)

        cost = self.cost_of(
            meta.get("promptTokenCount", 0),
            meta.get("candidatesTokenCount", 0),
            meta.get("thoughtsTokenCount", 0),
        )
        logger.debug("Gemini usage for %s: %s", model, meta)

        make_entry = EntryBuilder(cost, self.clock())
        entries = []
        for candidate in candidates:
            entries.extend(make_entry(m) for m in read_candidate(candidate))
        return ChatResponse(tuple(entries), cost)


def read_candidate(candidate: dict) -> list[ChatMessage]:
    """Turn one response candidate into messages.

    Text parts become ``Content`` messages; all function calls of the
    candidate are grouped into a single ``ToolCall``.
    """
    content = candidate.get("content")
    if content is None:
        raise ChatError("No content", ErrorKind.INVALID_REQUEST)
    wire_role = content.get("role")
    if wire_role is None:
        raise ChatError("No role", ErrorKind.INVALID_REQUEST)
    role = _ROLE_FROM_WIRE.get(wire_role)
    if role is None:
        raise ChatError(f"Unknown role: {wire_role}", ErrorKind.UNHANDLED)

    messages: list[ChatMessage] = []
    requests = []
    for part in content.get("parts") or []:
        if "functionCall" in part:
            call = part["functionCall"]
            request_id = call.get("id") or f"call_{uuid.uuid4().hex[:12]}"
            requests.append(ToolRequest(request_id, call["name"], call.get("args")))
        elif "text" in part:
            if not part.get("thought"):
                messages.append(Content(role, part["text"]))
        else:
            raise ChatError("No text", ErrorKind.INVALID_REQUEST)
    if requests:
        messages.append(ToolCall(tuple(requests)))
    return messages


def to_gemini_content(messages: Sequence[ChatMessage]) -> tuple[Optional[str], list[dict]]:
    """Split off a leading system message and convert the rest to ``contents``.

    Returns:
        ``(system_instruction, contents)``.
    """
    messages = list(messages)
    system = None
    if messages and isinstance(messages[0], Content) and messages[0].role == ChatRole.SYSTEM:
        system = messages[0].message
        messages = messages[1:]

    function_names: dict[str, str] = {}
    contents = []
    for message in messages:
        if isinstance(message, ToolCall):
            for r in message.requests:
                function_names[r.id] = r.function
        converted = _convert(message, function_names)
        if converted is not None:
            contents.append(converted)
    return system, contents


def _convert(message: ChatMessage, function_names: dict[str, str]) -> Optional[dict]:
    if isinstance(message, Content):
        role = message.role
        if role in (ChatRole.ADMIN, ChatRole.MARKER):
            return None
        if role in (ChatRole.TOOL, ChatRole.TOOL_OUTPUT):
            raise ChatError("Tool roles are not expected here!", ErrorKind.UNHANDLED)
        wire = {
            ChatRole.AGENT: "model",
            ChatRole.SYSTEM: "user",
            ChatRole.DEVELOPER: "user",
            ChatRole.USER: "user",
            ChatRole.TOOL_RESPONSE: "function",
        }.get(role)
        if wire is None:
            raise ChatError(f"Unknown role: {role}", ErrorKind.UNHANDLED)
        return {"role": wire, "parts": [{"text": message.message}]}

    if isinstance(message, ToolCall):
        return {
            "role": "model",
            "parts": [
                {"functionCall": {"id": r.id, "name": r.function, "args": r.arguments or {}}}
                for r in message.requests
            ],
        }

    if isinstance(message, ToolResult):
        response_id = message.response.id
        name = function_names.get(response_id)
        if name is None:
            raise ChatError(
                f"Tool result {response_id} does not answer any tool call", ErrorKind.INVALID_REQUEST,
            )
        return {
            "role": "user",
            "parts": [{
                "functionResponse": {
                    "id": response_id,
                    "name": name,
                    "response": {"result": message.response.response},
                },
            }],
        }

    if isinstance(message, MultiContent):
        raise ChatError("Multi-part content is not supported by the Gemini provider", ErrorKind.UNHANDLED)

    raise ChatError(f"Unknown message type: {type(message).__name__}", ErrorKind.UNHANDLED)
