"""Conversation data model: roles, messages, content parts and entries.

Messages form a closed hierarchy (``Content``, ``MultiContent``, ``ToolCall``,
``ToolResult``). Every consumer matches on the concrete class and raises
``ChatError(UNHANDLED)`` for anything else. The JSON codec at the bottom
keeps the ``type`` discriminators of existing transcripts.
"""

import base64
import dataclasses
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

import httpx

from .cost import ChatCost
from .errors import ChatError, ErrorKind, ProviderError
from .utils.time import parse_timestamp

JsonValue = Any


class ChatRole(str, Enum):
    SYSTEM = "system"
    TOOL = "tool"
    TOOL_RESPONSE = "tool-response"
    AGENT = "agent"
    USER = "user"
    DEVELOPER = "developer"

    # Host-side annotations, never sent to a provider
    MARKER = "marker"
    ADMIN = "admin"
    TOOL_OUTPUT = "tool-output"

    @property
    def is_internal(self) -> bool:
        return self in (ChatRole.MARKER, ChatRole.ADMIN, ChatRole.TOOL_OUTPUT)


# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WebRequestData:
    """Describes how to fetch binary content referenced by URI."""

    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)

    async def retrieve(self, client: httpx.AsyncClient) -> tuple[str, bytes]:
        """Fetch the content and return ``(media_type, data)``."""
        try:
            response = await client.request(self.method, self.url, headers=dict(self.headers))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Fetching {self.url} failed: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"Fetching {self.url} failed: {e}") from e

        media_type = response.headers.get("content-type", "application/octet-stream")
        return media_type.split(";")[0].strip(), response.content


class ContentPart:
    """Base class of the typed parts inside a ``MultiContent`` message."""


@dataclass(frozen=True)
class Text(ContentPart):
    content: str


@dataclass(frozen=True)
class Image(ContentPart):
    content: bytes
    media_type: str


@dataclass(frozen=True)
class Audio(ContentPart):
    content: bytes
    media_type: str


@dataclass(frozen=True)
class File(ContentPart):
    content: bytes
    media_type: str
    file_name: str


@dataclass(frozen=True)
class ImageUri(ContentPart):
    request: WebRequestData


@dataclass(frozen=True)
class AudioUri(ContentPart):
    request: WebRequestData


@dataclass(frozen=True)
class FileUri(ContentPart):
    request: WebRequestData
    file_name: str


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolRequest:
    """A model's request to run ``function`` with JSON ``arguments``."""

    id: str
    function: str
    arguments: Optional[JsonValue] = None


@dataclass(frozen=True)
class ToolResponse:
    """The JSON result answering the ``ToolRequest`` with the same id."""

    id: str
    response: JsonValue


class ChatMessage:
    """Base class of all conversation messages."""


@dataclass(frozen=True)
class Content(ChatMessage):
    role: ChatRole
    message: str


@dataclass(frozen=True)
class MultiContent(ChatMessage):
    role: ChatRole
    parts: tuple[ContentPart, ...]

    def __post_init__(self):
        object.__setattr__(self, "parts", tuple(self.parts))


@dataclass(frozen=True)
class ToolCall(ChatMessage):
    requests: tuple[ToolRequest, ...]

    def __post_init__(self):
        object.__setattr__(self, "requests", tuple(self.requests))


@dataclass(frozen=True)
class ToolResult(ChatMessage):
    response: ToolResponse


@dataclass(frozen=True)
class ChatEntry:
    """One transcript line: a message, when it happened and what it cost."""

    timestamp: datetime
    message: ChatMessage
    admin: Optional[str] = None
    cost: ChatCost = ChatCost.ZERO


# ---------------------------------------------------------------------------
# JSON codec
# ---------------------------------------------------------------------------

_PART_TAGS = {
    Text: "text",
    Image: "image",
    Audio: "audio",
    File: "file",
    ImageUri: "image-uri",
    AudioUri: "audio-uri",
    FileUri: "file-uri",
}

_MESSAGE_TAGS = {
    Content: "content",
    MultiContent: "multi-content",
    ToolCall: "tool-call",
    ToolResult: "tool-result",
}


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _request_to_dict(request: WebRequestData) -> dict:
    return {"url": request.url, "method": request.method, "headers": dict(request.headers)}


def _request_from_dict(data: Mapping[str, Any]) -> WebRequestData:
    return WebRequestData(
        url=data["url"],
        method=data.get("method", "GET"),
        headers=dict(data.get("headers") or {}),
    )


def part_to_dict(part: ContentPart) -> dict:
    tag = _PART_TAGS.get(type(part))
    if tag is None:
        raise ChatError(f"Unknown content part: {type(part).__name__}", ErrorKind.UNHANDLED)

    data: dict = {"type": tag}
    if isinstance(part, Text):
        data["content"] = part.content
    elif isinstance(part, (Image, Audio, File)):
        data["content"] = _b64(part.content)
        data["mediaType"] = part.media_type
    else:
        data["request"] = _request_to_dict(part.request)
    if isinstance(part, (File, FileUri)):
        data["fileName"] = part.file_name
    return data


def part_from_dict(data: Mapping[str, Any]) -> ContentPart:
    tag = data.get("type")
    if tag == "text":
        return Text(data["content"])
    if tag in ("image", "audio"):
        cls = Image if tag == "image" else Audio
        return cls(base64.b64decode(data["content"]), data["mediaType"])
    if tag == "file":
        return File(base64.b64decode(data["content"]), data["mediaType"], data["fileName"])
    if tag == "image-uri":
        return ImageUri(_request_from_dict(data["request"]))
    if tag == "audio-uri":
        return AudioUri(_request_from_dict(data["request"]))
    if tag == "file-uri":
        return FileUri(_request_from_dict(data["request"]), data["fileName"])
    raise ChatError(f"Unknown content part type: {tag!r}", ErrorKind.UNHANDLED)


def message_to_dict(message: ChatMessage) -> dict:
    tag = _MESSAGE_TAGS.get(type(message))
    if tag is None:
        raise ChatError(f"Unknown message type: {type(message).__name__}", ErrorKind.UNHANDLED)

    if isinstance(message, Content):
        return {"type": tag, "role": message.role.value, "message": message.message}
    if isinstance(message, MultiContent):
        return {
            "type": tag,
            "role": message.role.value,
            "message": [part_to_dict(p) for p in message.parts],
        }
    if isinstance(message, ToolCall):
        return {
            "type": tag,
            "requests": [
                {"id": r.id, "function": r.function, "arguments": r.arguments}
                for r in message.requests
            ],
        }
    return {
        "type": tag,
        "response": {"id": message.response.id, "response": message.response.response},
    }


def message_from_dict(data: Mapping[str, Any]) -> ChatMessage:
    tag = data.get("type")
    try:
        if tag == "content":
            return Content(ChatRole(data["role"]), data["message"])
        if tag == "multi-content":
            return MultiContent(
                ChatRole(data["role"]),
                tuple(part_from_dict(p) for p in data["message"]),
            )
        if tag == "tool-call":
            return ToolCall(tuple(
                ToolRequest(r["id"], r["function"], r.get("arguments"))
                for r in data["requests"]
            ))
        if tag == "tool-result":
            response = data["response"]
            return ToolResult(ToolResponse(response["id"], response.get("response")))
    except (KeyError, ValueError) as e:
        raise ChatError(f"Malformed {tag} message: {e}", ErrorKind.INVALID_REQUEST) from e
    raise ChatError(f"Unknown message type: {tag!r}", ErrorKind.UNHANDLED)


def entry_to_dict(entry: ChatEntry) -> dict:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "message": message_to_dict(entry.message),
        "admin": entry.admin,
        "cost": {
            "input": str(entry.cost.input_cost),
            "output": str(entry.cost.output_cost),
        },
    }


def entry_from_dict(data: Mapping[str, Any]) -> ChatEntry:
    cost = data.get("cost") or {}
    return ChatEntry(
        timestamp=parse_timestamp(data["timestamp"]),
        message=message_from_dict(data["message"]),
        admin=data.get("admin"),
        cost=ChatCost(Decimal(str(cost.get("input", 0))), Decimal(str(cost.get("output", 0)))),
    )


def dump_transcript(entries: Sequence[ChatEntry], **kwargs) -> str:
    """Serialize a transcript to a JSON string."""
    return json.dumps([entry_to_dict(e) for e in entries], **kwargs)


def load_transcript(text: str) -> list[ChatEntry]:
    return [entry_from_dict(item) for item in json.loads(text)]


def to_json_value(value: Any) -> JsonValue:
    """Convert a tool's return value into plain JSON data.

    Raises:
        ChatError: INVALID_RESPONSE when the value has no JSON form.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Enum):
        return to_json_value(value.value)
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return _b64(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json_value(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(v) for v in value]
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_json_value(to_dict())
    raise ChatError(
        f"Cannot convert {type(value).__name__} to JSON", ErrorKind.INVALID_RESPONSE,
    )


