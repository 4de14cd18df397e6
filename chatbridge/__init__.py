"""chatbridge - one async contract over many chat models, with tool calling."""

__version__ = "0.1.0"

from .cost import ChatCost, CostStructure, calc_cost
from .errors import ChatError, ErrorKind, ToolConfigurationError
from .historian import Historian
from .messages import (
    ChatEntry,
    ChatMessage,
    ChatRole,
    Content,
    MultiContent,
    ToolCall,
    ToolRequest,
    ToolResponse,
    ToolResult,
)
from .providers import ChatProvider, ChatResponse, ProviderConfig
from .resolver import ChatResolver, create_resolver
from .tools import ToolCatalog, ToolDefinition, ToolWrapper, ai_tool, tools_from

__all__ = [
    "__version__",
    "ChatCost",
    "CostStructure",
    "calc_cost",
    "ChatError",
    "ErrorKind",
    "ToolConfigurationError",
    "Historian",
    "ChatEntry",
    "ChatMessage",
    "ChatRole",
    "Content",
    "MultiContent",
    "ToolCall",
    "ToolRequest",
    "ToolResponse",
    "ToolResult",
    "ChatProvider",
    "ChatResponse",
    "ProviderConfig",
    "ChatResolver",
    "create_resolver",
    "ToolCatalog",
    "ToolDefinition",
    "ToolWrapper",
    "ai_tool",
    "tools_from",
]
