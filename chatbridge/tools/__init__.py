"""Tool system for chatbridge function calling.

Builds declarative definitions from Python callables, binds model-supplied
JSON arguments back onto them and runs them.
"""

from .schema import (
    NO_DEFAULT,
    EnumType,
    HostParameter,
    ToolDefinition,
    ToolParameter,
    ToolParameterType,
)
from .binder import bind_parameters
from .catalog import (
    ToolCatalog,
    ToolWrapper,
    ai_tool,
    get_ai_tool_name,
    tools_from,
    tools_from_type,
)
from .executor import ToolExecutor, invoke

__all__ = [
    "NO_DEFAULT",
    "EnumType",
    "HostParameter",
    "ToolDefinition",
    "ToolParameter",
    "ToolParameterType",
    "bind_parameters",
    "ToolCatalog",
    "ToolWrapper",
    "ai_tool",
    "get_ai_tool_name",
    "tools_from",
    "tools_from_type",
    "ToolExecutor",
    "invoke",
]
