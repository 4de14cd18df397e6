"""Tool discovery and registration.

Functions become tools in one of two ways:

* mark them with ``@ai_tool`` and scan the owning object with
  ``tools_from`` / ``tools_from_type``;
* register them explicitly with ``ToolWrapper.from_callable`` or
  ``ToolCatalog.register``.

Usage:
    class Calculator:
        @ai_tool("add_numbers")
        def add(self, a: int, b: int) -> str:
            return f"{a} + {b} = {a + b}"

    catalog = ToolCatalog(tools_from(Calculator()))
"""

import inspect
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Iterable, Iterator, Optional

from ..errors import ToolConfigurationError
from .binder import bind_parameters
from .schema import HostParameter, ToolDefinition, build_definition

logger = logging.getLogger(__name__)

NameGetter = Callable[[Callable], Optional[str]]

_TOOL_NAME_ATTR = "__ai_tool_name__"
_TOOL_DESCRIPTION_ATTR = "__ai_tool_description__"


def ai_tool(name: Optional[str] = None, description: Optional[str] = None):
    """Mark a function or method as a tool.

    Args:
        name: External tool name; defaults to the function name.
        description: Tool description; defaults to the docstring summary.

    Can be applied bare (``@ai_tool``) or called (``@ai_tool("name")``).
    Stack it under ``@staticmethod``/``@classmethod``, not above.
    """
    if callable(name):
        fn = name
        setattr(fn, _TOOL_NAME_ATTR, fn.__name__)
        setattr(fn, _TOOL_DESCRIPTION_ATTR, None)
        return fn

    def decorator(fn: Callable) -> Callable:
        setattr(fn, _TOOL_NAME_ATTR, name or fn.__name__)
        setattr(fn, _TOOL_DESCRIPTION_ATTR, description)
        return fn
    return decorator


def get_ai_tool_name(fn: Callable) -> Optional[str]:
    """Default name resolver: the ``@ai_tool`` name, or None for unmarked functions."""
    return getattr(fn, _TOOL_NAME_ATTR, None)


@dataclass(frozen=True)
class ToolWrapper:
    """A tool definition bound to the callable that implements it.

    ``receiver`` is the instance passed as the first argument of
    ``function``; it is None for free functions, static methods and bound
    classmethods.
    """

    definition: ToolDefinition
    receiver: Any
    function: Callable
    host_parameters: tuple[HostParameter, ...]

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def qualified_name(self) -> str:
        return getattr(self.function, "__qualname__", self.definition.name)

    @classmethod
    def from_callable(
        cls,
        name: str,
        fn: Callable,
        receiver: Any = None,
        description: Optional[str] = None,
    ) -> "ToolWrapper":
        """Register ``fn`` explicitly; when ``receiver`` is given ``fn`` is unbound."""
        definition, host_params = build_definition(
            name, fn, description, skip_first=receiver is not None,
        )
        return cls(definition, receiver, fn, host_params)

    def bind(self, payload: Any) -> list:
        """Bind a JSON argument payload onto this tool's parameters."""
        return bind_parameters(self.definition, self.host_parameters, payload)

    def __call__(self, *args):
        if self.receiver is None:
            return self.function(*args)
        return self.function(self.receiver, *args)


def _wrap(name: str, fn: Callable, receiver: Any) -> ToolWrapper:
    description = getattr(fn, _TOOL_DESCRIPTION_ATTR, None)
    return ToolWrapper.from_callable(name, fn, receiver=receiver, description=description)


def _public_names(obj: Any) -> Iterator[str]:
    for attr in dir(obj):
        if not attr.startswith("_"):
            yield attr


def tools_from(obj: Any, name_getter: Optional[NameGetter] = None) -> list[ToolWrapper]:
    """Create tool wrappers from the marked public callables of an instance or module.

    Args:
        obj: Instance (its methods get it as receiver) or module (free functions).
        name_getter: Resolves a tool name for each callable, None to skip it.

    Raises:
        ToolConfigurationError: a marked callable has an unsupported signature.
    """
    if isinstance(obj, type):
        return tools_from_type(obj, name_getter)

    name_getter = name_getter or get_ai_tool_name
    wrappers = []
    for attr in _public_names(obj):
        static = inspect.getattr_static(obj, attr)
        if isinstance(static, staticmethod):
            fn, receiver = static.__func__, None
        elif isinstance(static, classmethod):
            fn, receiver = getattr(obj, attr), None
        elif inspect.isfunction(static):
            fn = static
            receiver = None if isinstance(obj, ModuleType) else obj
        else:
            continue

        name = name_getter(fn)
        if name is not None:
            wrappers.append(_wrap(name, fn, receiver))
    return wrappers


def tools_from_type(cls: type, name_getter: Optional[NameGetter] = None) -> list[ToolWrapper]:
    """Create tool wrappers from the marked static and class methods of ``cls``."""
    name_getter = name_getter or get_ai_tool_name
    wrappers = []
    for attr in _public_names(cls):
        static = inspect.getattr_static(cls, attr)
        if isinstance(static, staticmethod):
            fn = static.__func__
        elif isinstance(static, classmethod):
            fn = getattr(cls, attr)
        else:
            continue

        name = name_getter(fn)
        if name is not None:
            wrappers.append(_wrap(name, fn, None))
    return wrappers


class ToolCatalog:
    """Name-indexed, read-only set of tool wrappers.

    Duplicate names are rejected at construction. A catalog can be shared
    between concurrently running resolvers.
    """

    def __init__(self, wrappers: Iterable[ToolWrapper] = ()):
        self._tools: dict[str, ToolWrapper] = {}
        for wrapper in wrappers:
            self._add(wrapper)

    def _add(self, wrapper: ToolWrapper) -> None:
        if wrapper.name in self._tools:
            raise ToolConfigurationError(f"Duplicate tool name: {wrapper.name}")
        self._tools[wrapper.name] = wrapper
        logger.debug("Registered tool %s -> %s", wrapper.name, wrapper.qualified_name)

    @classmethod
    def of(cls, *sources: Any, name_getter: Optional[NameGetter] = None) -> "ToolCatalog":
        """Build a catalog by scanning each source (instance, module or class)."""
        wrappers: list[ToolWrapper] = []
        for source in sources:
            wrappers.extend(tools_from(source, name_getter))
        return cls(wrappers)

    def register(
        self,
        fn: Callable,
        name: Optional[str] = None,
        description: Optional[str] = None,
        receiver: Any = None,
    ) -> "ToolCatalog":
        """Return a new catalog with ``fn`` added; this catalog is left unchanged."""
        wrapper = ToolWrapper.from_callable(name or fn.__name__, fn, receiver, description)
        return ToolCatalog([*self._tools.values(), wrapper])

    def get(self, name: str) -> Optional[ToolWrapper]:
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    @property
    def definitions(self) -> list[ToolDefinition]:
        return [w.definition for w in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolWrapper]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
