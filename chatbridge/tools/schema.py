"""Convert Python callables into declarative tool definitions.

Inspects type annotations on function signatures to build the
``ToolDefinition`` a provider needs for native function calling, and the
``HostParameter`` list the binder uses to rebuild positional arguments.
"""

import enum
import inspect
import sys
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Literal, Optional, Union, get_args, get_origin, get_type_hints

from ..errors import ToolConfigurationError

if sys.version_info >= (3, 10):
    from types import UnionType
    _UNION_ORIGINS: tuple = (Union, UnionType)
else:
    _UNION_ORIGINS = (Union,)


class _NoDefault:
    """Sentinel for parameters without a declared default."""

    def __repr__(self) -> str:
        return "NO_DEFAULT"

    def __bool__(self) -> bool:
        return False


NO_DEFAULT: Any = _NoDefault()


# ---------------------------------------------------------------------------
# Parameter types
# ---------------------------------------------------------------------------

class ToolParameterType:
    """Closed set of JSON-facing parameter types.

    Use the ``STRING``, ``NUMBER`` and ``BOOLEAN`` singletons, or ``EnumType``
    for a literal set.
    """

    json_type: str = ""
    kind: str = ""

    STRING: "ToolParameterType"
    NUMBER: "ToolParameterType"
    BOOLEAN: "ToolParameterType"

    def __repr__(self) -> str:
        return f"ToolParameterType.{self.kind.upper()}"

    @staticmethod
    def enum(literals) -> "EnumType":
        return EnumType(tuple(literals))

    @staticmethod
    def from_annotation(annotation: Any) -> "ToolParameterType":
        """Map a Python annotation onto a parameter type.

        One level of ``Optional[...]`` is unwrapped.

        Raises:
            ToolConfigurationError: the annotation has no tool equivalent.
        """
        inner, _ = unwrap_optional(annotation)
        if inner is str:
            return ToolParameterType.STRING
        if inner is bool:
            return ToolParameterType.BOOLEAN
        if inner in (int, float, Decimal):
            return ToolParameterType.NUMBER
        if isinstance(inner, type) and issubclass(inner, enum.Enum):
            return ToolParameterType.enum(member.name for member in inner)
        if get_origin(inner) is Literal:
            literals = get_args(inner)
            if literals and all(isinstance(x, str) for x in literals):
                return ToolParameterType.enum(literals)
        raise ToolConfigurationError(
            f"Type {getattr(annotation, '__name__', annotation)!s} is not supported for tool parameters"
        )


class _ScalarType(ToolParameterType):
    def __init__(self, kind: str, json_type: str):
        self.kind = kind
        self.json_type = json_type


ToolParameterType.STRING = _ScalarType("string", "string")
ToolParameterType.NUMBER = _ScalarType("number", "number")
ToolParameterType.BOOLEAN = _ScalarType("boolean", "boolean")


@dataclass(frozen=True, repr=False)
class EnumType(ToolParameterType):
    literals: tuple[str, ...]

    kind = "enum"
    json_type = "string"

    def __repr__(self) -> str:
        return f"EnumType({list(self.literals)!r})"


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Return ``(inner, nullable)`` for ``Optional[X]``; other types pass through."""
    if get_origin(annotation) in _UNION_ORIGINS:
        args = get_args(annotation)
        if len(args) == 2 and type(None) in args:
            inner = args[0] if args[1] is type(None) else args[1]
            return inner, True
    return annotation, False


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolParameter:
    name: str
    description: Optional[str]
    type: ToolParameterType
    default: Any = NO_DEFAULT
    nullable: bool = False

    @property
    def is_optional(self) -> bool:
        return self.default is not NO_DEFAULT


@dataclass(frozen=True)
class HostParameter:
    """What the binder needs to know about one declared function parameter."""

    name: str
    annotation: Any

    @property
    def host_type(self) -> Any:
        return unwrap_optional(self.annotation)[0]


@dataclass(frozen=True)
class ToolDefinition:
    """A tool as the model sees it: name, description and typed parameters."""

    name: str
    description: Optional[str]
    parameters: tuple[ToolParameter, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))

    def parameter(self, name: str) -> Optional[ToolParameter]:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.parameters if not p.is_optional]

    def to_json(self) -> dict:
        """Generic descriptive form, for consumers that are not JSON Schema aware."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {
                    "name": p.name,
                    "description": p.description,
                    "type": p.type.json_type,
                    "isOptional": p.is_optional,
                    "enum": list(p.type.literals) if isinstance(p.type, EnumType) else None,
                }
                for p in self.parameters
            ],
        }

    def to_json_schema(self) -> dict:
        """JSON-Schema shaped form with a ``required`` list of parameters without defaults."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {
                    p.name: {"type": p.type.json_type, "description": p.description}
                    for p in self.parameters
                },
                "required": self.required,
            },
        }

    @classmethod
    def from_callable(
        cls,
        name: str,
        fn: Callable,
        description: Optional[str] = None,
        skip_first: bool = False,
    ) -> "ToolDefinition":
        """Build a definition from a function signature and docstring."""
        definition, _ = build_definition(name, fn, description, skip_first)
        return definition


def build_definition(
    name: str,
    fn: Callable,
    description: Optional[str] = None,
    skip_first: bool = False,
) -> tuple[ToolDefinition, tuple[HostParameter, ...]]:
    """Build a ToolDefinition and the host parameter list from a Python callable.

    Args:
        name: Tool name exposed to the model.
        fn: The callable to introspect.
        description: Explicit description; the docstring summary is used when omitted.
        skip_first: Drop the first parameter (the receiver of an unbound method).

    Returns:
        The definition and the host parameters in declaration order.

    Raises:
        ToolConfigurationError: a parameter cannot be mapped to a tool type.
    """
    sig = inspect.signature(fn)
    doc = inspect.getdoc(fn) or ""

    try:
        hints = get_type_hints(fn)
    except Exception as e:
        raise ToolConfigurationError(f"Cannot resolve annotations of {name}: {e}") from e

    params = list(sig.parameters.values())
    if skip_first:
        params = params[1:]

    tool_params = []
    host_params = []
    for param in params:
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise ToolConfigurationError(f"Tool {name} cannot accept *{param.name}")

        annotation = hints.get(param.name, param.annotation)
        if annotation is inspect.Parameter.empty:
            raise ToolConfigurationError(f"Parameter '{param.name}' of tool {name} has no type annotation")

        try:
            ptype = ToolParameterType.from_annotation(annotation)
        except ToolConfigurationError as e:
            raise ToolConfigurationError(f"Parameter '{param.name}' of tool {name}: {e}") from e

        _, nullable = unwrap_optional(annotation)
        default = NO_DEFAULT if param.default is inspect.Parameter.empty else param.default

        tool_params.append(ToolParameter(
            name=param.name,
            description=_extract_param_doc(doc, param.name),
            type=ptype,
            default=default,
            nullable=nullable,
        ))
        host_params.append(HostParameter(param.name, annotation))

    definition = ToolDefinition(
        name=name,
        description=description if description is not None else (_summary(doc) or None),
        parameters=tuple(tool_params),
    )
    return definition, tuple(host_params)


def _summary(docstring: str) -> str:
    """First paragraph of a docstring, joined onto one line."""
    lines = []
    for line in docstring.strip().split("\n"):
        if not line.strip():
            break
        lines.append(line.strip())
    return " ".join(lines)


def _extract_param_doc(docstring: str, param_name: str) -> Optional[str]:
    """Extract a parameter's description from a Google-style docstring."""
    if not docstring:
        return None

    lines = docstring.split("\n")
    in_args = False

    for line in lines:
        stripped = line.strip()

        if stripped.lower().startswith("args:"):
            in_args = True
            continue

        if in_args:
            # A new unindented section header ends the Args block
            if stripped.endswith(":") and not line.startswith((" ", "\t")):
                in_args = False
                continue

            # Match "param_name: description" or "param_name (type): description"
            if stripped.startswith(f"{param_name}:") or stripped.startswith(f"{param_name} ("):
                colon_idx = stripped.index(":")
                return stripped[colon_idx + 1:].strip() or None

    return None
