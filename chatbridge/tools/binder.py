"""Bind JSON tool arguments onto a function signature.

Each parameter is decoded by its ``ToolParameterType`` variant and coerced to
the exact host type the function declares. Binding stops at the first error.
"""

import enum
import json
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Literal, Mapping, Sequence, get_args, get_origin

from ..errors import (
    BindError,
    ErrorKind,
    InvalidEnumValueError,
    MissingParameterError,
    ParameterTypeError,
)
from .schema import EnumType, HostParameter, ToolDefinition, ToolParameter, ToolParameterType

_MISSING = object()


def parse_payload(payload: Any) -> Mapping[str, Any]:
    """Normalize a payload into a JSON object.

    ``None`` means no arguments; strings are parsed as JSON.
    """
    if payload is None:
        return {}
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload) if payload.strip() else {}
        except json.JSONDecodeError as e:
            raise BindError(f"Tool arguments are not valid JSON: {e}") from e
    if not isinstance(payload, Mapping):
        raise BindError(f"Tool arguments must be a JSON object, got {type(payload).__name__}")
    return payload


def bind_parameters(
    definition: ToolDefinition,
    host_parameters: Sequence[HostParameter],
    payload: Any,
) -> list:
    """Produce one positional argument per host parameter.

    Args:
        definition: The tool definition built for the function.
        host_parameters: Declared parameters, in declaration order.
        payload: JSON object (dict, JSON string or None) sent by the model.

    Returns:
        Arguments ready to be passed positionally.

    Raises:
        MissingParameterError: a required value is absent or of the wrong JSON kind.
        InvalidEnumValueError: an enum value is outside the literal set.
        ParameterTypeError: a number does not fit the declared numeric type.
        BindError: the payload is not an object, or the definition does not
            match the function (kind UNHANDLED).
    """
    values = parse_payload(payload)
    args = []
    for host in host_parameters:
        param = definition.parameter(host.name)
        if param is None:
            raise BindError(f"Invalid parameter: {host.name}", ErrorKind.UNHANDLED)
        args.append(_bind_one(param, host, values.get(param.name, _MISSING)))
    return args


def _bind_one(param: ToolParameter, host: HostParameter, raw: Any) -> Any:
    if raw is None and (param.nullable or param.is_optional):
        return None

    value = _MISSING if raw is _MISSING else _extract(param.type, raw)
    if value is _MISSING:
        if param.is_optional:
            return param.default
        raise MissingParameterError(param.name)

    if isinstance(param.type, EnumType):
        return _parse_enum(param, host.host_type, value)
    if param.type is ToolParameterType.NUMBER:
        return _coerce_number(param.name, host.host_type, value)
    return value


def _extract(ptype: ToolParameterType, raw: Any) -> Any:
    """Pull a value of the declared JSON kind out of ``raw``, or ``_MISSING``."""
    if ptype is ToolParameterType.BOOLEAN:
        return raw if isinstance(raw, bool) else _MISSING
    if ptype is ToolParameterType.NUMBER:
        if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal)):
            return _MISSING
        return raw
    # STRING and ENUM both travel as JSON strings
    return raw if isinstance(raw, str) else _MISSING


def _coerce_number(name: str, host_type: Any, value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        raise ParameterTypeError(name, value, "a finite number")
    if isinstance(value, Decimal) and not value.is_finite():
        raise ParameterTypeError(name, value, "a finite number")

    try:
        if host_type is int:
            if isinstance(value, int):
                return value
            if value == int(value):
                return int(value)
            raise ParameterTypeError(name, value, "an integer")
        if host_type is float:
            return float(value)
        if host_type is Decimal:
            return value if isinstance(value, Decimal) else Decimal(str(value))
    except (OverflowError, ValueError, InvalidOperation) as e:
        raise ParameterTypeError(name, value, f"a {host_type.__name__}") from e
    raise BindError(f"Unsupported numeric type for parameter '{name}': {host_type}", ErrorKind.UNHANDLED)


def _parse_enum(param: ToolParameter, host_type: Any, value: str) -> Any:
    if get_origin(host_type) is Literal:
        if value in get_args(host_type):
            return value
        raise InvalidEnumValueError(param.name, value)

    if isinstance(host_type, type) and issubclass(host_type, enum.Enum):
        member = host_type.__members__.get(value)
        if member is not None:
            return member
        try:
            return host_type(value)
        except ValueError:
            raise InvalidEnumValueError(param.name, value) from None

    raise BindError(f"Parameter '{param.name}' is not an enumeration", ErrorKind.UNHANDLED)
