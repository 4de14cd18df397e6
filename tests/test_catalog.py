"""Tests for tool discovery and the tool catalog."""

import types

import pytest

from chatbridge.errors import ToolConfigurationError
from chatbridge.tools.catalog import (
    ToolCatalog,
    ToolWrapper,
    ai_tool,
    get_ai_tool_name,
    tools_from,
    tools_from_type,
)


class Calculator:
    def __init__(self, offset: int = 0):
        self.offset = offset

    @ai_tool("add_numbers")
    def add(self, a: int, b: int) -> int:
        """Add two numbers."""
        return a + b + self.offset

    @ai_tool
    def negate(self, a: int) -> int:
        return -a

    @staticmethod
    @ai_tool(description="Multiply two numbers")
    def multiply(a: int, b: int) -> int:
        return a * b

    @classmethod
    @ai_tool("zero")
    def zero(cls) -> int:
        return 0

    def helper(self, a: int) -> int:
        return a

    @ai_tool
    def _hidden(self) -> int:
        return 1


class TestAiTool:
    def test_bare_decorator_uses_function_name(self):
        assert get_ai_tool_name(Calculator.negate) == "negate"

    def test_called_decorator_sets_name(self):
        assert get_ai_tool_name(Calculator.add) == "add_numbers"

    def test_unmarked_function(self):
        assert get_ai_tool_name(Calculator.helper) is None


class TestToolsFrom:
    def test_instance_methods_bind_receiver(self):
        calc = Calculator(offset=10)
        wrappers = {w.name: w for w in tools_from(calc)}
        assert set(wrappers) == {"add_numbers", "negate", "multiply", "zero"}
        assert wrappers["add_numbers"].receiver is calc
        assert wrappers["add_numbers"](1, 2) == 13

    def test_receiver_not_in_parameters(self):
        wrapper = {w.name: w for w in tools_from(Calculator())}["add_numbers"]
        assert [p.name for p in wrapper.definition.parameters] == ["a", "b"]

    def test_static_and_class_methods_have_no_receiver(self):
        wrappers = {w.name: w for w in tools_from(Calculator())}
        assert wrappers["multiply"].receiver is None
        assert wrappers["multiply"](3, 4) == 12
        assert wrappers["zero"]() == 0
        assert wrappers["multiply"].definition.description == "Multiply two numbers"

    def test_type_scan_only_finds_static_and_class_methods(self):
        names = {w.name for w in tools_from_type(Calculator)}
        assert names == {"multiply", "zero"}
        assert {w.name for w in tools_from(Calculator)} == names

    def test_module_functions(self):
        module = types.ModuleType("weather_tools")

        @ai_tool("forecast")
        def forecast(city: str) -> str:
            return f"sunny in {city}"

        def unmarked(city: str) -> str:
            return city

        module.forecast = forecast
        module.unmarked = unmarked

        (wrapper,) = tools_from(module)
        assert wrapper.name == "forecast"
        assert wrapper.receiver is None
        assert wrapper("Oslo") == "sunny in Oslo"

    def test_custom_name_getter(self):
        wrappers = tools_from(Calculator(), name_getter=lambda fn: fn.__name__ if fn.__name__ == "helper" else None)
        assert [w.name for w in wrappers] == ["helper"]

    def test_bad_signature_fails_at_discovery(self):
        class Broken:
            @ai_tool
            def oops(self, value) -> str:
                return value

        with pytest.raises(ToolConfigurationError):
            tools_from(Broken())


class TestToolCatalog:
    def test_lookup(self):
        catalog = ToolCatalog.of(Calculator())
        assert "add_numbers" in catalog
        assert catalog.get("add_numbers").name == "add_numbers"
        assert catalog.get("missing") is None
        assert len(catalog) == 4
        assert sorted(d.name for d in catalog.definitions) == sorted(catalog.tool_names)

    def test_duplicate_names_rejected(self):
        with pytest.raises(ToolConfigurationError, match="Duplicate"):
            ToolCatalog.of(Calculator(), Calculator())

    def test_register_returns_new_catalog(self):
        def echo(text: str) -> str:
            return text

        base = ToolCatalog()
        extended = base.register(echo)
        assert "echo" in extended
        assert "echo" not in base

    def test_explicit_wrapper(self):
        def shout(self, text: str) -> str:
            return text.upper() + self

        wrapper = ToolWrapper.from_callable("shout", shout, receiver="!")
        assert [p.name for p in wrapper.definition.parameters] == ["text"]
        assert wrapper("hi") == "HI!"
        assert list(ToolCatalog([wrapper])) == [wrapper]
