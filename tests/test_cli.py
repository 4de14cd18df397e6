"""Tests for the chatbridge command line."""

import json
import textwrap
from decimal import Decimal

import httpx
import pytest
from click.testing import CliRunner

from chatbridge.cli import cli
from chatbridge.config import ConfigManager
from chatbridge.providers.base import ProviderConfig
from chatbridge.providers.openai_provider import OpenAIProvider

TOOLS_MODULE = textwrap.dedent('''
    from chatbridge import ai_tool


    class Clock:
        @ai_tool("current_time")
        def now(self, zone: str = "UTC") -> str:
            """Current time in a zone."""
            return f"12:00 {zone}"


    clock = Clock()


    @ai_tool
    def roll(sides: int) -> int:
        """Roll a die."""
        return sides
''')


@pytest.fixture
def tools_module(tmp_path, monkeypatch):
    (tmp_path / "cli_sample_tools.py").write_text(TOOLS_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "cli_sample_tools"


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config.yaml")


def _scripted_openai(responses):
    def handler(request):
        return httpx.Response(200, json=responses.pop(0))

    return OpenAIProvider(
        ProviderConfig(api_key="k", model="gpt-4.1-mini", cost_unit=Decimal(1)),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _completion(message, finish_reason="stop"):
    return {
        "choices": [{"message": message, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 1000, "completion_tokens": 1000},
    }


class TestToolsCommand:
    def test_lists_module_tools(self, tools_module, config_path):
        result = CliRunner().invoke(cli, ["--config", config_path, "tools", tools_module])
        assert result.exit_code == 0, result.output
        assert "roll" in result.output
        assert "current_time" not in result.output

    def test_instance_target_schema(self, tools_module, config_path):
        result = CliRunner().invoke(
            cli, ["--config", config_path, "tools", f"{tools_module}:clock", "--schema"],
        )
        assert result.exit_code == 0, result.output
        assert "current_time" in result.output
        assert "required" in result.output

    def test_bad_target(self, config_path):
        result = CliRunner().invoke(cli, ["--config", config_path, "tools", "no_such_module_here"])
        assert result.exit_code != 0
        assert "cannot import" in result.output


class TestCostCommand:
    def test_known_model(self, config_path):
        result = CliRunner().invoke(
            cli, ["--config", config_path, "cost", "gpt-4o", "--input", "1000000", "--output", "1000000"],
        )
        assert result.exit_code == 0, result.output
        assert "9500.0000 in / 38000.0000 out" in result.output

    def test_unknown_model(self, config_path):
        result = CliRunner().invoke(cli, ["--config", config_path, "cost", "gpt-2"])
        assert result.exit_code != 0
        assert "no rate table" in result.output


def test_config_command(config_path):
    result = CliRunner().invoke(cli, ["--config", config_path, "config"])
    assert result.exit_code == 0, result.output
    assert "default provider: openai" in result.output
    assert "(none)" in result.output


class TestAskCommand:
    def test_disabled_provider(self, config_path):
        result = CliRunner().invoke(cli, ["--config", config_path, "ask", "hello"])
        assert result.exit_code != 0
        assert "not enabled" in result.output

    def test_resolves_tool_calls(self, tools_module, config_path, monkeypatch):
        tool_call = {
            "role": "assistant",
            "tool_calls": [{
                "id": "call_1",
                "type": "function",
                "function": {"name": "current_time", "arguments": "{\"zone\": \"CET\"}"},
            }],
        }
        provider = _scripted_openai([
            _completion(tool_call, "tool_calls"),
            _completion({"role": "assistant", "content": "It is noon."}),
        ])
        monkeypatch.setattr(ConfigManager, "create_provider", lambda self, name=None, tools=(): provider)

        result = CliRunner().invoke(
            cli,
            ["--config", config_path, "ask", "what", "time?", "-t", f"{tools_module}:clock", "--json"],
        )

        assert result.exit_code == 0, result.output
        transcript = json.loads(result.output)
        assert [e["message"]["type"] for e in transcript] == ["tool-call", "tool-result", "content"]
        assert transcript[1]["message"]["response"] == {"id": "call_1", "response": "12:00 CET"}

    def test_chat_error_exits_non_zero(self, config_path, monkeypatch):
        provider = _scripted_openai([_completion({}, "length")])
        monkeypatch.setattr(ConfigManager, "create_provider", lambda self, name=None, tools=(): provider)

        result = CliRunner().invoke(cli, ["--config", config_path, "ask", "hello"])

        assert result.exit_code == 1
        assert "service-error" in result.output
