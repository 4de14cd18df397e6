"""Tests for the provider registry system."""

import pytest

from chatbridge.providers.base import BaseProvider
from chatbridge.providers.gemini import GeminiProvider
from chatbridge.providers.openai_provider import OpenAIProvider
from chatbridge.providers.registry import (
    register_provider,
    discover_providers,
    find_provider_for_model,
    get_provider_class,
    get_registry,
    clear_registry,
)


@pytest.fixture(autouse=True)
def restore_registry():
    yield
    clear_registry()
    discover_providers()


def test_discover_finds_all_providers():
    """discover_providers should find all decorated provider modules."""
    clear_registry()
    discover_providers()
    registry = get_registry()
    assert "gemini" in registry
    assert "openai" in registry


def test_registry_returns_base_provider_subclasses():
    """All registered classes must be BaseProvider subclasses."""
    clear_registry()
    discover_providers()
    for name, cls in get_registry().items():
        assert issubclass(cls, BaseProvider), f"{name} is not a BaseProvider subclass"


def test_register_custom_provider():
    """@register_provider should register a custom class."""
    clear_registry()

    @register_provider("custom")
    class CustomProvider(BaseProvider):
        async def send(self, messages):
            raise NotImplementedError

    registry = get_registry()
    assert "custom" in registry
    assert registry["custom"] is CustomProvider


def test_register_rejects_non_providers():
    with pytest.raises(TypeError):
        register_provider("bogus")(object)


def test_get_provider_class_discovers_on_demand():
    clear_registry()
    assert get_provider_class("openai").__name__ == "OpenAIProvider"


def test_get_provider_class_unknown():
    with pytest.raises(KeyError, match="Unknown provider"):
        get_provider_class("carrier-pigeon")


def test_clear_registry():
    """clear_registry should empty the registry."""
    clear_registry()
    discover_providers()
    assert len(get_registry()) > 0
    clear_registry()
    assert len(get_registry()) == 0


def test_get_registry_returns_copy():
    """get_registry should return a copy, not the internal dict."""
    discover_providers()
    reg1 = get_registry()
    reg1["fake"] = None
    reg2 = get_registry()
    assert "fake" not in reg2


def test_rediscovery_keeps_class_identity():
    clear_registry()
    discover_providers()
    assert get_provider_class("openai") is OpenAIProvider
    assert get_provider_class("gemini") is GeminiProvider


def test_subclasses_are_not_registered_twice():
    class TunedOpenAI(OpenAIProvider):
        pass

    assert "__provider_name__" not in vars(TunedOpenAI)
    discover_providers()
    assert get_provider_class("openai") is OpenAIProvider


def test_find_provider_for_model():
    assert find_provider_for_model("gpt-4.1-nano") is OpenAIProvider
    assert find_provider_for_model("gemini-2.5-flash") is GeminiProvider
    with pytest.raises(KeyError, match="No provider serves"):
        find_provider_for_model("gpt-2")
