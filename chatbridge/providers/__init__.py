"""Provider system for multi-model support."""

from .base import (
    BaseProvider,
    ChatFunc,
    ChatProvider,
    EntryBuilder,
    ProviderConfig,
    SamplingParameters,
    as_provider,
)
from .response import ChatResponse
from .gemini import GeminiProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "BaseProvider",
    "ChatFunc",
    "ChatProvider",
    "EntryBuilder",
    "ProviderConfig",
    "SamplingParameters",
    "as_provider",
    "ChatResponse",
    "GeminiProvider",
    "OpenAIProvider",
]
