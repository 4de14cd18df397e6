"""Base provider interface for all chat models."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, ClassVar, Dict, Iterable, Optional, Sequence, Union

import httpx

from ..cost import ChatCost, CostStructure, calc_cost, USD_TO_SATANG
from ..errors import ChatError, ErrorKind, ProviderError
from ..messages import ChatEntry, ChatMessage
from ..tools.schema import ToolDefinition
from ..utils.time import utc_now
from .response import ChatResponse

logger = logging.getLogger(__name__)

ChatFunc = Callable[[Sequence[ChatMessage]], Awaitable[ChatResponse]]


@dataclass(frozen=True)
class SamplingParameters:
    """Sampling knobs shared by every provider."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None


SamplingParameters.FOCUSED = SamplingParameters(temperature=0.01, top_p=0.1)


@dataclass
class ProviderConfig:
    """Configuration for a provider."""
    api_key: str
    model: str
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: float = 60.0
    cost_unit: Optional[Decimal] = None

    def with_sampling(self, sampling: SamplingParameters) -> "ProviderConfig":
        return ProviderConfig(
            api_key=self.api_key,
            model=self.model,
            base_url=self.base_url,
            temperature=sampling.temperature,
            top_p=sampling.top_p,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
            cost_unit=self.cost_unit,
        )


class ChatProvider(ABC):
    """Anything that turns a message sequence into transcript entries plus cost."""

    @abstractmethod
    async def send(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        """Send the conversation and return the produced entries and their cost.

        Raises:
            ChatError: the call failed.
        """

    async def __call__(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        return await self.send(messages)


class _FunctionProvider(ChatProvider):
    def __init__(self, fn: ChatFunc):
        self._fn = fn

    async def send(self, messages: Sequence[ChatMessage]) -> ChatResponse:
        return await self._fn(messages)


def as_provider(chat: Union[ChatProvider, ChatFunc]) -> ChatProvider:
    """Accept a provider or a bare ``async def chat(messages)`` function."""
    if isinstance(chat, ChatProvider):
        return chat
    if not callable(chat):
        raise TypeError(f"{chat!r} is neither a ChatProvider nor callable")
    return _FunctionProvider(chat)


class EntryBuilder:
    """Creates the entries of one provider call.

    The call's cost goes on the first entry only; the rest carry zero.
    """

    def __init__(self, cost: ChatCost, timestamp: datetime):
        self.cost = cost
        self.timestamp = timestamp
        self._count = 0

    def __call__(self, message: ChatMessage) -> ChatEntry:
        cost = self.cost if self._count == 0 else ChatCost.ZERO
        self._count += 1
        return ChatEntry(self.timestamp, message, admin=None, cost=cost)


class BaseProvider(ChatProvider):
    """Shared plumbing for HTTP-backed providers.

    Subclasses declare their ``RATE_TABLE`` and implement ``send``.
    """

    RATE_TABLE: ClassVar[Dict[str, CostStructure]] = {}
    DEFAULT_BASE_URL: ClassVar[str] = ""

    def __init__(
        self,
        config: ProviderConfig,
        tools: Iterable[ToolDefinition] = (),
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.name = self.__class__.__name__
        self.tools = tuple(tools)
        self.base_url = (config.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.client = http_client or httpx.AsyncClient(timeout=config.timeout)
        self._owns_client = http_client is None
        self.clock = clock or utc_now

    @classmethod
    def model_name(cls, model: str) -> str:
        """Resolve model aliases; identity by default."""
        return model

    @classmethod
    def is_model_supported(cls, model: str) -> bool:
        return cls.model_name(model) in cls.RATE_TABLE

    @property
    def rate(self) -> CostStructure:
        self.check_model()
        return self.RATE_TABLE[self.model_name(self.config.model)]

    def check_model(self) -> None:
        """Fail before any request is made when the model has no rate entry."""
        if not self.is_model_supported(self.config.model):
            raise ChatError(f"No rate table entry for model {self.config.model}", ErrorKind.NOT_FOUND)

    def cost_of(self, input_tokens: int, output_tokens: int, thought_tokens: int = 0) -> ChatCost:
        unit = self.config.cost_unit if self.config.cost_unit is not None else USD_TO_SATANG
        return calc_cost(self.rate, input_tokens, output_tokens, thought_tokens, unit)

    def validate(self) -> bool:
        """Validate provider configuration."""
        return bool(self.config.api_key and self.config.model)

    async def _post_json(self, url: str, payload: dict, **kwargs) -> dict:
        """POST a JSON payload and return the decoded JSON body.

        Raises:
            ProviderError: transport failure, non-2xx status or a non-JSON body.
        """
        logger.debug("%s POST %s", self.name, url)
        try:
            response = await self.client.post(url, json=payload, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("%s request failed with HTTP %s", self.name, status)
            raise ProviderError(
                f"{self.name} returned HTTP {status}: {_error_message(e.response)}",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            logger.warning("%s request failed: %s", self.name, e)
            raise ProviderError(f"{self.name} request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(
                f"{self.name} returned a non-JSON body", kind=ErrorKind.INVALID_RESPONSE,
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error or data)[:200]
