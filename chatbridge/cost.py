"""Per-call cost accounting.

Rates are expressed per million tokens in USD and converted into the
billing currency with a fixed unit multiplier. Everything is ``Decimal`` so
totals summed over many calls do not drift.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Union

Number = Union[Decimal, int, str]

USD_TO_SATANG = Decimal(3800)

_MILLION = Decimal(1_000_000)


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class ChatCost:
    """Input and output cost pair.

    Also used as a rate pair (price per one million tokens) inside a
    ``CostStructure``.
    """

    input_cost: Decimal = Decimal(0)
    output_cost: Decimal = Decimal(0)

    ZERO: ClassVar["ChatCost"]

    def __post_init__(self):
        object.__setattr__(self, "input_cost", _dec(self.input_cost))
        object.__setattr__(self, "output_cost", _dec(self.output_cost))

    @property
    def total(self) -> Decimal:
        return self.input_cost + self.output_cost

    def calc_input(self, tokens: int) -> Decimal:
        """Price of ``tokens`` input tokens at this per-million rate."""
        return self.input_cost * tokens / _MILLION

    def calc_output(self, tokens: int) -> Decimal:
        """Price of ``tokens`` output tokens at this per-million rate."""
        return self.output_cost * tokens / _MILLION

    def __add__(self, other: "ChatCost") -> "ChatCost":
        if not isinstance(other, ChatCost):
            return NotImplemented
        return ChatCost(
            self.input_cost + other.input_cost,
            self.output_cost + other.output_cost,
        )


ChatCost.ZERO = ChatCost()


@dataclass(frozen=True)
class CostStructure:
    """Rate table entry for one model.

    ``high_volume_rate`` applies when a token count reaches
    ``input_threshold``; input and output are tested independently.
    ``thought_rate.output_cost`` bills reasoning tokens.
    """

    base_rate: ChatCost
    input_threshold: int
    high_volume_rate: ChatCost
    thought_rate: ChatCost = ChatCost.ZERO

    @classmethod
    def simple(cls, input_rate: Number, output_rate: Number) -> "CostStructure":
        return cls(ChatCost.ZERO, 0, ChatCost(input_rate, output_rate), ChatCost.ZERO)

    @classmethod
    def with_thought(
        cls, input_rate: Number, output_rate: Number, thought_rate: Number,
    ) -> "CostStructure":
        return cls(
            ChatCost.ZERO, 0,
            ChatCost(input_rate, output_rate),
            ChatCost(0, thought_rate),
        )

    def rate_for(self, tokens: int) -> ChatCost:
        return self.high_volume_rate if tokens >= self.input_threshold else self.base_rate


def calc_cost(
    rate: CostStructure,
    input_tokens: int,
    output_tokens: int,
    thought_tokens: int = 0,
    unit: Number = USD_TO_SATANG,
) -> ChatCost:
    """Cost of one call in billing units.

    Args:
        rate: Rate table entry for the model that served the call.
        input_tokens: Prompt tokens.
        output_tokens: Visible completion tokens.
        thought_tokens: Reasoning tokens, always billed as output.
        unit: Currency multiplier applied to the USD rates.
    """
    unit = _dec(unit)
    input_cost = unit * rate.rate_for(input_tokens).calc_input(input_tokens)
    output_cost = unit * (
        rate.rate_for(output_tokens).calc_output(output_tokens)
        + rate.thought_rate.calc_output(thought_tokens)
    )
    return ChatCost(input_cost, output_cost)
