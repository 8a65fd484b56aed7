"""
Cost calculation helpers.

All prices are in USD per 1K tokens.
All costs are rounded to 8 decimal places (ROUND_HALF_UP).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ai_orchestrator.domain.response import TokenUsage


DEFAULT_PRICED_MODEL = "claude-3-sonnet"

PRICE_SOURCE_MODEL_TABLE = "ModelTable"
PRICE_SOURCE_DEFAULT_MODEL = "DefaultModel"


@dataclass(frozen=True)
class ModelPrice:
    input_price: float
    output_price: float


MODEL_PRICES: dict[str, ModelPrice] = {
    "claude-3-opus": ModelPrice(input_price=0.015, output_price=0.075),
    "claude-3-sonnet": ModelPrice(input_price=0.003, output_price=0.015),
    "claude-3-haiku": ModelPrice(input_price=0.00025, output_price=0.00125),
    "claude-2.1": ModelPrice(input_price=0.008, output_price=0.024),
    "claude-2.0": ModelPrice(input_price=0.008, output_price=0.024),
}


_ONE_THOUSAND = Decimal("1000")
_Q8 = Decimal("0.00000001")


def _to_decimal(value: Optional[float]) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def _q8(value: Decimal) -> Decimal:
    return value.quantize(_Q8, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ResolvedPrice:
    model: str
    input_price: float
    output_price: float
    price_source: str


@dataclass(frozen=True)
class CostBreakdown:
    total_cost: float
    input_cost: float
    output_cost: float


def resolve_price(
    model: Optional[str],
    prices: Optional[dict[str, ModelPrice]] = None,
) -> ResolvedPrice:
    """
    Resolve per-1K-token price for a model.

    Dated model ids (e.g. claude-3-opus-20240229) resolve to their family entry.
    Unknown models fall back to the default model's pricing rather than failing.
    """
    table = prices if prices is not None else MODEL_PRICES
    family = None
    if model:
        if model in table:
            family = model
        else:
            prefixes = [name for name in table if model.startswith(f"{name}-")]
            if prefixes:
                family = max(prefixes, key=len)

    if family is not None:
        price = table[family]
        source = PRICE_SOURCE_MODEL_TABLE
    else:
        price = table.get(DEFAULT_PRICED_MODEL, MODEL_PRICES[DEFAULT_PRICED_MODEL])
        source = PRICE_SOURCE_DEFAULT_MODEL
    return ResolvedPrice(
        model=model or DEFAULT_PRICED_MODEL,
        input_price=price.input_price,
        output_price=price.output_price,
        price_source=source,
    )


def calculate_cost_breakdown(
    *,
    input_tokens: int | None,
    output_tokens: int | None,
    input_price: float,
    output_price: float,
) -> CostBreakdown:
    input_tokens = int(input_tokens or 0)
    output_tokens = int(output_tokens or 0)

    input_cost = _q8((Decimal(input_tokens) / _ONE_THOUSAND) * _to_decimal(input_price))
    output_cost = _q8((Decimal(output_tokens) / _ONE_THOUSAND) * _to_decimal(output_price))
    total_cost = _q8(input_cost + output_cost)

    return CostBreakdown(
        total_cost=float(total_cost),
        input_cost=float(input_cost),
        output_cost=float(output_cost),
    )


def calculate_cost(usage: TokenUsage, model: Optional[str]) -> float:
    """Monetary cost (USD) of a token usage on a model"""
    price = resolve_price(model)
    return calculate_cost_breakdown(
        input_tokens=usage.input,
        output_tokens=usage.output,
        input_price=price.input_price,
        output_price=price.output_price,
    ).total_cost
