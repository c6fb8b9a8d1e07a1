"""Jewelry price calculation.

Pure arithmetic, no I/O and no clock: the same arguments always produce the
same quote. Costs are computed in INR and the USD view is derived from the
rounded INR figures, never computed on its own.

    metal cost  = weight_g * gold_price_24k * purity_factor * type_multiplier
    stone cost  = carats * price_per_carat       (per slot)
    overhead    = 25% of (metal + stones)
    total       = metal + stones + overhead
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Union

from app.constants import OVERHEAD_RATE, BREAKDOWN_KEYS, BASE_CURRENCY, DERIVED_CURRENCY
from app.services.errors import InvalidInputError


@dataclass(frozen=True)
class MetalType:
    """Catalog metal row, resolved to pricing factors."""
    id: int
    name: str
    purity_factor: float
    type_multiplier: float = 1.0
    price_modifier_percent: float = 0.0

    def __post_init__(self):
        if not (0 < self.purity_factor <= 1):
            raise ValueError(f"purity_factor must be in (0, 1], got {self.purity_factor}")
        if self.type_multiplier < 1:
            raise ValueError(f"type_multiplier must be >= 1, got {self.type_multiplier}")

    @property
    def factor(self) -> float:
        return self.purity_factor * self.type_multiplier


@dataclass(frozen=True)
class StoneType:
    """Catalog stone row."""
    id: int
    name: str
    price_per_carat: float
    category: Optional[str] = None
    quality: Optional[str] = None
    size: Optional[str] = None


@dataclass(frozen=True)
class MetalSpec:
    metal_type: Optional[MetalType]
    weight_grams: float


@dataclass(frozen=True)
class StoneSpec:
    stone_type: StoneType
    carat_weight: float


# A slot holds nothing, one stone, or (secondary) several stones
StoneSlot = Union[None, StoneSpec, Sequence[StoneSpec]]


@dataclass(frozen=True)
class PriceBreakdown:
    metal_cost: int = 0
    primary_stone_cost: int = 0
    secondary_stone_cost: int = 0
    other_stone_cost: int = 0
    overhead: int = 0

    @property
    def total(self) -> int:
        return sum(getattr(self, name) for name in BREAKDOWN_KEYS)

    def to_dict(self) -> dict:
        return {key: getattr(self, name) for name, key in BREAKDOWN_KEYS.items()}


@dataclass(frozen=True)
class CurrencyQuote:
    price: int
    currency: str
    breakdown: PriceBreakdown = field(default_factory=PriceBreakdown)

    def to_dict(self) -> dict:
        return {
            'price': self.price,
            'currency': self.currency,
            'breakdown': self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class PriceQuote:
    inr: CurrencyQuote
    usd: CurrencyQuote
    gold_price: float
    exchange_rate: float

    def to_dict(self) -> dict:
        return {'inr': self.inr.to_dict(), 'usd': self.usd.to_dict()}


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, halves away from zero (28062.5 -> 28063)."""
    return int(Decimal(repr(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _check_weight(value: float, label: str) -> float:
    if value is None:
        return 0.0
    if value < 0:
        raise InvalidInputError(f"{label} cannot be negative", field=label)
    return float(value)


def calculate_metal_cost(metal: Optional[MetalSpec], gold_price: float) -> float:
    if metal is None or metal.metal_type is None:
        return 0.0
    weight = _check_weight(metal.weight_grams, 'metalWeight')
    if weight == 0:
        return 0.0
    return weight * gold_price * metal.metal_type.purity_factor * metal.metal_type.type_multiplier


def calculate_stone_cost(slot: StoneSlot) -> float:
    """Cost of one slot; empty slots and zero-carat stones cost exactly 0."""
    if slot is None:
        return 0.0
    stones = [slot] if isinstance(slot, StoneSpec) else list(slot)
    total = 0.0
    for stone in stones:
        carats = _check_weight(stone.carat_weight, 'caratWeight')
        if carats == 0:
            continue
        total += carats * stone.stone_type.price_per_carat
    return total


def convert_breakdown(breakdown: PriceBreakdown, exchange_rate: float) -> PriceBreakdown:
    """Derive a USD breakdown field by field from the INR one."""
    return PriceBreakdown(**{
        name: round_half_up(getattr(breakdown, name) / exchange_rate)
        for name in BREAKDOWN_KEYS
    })


def calculate(
    metal: Optional[MetalSpec],
    stones: Sequence[StoneSlot],
    gold_price: float,
    exchange_rate: float,
) -> PriceQuote:
    """Price one item.

    Args:
        metal: Resolved metal selection, or None for a stones-only item.
        stones: Up to three slots: primary, secondary, other.
        gold_price: 24K INR per gram.
        exchange_rate: INR per 1 USD.

    Returns:
        PriceQuote with INR and derived USD views.

    Raises:
        InvalidInputError: Negative weights, more than three slots, or
            non-positive market inputs.
    """
    if gold_price is None or gold_price <= 0:
        raise InvalidInputError("Gold price must be positive", field='goldPrice')
    if exchange_rate is None or exchange_rate <= 0:
        raise InvalidInputError("Exchange rate must be positive", field='exchangeRate')
    if len(stones) > 3:
        raise InvalidInputError("At most three stone slots are supported", field='stones')

    slots = list(stones) + [None] * (3 - len(stones))

    metal_cost = round_half_up(calculate_metal_cost(metal, gold_price))
    primary_cost = round_half_up(calculate_stone_cost(slots[0]))
    secondary_cost = round_half_up(calculate_stone_cost(slots[1]))
    other_cost = round_half_up(calculate_stone_cost(slots[2]))

    base = metal_cost + primary_cost + secondary_cost + other_cost
    overhead = round_half_up(base * OVERHEAD_RATE)

    inr_breakdown = PriceBreakdown(
        metal_cost=metal_cost,
        primary_stone_cost=primary_cost,
        secondary_stone_cost=secondary_cost,
        other_stone_cost=other_cost,
        overhead=overhead,
    )
    inr_total = inr_breakdown.total

    return PriceQuote(
        inr=CurrencyQuote(price=inr_total, currency=BASE_CURRENCY, breakdown=inr_breakdown),
        usd=CurrencyQuote(
            price=round_half_up(inr_total / exchange_rate),
            currency=DERIVED_CURRENCY,
            breakdown=convert_breakdown(inr_breakdown, exchange_rate),
        ),
        gold_price=gold_price,
        exchange_rate=exchange_rate,
    )
