"""Placeholder price shown before the first server round trip.

Uses name-derived metal factors, so it can differ from the catalog-configured
value the server uses. Never treat it as authoritative.
"""
from typing import Optional, Sequence

from app.data.metals import derive_metal_factors
from app.services.calc import MetalSpec, MetalType, PriceQuote, StoneSpec, StoneType, calculate

PLACEHOLDER_ID = 0


def placeholder_quote(
    metal_name: Optional[str],
    metal_weight: float,
    gold_price: float,
    exchange_rate: float,
    stones: Sequence[Optional[tuple[float, float]]] = (),
) -> PriceQuote:
    """Estimate a quote from names and cached market values.

    Args:
        metal_name: Display name such as '18K Rose Gold'; None for no metal.
        metal_weight: Grams.
        gold_price: Last known 24K INR/gram.
        exchange_rate: Last known INR per USD.
        stones: Up to three (price_per_carat, carats) pairs or None.
    """
    metal = None
    if metal_name:
        purity, multiplier = derive_metal_factors(metal_name)
        metal = MetalSpec(
            metal_type=MetalType(
                id=PLACEHOLDER_ID,
                name=metal_name,
                purity_factor=purity,
                type_multiplier=multiplier,
            ),
            weight_grams=metal_weight,
        )

    slots = []
    for pair in stones:
        if pair is None:
            slots.append(None)
            continue
        price_per_carat, carats = pair
        slots.append(StoneSpec(
            stone_type=StoneType(id=PLACEHOLDER_ID, name='estimate', price_per_carat=price_per_carat),
            carat_weight=carats,
        ))

    return calculate(metal, slots, gold_price, exchange_rate)
