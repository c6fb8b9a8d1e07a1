"""Pricing service: market data caches + calculator behind one boundary.

Owns no state beyond the two market data caches. Calculation requests read
whatever the caches hold right now and never wait on an external fetch.
"""
import logging
import math
from typing import Any, Optional

from app.constants import NO_STONE_SENTINELS
from app.services import calc
from app.services.calc import MetalSpec, StoneSpec
from app.services.catalog import CatalogRepository
from app.services.errors import InvalidInputError
from app.services.market_data import GoldPriceProvider, ExchangeRateProvider
from app.services.providers.registry import get_fx_provider, get_metal_provider

logger = logging.getLogger('pricing')


def _parse_weight(value: Any, field: str) -> float:
    """Accept numbers and numeric strings; reject negatives, NaN and junk."""
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be a number", field=field)
    if math.isnan(number) or math.isinf(number):
        raise InvalidInputError(f"{field} must be a finite number", field=field)
    if number < 0:
        raise InvalidInputError(f"{field} cannot be negative", field=field)
    return number


def _is_unselected(type_id: Any) -> bool:
    if type_id is None:
        return True
    return isinstance(type_id, str) and type_id.strip().lower() in NO_STONE_SENTINELS


class PricingService:
    """The three read paths: gold price, exchange rate, calculate-price."""

    def __init__(self, gold: GoldPriceProvider, exchange: ExchangeRateProvider):
        self.gold = gold
        self.exchange = exchange

    # ==================== MARKET DATA ====================

    def gold_price(self) -> dict:
        entry = self.gold.current()
        return {
            'success': True,
            'price': entry.value,
            'timestamp': int(entry.fetched_at * 1000),
            'location': self.gold.location,
            'source': entry.source,
            'stale': entry.stale,
        }

    def exchange_rate(self) -> dict:
        entry = self.exchange.current()
        response = {
            'success': True,
            'rate': entry.value,
            'source': entry.source,
            'timestamp': entry.to_dict()['fetched_at'],
            'stale': entry.stale,
        }
        if not self.exchange.is_live(entry):
            response['fallbackRate'] = self.exchange.default_rate
        return response

    def refresh_all(self) -> dict:
        """Synchronously refresh both caches. Never raises."""
        results = {}
        for key, provider in (('gold_price', self.gold), ('exchange_rate', self.exchange)):
            result = provider.refresh()
            results[key] = {
                'success': result.success,
                'value': result.entry.value if result.entry else None,
                'source': result.entry.source if result.entry else None,
                'error': result.error,
            }
        return results

    def warm(self) -> None:
        """Kick off background fetches so the first request finds a warm cache."""
        self.gold.cache.refresh_in_background()
        self.exchange.cache.refresh_in_background()

    def status(self) -> dict:
        return {
            'gold_price': {**self.gold.cache.status(), 'provider': self.gold.source_name},
            'exchange_rate': {**self.exchange.cache.status(), 'provider': self.exchange.source_name},
        }

    # ==================== CALCULATION ====================

    def _resolve_metal(self, body: dict, catalog: CatalogRepository) -> Optional[MetalSpec]:
        metal_type_id = body.get('metalTypeId')
        raw_weight = body.get('metalWeight')

        if _is_unselected(metal_type_id):
            weight = _parse_weight(raw_weight, 'metalWeight') if raw_weight is not None else 0.0
            if weight > 0:
                raise InvalidInputError(
                    "Missing required metal type information", field='metalTypeId'
                )
            return None

        if raw_weight is None:
            raise InvalidInputError("metalWeight is required with metalTypeId", field='metalWeight')
        weight = _parse_weight(raw_weight, 'metalWeight')

        metal_type = catalog.get_metal_type(metal_type_id)
        if metal_type is None:
            raise InvalidInputError(f"Unknown metal type: {metal_type_id}", field='metalTypeId')
        return MetalSpec(metal_type=metal_type, weight_grams=weight)

    def _resolve_stone(self, stone: Any, field: str, catalog: CatalogRepository) -> Optional[StoneSpec]:
        if stone is None:
            return None
        if not isinstance(stone, dict):
            raise InvalidInputError(f"{field} must be an object", field=field)

        stone_type_id = stone.get('stoneTypeId')
        if _is_unselected(stone_type_id):
            return None

        if stone.get('caratWeight') is None:
            raise InvalidInputError(f"{field}.caratWeight is required", field=f"{field}.caratWeight")
        carats = _parse_weight(stone.get('caratWeight'), f"{field}.caratWeight")

        stone_type = catalog.get_stone_type(stone_type_id)
        if stone_type is None:
            raise InvalidInputError(f"Unknown stone type: {stone_type_id}", field=f"{field}.stoneTypeId")
        return StoneSpec(stone_type=stone_type, carat_weight=carats)

    def parse_request(self, body: Any, catalog: CatalogRepository) -> tuple[Optional[MetalSpec], list]:
        """Validate a calculate-price body and resolve every id against the catalog."""
        if not isinstance(body, dict):
            raise InvalidInputError("Request body must be a JSON object")

        metal = self._resolve_metal(body, catalog)
        primary = self._resolve_stone(body.get('primaryStone'), 'primaryStone', catalog)

        secondary_raw = body.get('secondaryStones') or []
        if isinstance(secondary_raw, dict):
            secondary_raw = [secondary_raw]
        if not isinstance(secondary_raw, list):
            raise InvalidInputError("secondaryStones must be a list", field='secondaryStones')
        secondary = [
            spec for spec in (
                self._resolve_stone(stone, f'secondaryStones[{i}]', catalog)
                for i, stone in enumerate(secondary_raw)
            )
            if spec is not None
        ]

        other = self._resolve_stone(body.get('otherStone'), 'otherStone', catalog)
        return metal, [primary, secondary, other]

    @staticmethod
    def _describe_stone(spec: Optional[StoneSpec]) -> Optional[dict]:
        if spec is None or spec.carat_weight == 0:
            return None
        return {
            'stoneTypeId': spec.stone_type.id,
            'name': spec.stone_type.name,
            'caratWeight': spec.carat_weight,
            'pricePerCarat': spec.stone_type.price_per_carat,
        }

    def calculate_price(self, body: Any, catalog: CatalogRepository) -> dict:
        """Price a calculate-price request body.

        Raises:
            InvalidInputError: For anything the caller got wrong.
        """
        metal, stones = self.parse_request(body, catalog)

        gold_entry = self.gold.current(block=False)
        fx_entry = self.exchange.current(block=False)

        quote = calc.calculate(metal, stones, gold_entry.value, fx_entry.value)

        primary, secondary, other = stones
        inputs = {
            'metalType': metal.metal_type.name if metal else None,
            'metalTypeId': metal.metal_type.id if metal else None,
            'metalWeight': metal.weight_grams if metal else 0,
            'purityFactor': metal.metal_type.purity_factor if metal else None,
            'typeMultiplier': metal.metal_type.type_multiplier if metal else None,
            'primaryStone': self._describe_stone(primary),
            'secondaryStones': [d for d in (self._describe_stone(s) for s in secondary) if d],
            'otherStone': self._describe_stone(other),
            'goldPrice': gold_entry.value,
            'goldPriceSource': gold_entry.source,
            'exchangeRate': fx_entry.value,
            'exchangeRateSource': fx_entry.source,
        }
        logger.info(
            f"Priced {inputs['metalType'] or 'stones-only'} item: "
            f"INR {quote.inr.price} / USD {quote.usd.price} "
            f"(gold {gold_entry.value} {gold_entry.source}, fx {fx_entry.value} {fx_entry.source})"
        )

        return {'success': True, **quote.to_dict(), 'inputs': inputs}


def build_pricing_service(time_provider=None, spawn=None) -> PricingService:
    """Construct the process-wide service from the configured providers."""
    return PricingService(
        gold=GoldPriceProvider(get_metal_provider(), time_provider=time_provider, spawn=spawn),
        exchange=ExchangeRateProvider(get_fx_provider(), time_provider=time_provider, spawn=spawn),
    )
