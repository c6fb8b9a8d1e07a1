"""Cache-backed market data providers for gold price and USD->INR rate.

Each provider owns one MarketDataCache, constructed once at process start.
Readers never see an error: a failed fetch falls back to the last good
value, and a cold cache with no reachable source falls back to a seeded
estimate (gold) or configured default (exchange rate).
"""
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional

from app.constants import SOURCE_CACHE, SOURCE_DEFAULT, SOURCE_ESTIMATE
from app.services.cache import MarketDataCache, MarketDataEntry, RefreshResult
from app.services.config import (
    get_cache_ttl_seconds,
    get_default_exchange_rate,
    get_exchange_rate_band,
    get_fetch_timeout_seconds,
    get_gold_price_band,
    get_gold_price_baseline,
    get_gold_price_jitter,
    get_gold_price_location,
    get_retry_backoff_seconds,
)
from app.services.providers import FXProvider, MetalProvider, ProviderError, ExtractionError
from app.services.providers.extractors import in_band
from app.services.providers.fx_providers import find_rate
from app.services.time_provider import TimeProvider

logger = logging.getLogger('market_data')

SYNTHETIC_SOURCES = (SOURCE_ESTIMATE, SOURCE_DEFAULT)


class _CachedMarketValue(ABC):
    """Shared read/refresh policy on top of a MarketDataCache."""

    cache_name = 'market_value'

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        time_provider: Optional[TimeProvider] = None,
        spawn=None,
        retry_seconds: Optional[int] = None,
    ):
        self.cache = MarketDataCache(
            self.cache_name,
            self._fetch,
            ttl_seconds=ttl_seconds if ttl_seconds is not None else get_cache_ttl_seconds(),
            time_provider=time_provider,
            spawn=spawn,
            wait_timeout=get_fetch_timeout_seconds() * 2,
            retry_seconds=retry_seconds if retry_seconds is not None else get_retry_backoff_seconds(),
        )

    @abstractmethod
    def _fetch(self) -> tuple[float, str]:
        """Fetch and validate a live (value, source) pair, or raise."""
        pass

    @abstractmethod
    def _fallback(self) -> tuple[float, str]:
        """Synthetic (value, source) used when nothing has ever been fetched."""
        pass

    def current(self, block: bool = True) -> MarketDataEntry:
        """Return the value every consumer should use right now.

        Args:
            block: When the cache is cold, wait for the (single, shared)
                fetch. With block=False a cold cache is seeded with the
                fallback at once and refreshed in the background.
        """
        if block:
            entry = self.cache.get()
        else:
            entry = self.cache.peek()
            if entry is None or entry.stale:
                self.cache.refresh_in_background()

        if entry is None:
            value, source = self._fallback()
            logger.warning(f"{self.cache_name}: no live or cached value, using {source} {value}")
            return self.cache.seed(value, source)

        if entry.stale and entry.source not in SYNTHETIC_SOURCES:
            return replace(entry, source=f"{SOURCE_CACHE}:{entry.source}")
        return entry

    def refresh(self) -> RefreshResult:
        return self.cache.refresh()

    def is_live(self, entry: MarketDataEntry) -> bool:
        return not entry.stale and entry.source not in SYNTHETIC_SOURCES


class GoldPriceProvider(_CachedMarketValue):
    """24K gold price per gram in INR for a fixed reference location."""

    cache_name = 'gold_price'

    def __init__(
        self,
        source: MetalProvider,
        band: Optional[tuple[float, float]] = None,
        baseline: Optional[float] = None,
        jitter: Optional[float] = None,
        location: Optional[str] = None,
        rng: Optional[random.Random] = None,
        **kwargs,
    ):
        self._source = source
        self.band = band or get_gold_price_band()
        self.baseline = baseline if baseline is not None else get_gold_price_baseline()
        self.jitter = jitter if jitter is not None else get_gold_price_jitter()
        self.location = location or get_gold_price_location()
        self._rng = rng or random.Random()
        super().__init__(**kwargs)

    @property
    def source_name(self) -> str:
        return self._source.name

    def _fetch(self) -> tuple[float, str]:
        price = self._source.get_gold_price()
        if not in_band(price.price_per_gram_inr, self.band):
            low, high = self.band
            raise ExtractionError(
                f"Gold price {price.price_per_gram_inr} outside {low:g}-{high:g} INR/g"
            )
        return price.price_per_gram_inr, price.source

    def _fallback(self) -> tuple[float, str]:
        jitter = self._rng.uniform(-self.jitter, self.jitter)
        return float(round(self.baseline + jitter)), SOURCE_ESTIMATE


class ExchangeRateProvider(_CachedMarketValue):
    """USD->INR exchange rate (1 USD = X INR)."""

    cache_name = 'exchange_rate'

    def __init__(
        self,
        source: FXProvider,
        currency: str = 'INR',
        default_rate: Optional[float] = None,
        band: Optional[tuple[float, float]] = None,
        **kwargs,
    ):
        self._source = source
        self.currency = currency
        self.default_rate = default_rate if default_rate is not None else get_default_exchange_rate()
        self.band = band or get_exchange_rate_band()
        super().__init__(**kwargs)

    @property
    def source_name(self) -> str:
        return self._source.name

    def _fetch(self) -> tuple[float, str]:
        rate = find_rate(self._source.get_rates(), self.currency)
        if rate is None:
            raise ProviderError(f"{self.currency} rate missing from {self._source.name}")
        if not in_band(rate.rate_to_usd, self.band):
            low, high = self.band
            raise ExtractionError(f"USD->{self.currency} {rate.rate_to_usd} outside {low:g}-{high:g}")
        return round(rate.rate_to_usd, 4), rate.source

    def _fallback(self) -> tuple[float, str]:
        return float(self.default_rate), SOURCE_DEFAULT
