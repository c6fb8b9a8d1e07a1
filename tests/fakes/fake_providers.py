"""Fake market data providers for testing without network calls."""
from typing import Optional

from app.services.providers import FXProvider, FXRate, MetalProvider, MetalPrice


class FakeMetalProvider(MetalProvider):
    """Returns a configurable gold price, or raises."""

    def __init__(self, price: float = 7500.0, error: Optional[Exception] = None):
        self.price = price
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake-gold"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True

    def get_gold_price(self) -> MetalPrice:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return MetalPrice(metal='gold', price_per_gram_inr=self.price, source=self.name)


class FakeFXProvider(FXProvider):
    """Returns a configurable USD->INR rate, or raises."""

    def __init__(self, rate: float = 83.0, error: Optional[Exception] = None):
        self.rate = rate
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake-fx"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True

    def get_rates(self) -> list[FXRate]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [
            FXRate(currency='USD', rate_to_usd=1.0, source=self.name),
            FXRate(currency='INR', rate_to_usd=self.rate, source=self.name),
        ]
