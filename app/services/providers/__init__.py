"""Pluggable market data provider interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class FXRate:
    """FX rate data point."""
    currency: str       # ISO 4217 code
    rate_to_usd: float  # 1 USD = X currency
    source: str


@dataclass
class MetalPrice:
    """Metal price data point."""
    metal: str                  # only 'gold' today
    price_per_gram_inr: float   # 24K, per gram
    source: str


class FXProvider(ABC):
    """Abstract base for FX rate providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured (API key set if required)."""
        pass

    @abstractmethod
    def get_rates(self) -> list[FXRate]:
        """Fetch latest USD-based FX rates.

        Returns:
            List of FXRate objects

        Raises:
            ProviderError: If fetch fails
        """
        pass


class MetalProvider(ABC):
    """Abstract base for gold price providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured."""
        pass

    @abstractmethod
    def get_gold_price(self) -> MetalPrice:
        """Fetch the current 24K gold price per gram in INR.

        Raises:
            ProviderError: If the fetch fails or no value could be extracted
        """
        pass


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class RateLimitError(ProviderError):
    """API rate limit exceeded."""
    pass


class AuthenticationError(ProviderError):
    """API key invalid or missing."""
    pass


class NetworkError(ProviderError):
    """Network connectivity issue or timeout."""
    pass


class ExtractionError(ProviderError):
    """Response fetched but no plausible value could be extracted."""
    pass
