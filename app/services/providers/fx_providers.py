"""FX rate provider implementations."""
import json
import socket
import urllib.request
import urllib.error
from typing import Optional

from app.services.config import get_fetch_timeout_seconds, get_user_agent
from . import FXProvider, FXRate, ProviderError, RateLimitError, NetworkError


class ExchangeRateAPIProvider(FXProvider):
    """ExchangeRate-API provider - free tier without API key.

    Provides USD-based rates for major currencies.
    Free tier: ~1500 requests/month, current rates only.
    """

    BASE_URL = "https://open.er-api.com/v6"

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout if timeout is not None else get_fetch_timeout_seconds()

    @property
    def name(self) -> str:
        return "exchangerate-api"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True  # No key required

    def get_rates(self) -> list[FXRate]:
        """Fetch latest USD-based FX rates."""
        url = f"{self.BASE_URL}/latest/USD"

        try:
            req = urllib.request.Request(url, headers={'User-Agent': get_user_agent()})
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                data = json.loads(response.read().decode('utf-8'))

            if data.get('result') != 'success':
                raise ProviderError(f"API error: {data.get('error-type', 'unknown')}")

            rates = []
            for currency, rate in data.get('rates', {}).items():
                try:
                    rate_value = float(rate)
                except (TypeError, ValueError):
                    continue
                rates.append(FXRate(
                    currency=currency.upper(),
                    rate_to_usd=rate_value,
                    source=self.name
                ))

            return rates

        except urllib.error.HTTPError as e:
            if e.code == 429:
                raise RateLimitError("Rate limit exceeded")
            raise ProviderError(f"HTTP error: {e.code}")
        except urllib.error.URLError as e:
            raise NetworkError(f"Network error: {e.reason}")
        except (socket.timeout, TimeoutError):
            raise NetworkError(f"Timed out after {self._timeout}s")
        except json.JSONDecodeError:
            raise ProviderError("Invalid JSON response")


class FawazExchangeAPIProvider(FXProvider):
    """fawazahmed0/exchange-api provider (via jsDelivr with Cloudflare fallback).

    Provides latest USD-based rates with no API key.
    """

    BASE_URL = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest"
    FALLBACK_URL = "https://latest.currency-api.pages.dev"
    API_VERSION = "v1"
    BASE_CURRENCY = "usd"

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout if timeout is not None else get_fetch_timeout_seconds()

    @property
    def name(self) -> str:
        return "fawaz-exchange-api"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True  # No key required

    def get_rates(self) -> list[FXRate]:
        """Fetch latest FX rates, trying each mirror in turn."""
        endpoints = [
            f"{self.BASE_URL}/{self.API_VERSION}/currencies/{self.BASE_CURRENCY}.min.json",
            f"{self.FALLBACK_URL}/{self.API_VERSION}/currencies/{self.BASE_CURRENCY}.min.json",
            f"{self.BASE_URL}/{self.API_VERSION}/currencies/{self.BASE_CURRENCY}.json",
            f"{self.FALLBACK_URL}/{self.API_VERSION}/currencies/{self.BASE_CURRENCY}.json",
        ]

        last_error = None
        for url in endpoints:
            try:
                req = urllib.request.Request(url, headers={'User-Agent': get_user_agent()})
                with urllib.request.urlopen(req, timeout=self._timeout) as response:
                    data = json.loads(response.read().decode('utf-8'))

                rates_blob = data.get(self.BASE_CURRENCY)
                if not isinstance(rates_blob, dict):
                    raise ProviderError("Unexpected response format")

                rates = []
                for currency, rate in rates_blob.items():
                    try:
                        rate_value = float(rate)
                    except (TypeError, ValueError):
                        continue

                    rates.append(FXRate(
                        currency=str(currency).upper(),
                        rate_to_usd=rate_value,
                        source=self.name
                    ))

                if not any(r.currency == 'USD' for r in rates):
                    rates.append(FXRate(currency='USD', rate_to_usd=1.0, source=self.name))

                return rates

            except urllib.error.HTTPError as e:
                last_error = e
                if e.code == 429:
                    raise RateLimitError("Rate limit exceeded")
                continue
            except urllib.error.URLError as e:
                last_error = e
                continue
            except (socket.timeout, TimeoutError) as e:
                last_error = e
                continue
            except json.JSONDecodeError as e:
                last_error = e
                continue

        if last_error:
            raise ProviderError(f"Failed to fetch rates: {last_error}")
        raise ProviderError("Failed to fetch rates")


class ChainedFXProvider(FXProvider):
    """Try a primary provider, then fall back when needed."""

    def __init__(self, primary: FXProvider, fallback: FXProvider):
        self._primary = primary
        self._fallback = fallback
        self._last_provider = primary

    @property
    def name(self) -> str:
        return self._last_provider.name

    @property
    def requires_api_key(self) -> bool:
        return self._primary.requires_api_key and self._fallback.requires_api_key

    def is_configured(self) -> bool:
        return self._primary.is_configured() or self._fallback.is_configured()

    def get_rates(self) -> list[FXRate]:
        """Fetch FX rates using primary, with fallback on failure or empty result."""
        primary_error = None

        try:
            rates = self._primary.get_rates()
            if rates:
                self._last_provider = self._primary
                return rates
        except ProviderError as exc:
            primary_error = exc

        rates = self._fallback.get_rates()
        if rates:
            self._last_provider = self._fallback
            return rates

        if primary_error:
            raise ProviderError(f"Primary provider failed: {primary_error}")
        raise ProviderError("No rates returned from providers")


def find_rate(rates: list[FXRate], currency: str) -> Optional[FXRate]:
    """Pick one currency out of a provider's rate list."""
    currency = currency.upper()
    for rate in rates:
        if rate.currency == currency:
            return rate
    return None
