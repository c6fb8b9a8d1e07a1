"""Gold price provider implementations."""
import logging
import socket
import urllib.request
import urllib.error
from abc import abstractmethod
from typing import Optional

from app.services.config import (
    get_fetch_timeout_seconds,
    get_gold_price_band,
    get_gold_price_source_url,
    get_goldapi_key,
    get_user_agent,
)
from . import (
    MetalProvider,
    MetalPrice,
    ProviderError,
    RateLimitError,
    AuthenticationError,
    NetworkError,
    ExtractionError,
)
from .extractors import Extractor, JSONFieldExtractor, default_gold_extractors

logger = logging.getLogger('market_data')


def _fetch_body(url: str, headers: dict, timeout: float) -> str:
    """GET a URL and return the decoded body, mapping failures to ProviderError."""
    try:
        req = urllib.request.Request(url, headers=headers)
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read().decode('utf-8', errors='replace')
    except urllib.error.HTTPError as e:
        if e.code == 429:
            raise RateLimitError("Rate limit exceeded")
        if e.code in (401, 403):
            raise AuthenticationError(f"HTTP error: {e.code}")
        raise ProviderError(f"HTTP error: {e.code}")
    except urllib.error.URLError as e:
        raise NetworkError(f"Network error: {e.reason}")
    except (socket.timeout, TimeoutError):
        raise NetworkError(f"Timed out after {timeout}s")


class _ExtractingGoldProvider(MetalProvider):
    """Fetch a body, then run the extractor list until one yields an in-band value."""

    def __init__(
        self,
        extractors: Optional[list[Extractor]] = None,
        band: Optional[tuple[float, float]] = None,
        timeout: Optional[float] = None,
    ):
        self._extractors = extractors if extractors is not None else default_gold_extractors()
        self._band = band or get_gold_price_band()
        self._timeout = timeout if timeout is not None else get_fetch_timeout_seconds()

    @abstractmethod
    def _request(self) -> tuple[str, dict]:
        """Return the (url, headers) to fetch."""
        pass

    def get_gold_price(self) -> MetalPrice:
        url, headers = self._request()
        body = _fetch_body(url, headers, self._timeout)

        for extractor in self._extractors:
            value = extractor.extract(body, self._band)
            if value is not None:
                logger.info(f"Gold price {value} INR/g matched by '{extractor.name}'")
                return MetalPrice(
                    metal='gold',
                    price_per_gram_inr=round(value, 2),
                    source=f"{self.name}:{extractor.name}",
                )
            logger.debug(f"Extractor '{extractor.name}' found no in-band value")

        low, high = self._band
        raise ExtractionError(f"No gold price within {low:g}-{high:g} INR/g found at {url}")


class GoldRatePageProvider(_ExtractingGoldProvider):
    """Scrapes a public gold-rate page for the 24K per-gram rate in INR.

    No API key. Brittle by nature, which is why parsing is delegated to the
    ordered extractor list.
    """

    def __init__(self, url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._url = url or get_gold_price_source_url()

    @property
    def name(self) -> str:
        return "gold-rate-page"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return bool(self._url)

    def _request(self) -> tuple[str, dict]:
        return self._url, {
            'User-Agent': get_user_agent(),
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
            'Cache-Control': 'no-cache',
        }


class GoldAPIProvider(_ExtractingGoldProvider):
    """GoldAPI.io provider - requires API key.

    Queries XAU/INR directly, which already carries a 24K per-gram field.
    Free tier: 300 requests/month.
    """

    BASE_URL = "https://www.goldapi.io/api"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        kwargs.setdefault('extractors', [JSONFieldExtractor('price_gram_24k', name='goldapi-json')])
        super().__init__(**kwargs)
        self._api_key = api_key or get_goldapi_key()

    @property
    def name(self) -> str:
        return "goldapi"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _request(self) -> tuple[str, dict]:
        if not self._api_key:
            raise ProviderError("API key not configured")
        return f"{self.BASE_URL}/XAU/INR", {
            'User-Agent': get_user_agent(),
            'x-access-token': self._api_key,
        }


class ChainedMetalProvider(MetalProvider):
    """Try a primary provider, then fall back when it fails."""

    def __init__(self, primary: MetalProvider, fallback: MetalProvider):
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

    def get_gold_price(self) -> MetalPrice:
        try:
            price = self._primary.get_gold_price()
            self._last_provider = self._primary
            return price
        except ProviderError as exc:
            logger.warning(f"{self._primary.name} failed, trying {self._fallback.name}: {exc}")

        price = self._fallback.get_gold_price()
        self._last_provider = self._fallback
        return price
