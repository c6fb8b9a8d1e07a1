"""Tests for gold price provider implementations."""
import io
import json
import urllib.error
from unittest.mock import patch, MagicMock

import pytest

from app.services.providers import (
    AuthenticationError,
    ExtractionError,
    NetworkError,
    ProviderError,
    RateLimitError,
)
from app.services.providers.metal_providers import (
    ChainedMetalProvider,
    GoldAPIProvider,
    GoldRatePageProvider,
    _ExtractingGoldProvider,
)
from tests.fakes.fake_providers import FakeMetalProvider

PAGE = """
<html><body>
<h2>Today 24 Carat Gold Rate Per Gram in Hyderabad (INR)</h2>
<table><tr><td>1 Gram</td><td>&#8377; 9,840</td><td>+ &#8377; 10</td></tr></table>
</body></html>
"""


def mock_response(body: str) -> MagicMock:
    mock_urlopen = MagicMock()
    mock_urlopen.__enter__ = MagicMock(return_value=mock_urlopen)
    mock_urlopen.__exit__ = MagicMock(return_value=False)
    mock_urlopen.read = MagicMock(return_value=body.encode('utf-8'))
    return mock_urlopen


def http_error(code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError('https://example.test', code, 'error', {}, io.BytesIO(b''))


def test_extracting_provider_requires_request_hook():
    with pytest.raises(TypeError):
        _ExtractingGoldProvider()


class TestGoldRatePageProvider:
    """Tests for the scraping provider."""

    @pytest.fixture
    def provider(self):
        return GoldRatePageProvider(url='https://example.test/gold', timeout=1)

    def test_provider_metadata(self, provider):
        assert provider.name == "gold-rate-page"
        assert provider.requires_api_key is False
        assert provider.is_configured() is True

    def test_extracts_per_gram_rate(self, provider):
        with patch('urllib.request.urlopen', return_value=mock_response(PAGE)) as mock_open:
            price = provider.get_gold_price()

        assert price.price_per_gram_inr == 9840.0
        assert price.metal == 'gold'
        assert price.source == 'gold-rate-page:per-gram-table'
        request = mock_open.call_args[0][0]
        assert request.full_url == 'https://example.test/gold'
        assert mock_open.call_args[1]['timeout'] == 1

    def test_falls_through_to_later_extractor(self, provider):
        page = '<p>Gold today: Rs. 10,120 per gram</p>'
        with patch('urllib.request.urlopen', return_value=mock_response(page)):
            price = provider.get_gold_price()

        assert price.price_per_gram_inr == 10120.0
        assert price.source == 'gold-rate-page:any-rupee-amount'

    def test_no_plausible_value_raises_extraction_error(self, provider):
        page = '<p>Gold today: Rs. 98,400 per 10 gram</p>'
        with patch('urllib.request.urlopen', return_value=mock_response(page)):
            with pytest.raises(ExtractionError):
                provider.get_gold_price()

    def test_uses_configured_url(self, monkeypatch):
        monkeypatch.setenv('GOLD_PRICE_SOURCE_URL', 'https://rates.example/hyd')
        provider = GoldRatePageProvider()
        with patch('urllib.request.urlopen', return_value=mock_response(PAGE)) as mock_open:
            provider.get_gold_price()
        assert mock_open.call_args[0][0].full_url == 'https://rates.example/hyd'

    @pytest.mark.parametrize('code,error', [
        (429, RateLimitError),
        (403, AuthenticationError),
        (500, ProviderError),
    ])
    def test_http_errors(self, provider, code, error):
        with patch('urllib.request.urlopen', side_effect=http_error(code)):
            with pytest.raises(error):
                provider.get_gold_price()

    def test_network_error(self, provider):
        with patch('urllib.request.urlopen', side_effect=urllib.error.URLError('dns')):
            with pytest.raises(NetworkError):
                provider.get_gold_price()

    def test_timeout(self, provider):
        with patch('urllib.request.urlopen', side_effect=TimeoutError()):
            with pytest.raises(NetworkError):
                provider.get_gold_price()


class TestGoldAPIProvider:
    """Tests for the GoldAPI provider."""

    def test_not_configured_without_key(self, monkeypatch):
        monkeypatch.delenv('GOLDAPI_KEY', raising=False)
        provider = GoldAPIProvider()
        assert provider.requires_api_key is True
        assert provider.is_configured() is False
        with pytest.raises(ProviderError):
            provider.get_gold_price()

    def test_reads_price_gram_24k(self):
        provider = GoldAPIProvider(api_key='secret', timeout=1)
        body = json.dumps({'metal': 'XAU', 'currency': 'INR', 'price_gram_24k': 9765.4321})
        with patch('urllib.request.urlopen', return_value=mock_response(body)) as mock_open:
            price = provider.get_gold_price()

        assert price.price_per_gram_inr == 9765.43
        assert price.source == 'goldapi:goldapi-json'
        request = mock_open.call_args[0][0]
        assert request.full_url.endswith('/XAU/INR')
        assert request.get_header('X-access-token') == 'secret'

    def test_bad_key(self):
        provider = GoldAPIProvider(api_key='wrong', timeout=1)
        with patch('urllib.request.urlopen', side_effect=http_error(401)):
            with pytest.raises(AuthenticationError):
                provider.get_gold_price()


class TestChainedMetalProvider:
    def test_primary_used_when_healthy(self):
        chained = ChainedMetalProvider(FakeMetalProvider(9000), FakeMetalProvider(9500))
        assert chained.get_gold_price().price_per_gram_inr == 9000

    def test_fallback_on_provider_error(self):
        primary = FakeMetalProvider(error=NetworkError('down'))
        chained = ChainedMetalProvider(primary, FakeMetalProvider(9500))

        assert chained.get_gold_price().price_per_gram_inr == 9500
        assert primary.calls == 1

    def test_fallback_failure_propagates(self):
        chained = ChainedMetalProvider(
            FakeMetalProvider(error=NetworkError('down')),
            FakeMetalProvider(error=ExtractionError('layout changed')),
        )
        with pytest.raises(ExtractionError):
            chained.get_gold_price()
