"""Tests for the cached gold price and exchange rate providers."""
import random

import pytest

from app.services.market_data import ExchangeRateProvider, GoldPriceProvider, _CachedMarketValue
from app.services.providers import NetworkError
from app.services.time_provider import TimeProvider
from tests.fakes.fake_providers import FakeFXProvider, FakeMetalProvider


@pytest.fixture
def clock():
    return TimeProvider(frozen_time=1_760_000_000.0)


def gold_provider(source, clock, spawn=None, **kwargs):
    return GoldPriceProvider(
        source,
        band=(5000.0, 20000.0),
        baseline=9800.0,
        jitter=150.0,
        location='Hyderabad, India',
        rng=random.Random(7),
        ttl_seconds=3600,
        time_provider=clock,
        spawn=spawn or (lambda target: target()),
        **kwargs,
    )


def exchange_provider(source, clock, spawn=None):
    return ExchangeRateProvider(
        source,
        default_rate=83.0,
        band=(50.0, 150.0),
        ttl_seconds=3600,
        time_provider=clock,
        spawn=spawn or (lambda target: target()),
    )


class TestGoldPriceProvider:
    def test_live_value(self, clock):
        provider = gold_provider(FakeMetalProvider(9840.0), clock)

        entry = provider.current()

        assert entry.value == 9840.0
        assert entry.source == 'fake-gold'
        assert provider.is_live(entry)

    def test_cached_value_survives_outage(self, clock):
        source = FakeMetalProvider(9840.0)
        provider = gold_provider(source, clock)
        provider.current()

        source.error = NetworkError('down')
        clock.advance(3600)
        entry = provider.current()

        assert entry.value == 9840.0
        assert entry.source == 'cache:fake-gold'
        assert entry.stale is True
        assert not provider.is_live(entry)

    def test_estimate_when_nothing_available(self, clock):
        provider = gold_provider(FakeMetalProvider(error=NetworkError('down')), clock)

        entry = provider.current()

        assert entry.source == 'estimate'
        assert 9650 <= entry.value <= 9950
        assert entry.value == round(entry.value)

    def test_estimate_is_stable_once_seeded(self, clock):
        provider = gold_provider(FakeMetalProvider(error=NetworkError('down')), clock)

        first = provider.current()
        second = provider.current()

        assert first.value == second.value

    def test_live_value_replaces_estimate(self, clock):
        source = FakeMetalProvider(error=NetworkError('down'))
        provider = gold_provider(source, clock, retry_seconds=60)
        provider.current()

        source.error = None
        clock.advance(60)
        provider.current()  # stale estimate served while the refresh runs
        entry = provider.current()

        assert entry.value == 7500.0
        assert entry.source == 'fake-gold'

    def test_outage_fetches_once_per_retry_window(self, clock):
        source = FakeMetalProvider(error=NetworkError('down'))
        provider = gold_provider(source, clock, retry_seconds=60)

        entries = [provider.current(block=False) for _ in range(50)]

        assert source.calls == 1
        assert {entry.source for entry in entries} == {'estimate'}

        clock.advance(59)
        provider.current(block=False)
        assert source.calls == 1

        clock.advance(1)
        for _ in range(50):
            provider.current(block=False)
        assert source.calls == 2

    def test_expired_value_fetched_once_during_outage(self, clock):
        source = FakeMetalProvider(9840.0)
        provider = gold_provider(source, clock, retry_seconds=60)
        provider.current()

        source.error = NetworkError('down')
        clock.advance(3600)
        for _ in range(50):
            assert provider.current().source == 'cache:fake-gold'

        assert source.calls == 2

    def test_abstract_hooks(self):
        with pytest.raises(TypeError):
            _CachedMarketValue()

    def test_out_of_band_value_rejected(self, clock):
        provider = gold_provider(FakeMetalProvider(98400.0), clock)

        result = provider.refresh()

        assert result.success is False
        assert 'outside' in result.error

    def test_non_blocking_read_on_cold_cache(self, clock):
        spawned = []
        provider = gold_provider(FakeMetalProvider(9840.0), clock, spawn=spawned.append)

        entry = provider.current(block=False)

        assert entry.source == 'estimate'
        assert len(spawned) == 1
        spawned[0]()
        assert provider.current(block=False).value == 9840.0

    def test_config_defaults(self, monkeypatch, clock):
        monkeypatch.setenv('GOLD_PRICE_BASELINE_INR', '10000')
        monkeypatch.setenv('GOLD_PRICE_JITTER_INR', '0')
        monkeypatch.setenv('GOLD_PRICE_LOCATION', 'Mumbai, India')
        provider = GoldPriceProvider(
            FakeMetalProvider(error=NetworkError('down')),
            time_provider=clock,
            spawn=lambda target: target(),
        )

        assert provider.location == 'Mumbai, India'
        assert provider.current().value == 10000.0


class TestExchangeRateProvider:
    def test_live_rate_rounded(self, clock):
        provider = exchange_provider(FakeFXProvider(83.123456), clock)

        entry = provider.current()

        assert entry.value == 83.1235
        assert entry.source == 'fake-fx'

    def test_default_when_unavailable(self, clock):
        provider = exchange_provider(FakeFXProvider(error=NetworkError('down')), clock)

        entry = provider.current()

        assert entry.value == 83.0
        assert entry.source == 'default'
        assert not provider.is_live(entry)

    def test_implausible_rate_keeps_last_good(self, clock):
        source = FakeFXProvider(83.0)
        provider = exchange_provider(source, clock)
        provider.current()

        source.rate = 0.012  # inverted quote
        clock.advance(3600)
        entry = provider.current()

        assert entry.value == 83.0
        assert entry.source == 'cache:fake-fx'

    def test_missing_currency(self, clock):
        source = FakeFXProvider(83.0)
        provider = ExchangeRateProvider(
            source, currency='JPY', default_rate=83.0, time_provider=clock, spawn=lambda target: target()
        )

        result = provider.refresh()

        assert result.success is False
        assert 'JPY' in result.error
