"""Pytest fixtures for pricing engine tests."""
import random

import pytest

from app import create_app
from app.db import get_db
from app.services.market_data import GoldPriceProvider, ExchangeRateProvider
from app.services.pricing import PricingService
from app.services.time_provider import TimeProvider
from tests.fakes.fake_providers import FakeMetalProvider, FakeFXProvider


# Fixed "now" for deterministic TTL tests
FROZEN_NOW = 1_760_000_000.0


def run_inline(target):
    """spawn() replacement: run background refreshes synchronously."""
    target()


@pytest.fixture(autouse=True)
def no_background_refresh(monkeypatch):
    """Tests drive refreshes themselves; keep create_app from starting the thread."""
    monkeypatch.setenv('MARKET_DATA_BACKGROUND_REFRESH', '0')


@pytest.fixture
def frozen_time():
    """Frozen clock shared by every cache built in a test."""
    return TimeProvider(frozen_time=FROZEN_NOW)


@pytest.fixture
def metal_source():
    return FakeMetalProvider(price=7500.0)


@pytest.fixture
def fx_source():
    return FakeFXProvider(rate=83.0)


@pytest.fixture
def gold_provider(metal_source, frozen_time):
    return GoldPriceProvider(
        metal_source,
        band=(5000.0, 20000.0),
        baseline=9800.0,
        jitter=150.0,
        location='Hyderabad, India',
        rng=random.Random(42),
        ttl_seconds=3600,
        time_provider=frozen_time,
        spawn=run_inline,
    )


@pytest.fixture
def exchange_provider(fx_source, frozen_time):
    return ExchangeRateProvider(
        fx_source,
        default_rate=83.0,
        band=(50.0, 150.0),
        ttl_seconds=3600,
        time_provider=frozen_time,
        spawn=run_inline,
    )


@pytest.fixture
def pricing_service(gold_provider, exchange_provider):
    return PricingService(gold=gold_provider, exchange=exchange_provider)


@pytest.fixture
def app(tmp_path, pricing_service):
    """Create application for testing.

    Yields:
        Flask application configured for testing with fake providers.
    """
    app = create_app({'TESTING': True, 'DATA_DIR': str(tmp_path)}, pricing_service=pricing_service)
    yield app


@pytest.fixture
def client(app):
    """Create test client.

    Yields:
        Flask test client for making requests.
    """
    with app.test_client() as client:
        yield client


@pytest.fixture
def db_app(app):
    """Application with a seeded catalog.

    Metal types:
        1 18K Yellow Gold   (name-derived 0.75 x 1.0)
        2 22K Yellow Gold   (name-derived 0.916 x 1.0)
        3 18K White Gold    (name-derived 0.75 x 1.1)
        4 Platinum          (name-derived 0.95 x 1.4)
        5 House Alloy       (price_modifier 133%)
        6 Explicit Gold     (explicit 0.8 x 1.2)
        7 Retired Gold      (inactive)
    Stone types:
        1 Natural Diamond 56000/ct, 2 Ruby 3000/ct, 3 Emerald 3500/ct
    """
    with app.app_context():
        db = get_db()
        db.executemany(
            'INSERT INTO metal_types (id, name, price_modifier, purity_factor, type_multiplier, is_active) '
            'VALUES (?, ?, ?, ?, ?, ?)',
            [
                (1, '18K Yellow Gold', 0, None, None, 1),
                (2, '22K Yellow Gold', 0, None, None, 1),
                (3, '18K White Gold', 0, None, None, 1),
                (4, 'Platinum', 0, None, None, 1),
                (5, 'House Alloy', 133, None, None, 1),
                (6, 'Explicit Gold', 0, 0.8, 1.2, 1),
                (7, 'Retired Gold', 0, None, None, 0),
            ]
        )
        db.executemany(
            'INSERT INTO stone_types (id, name, price_per_carat, category) VALUES (?, ?, ?, ?)',
            [
                (1, 'Natural Diamond', 56000, 'diamond'),
                (2, 'Ruby', 3000, 'precious'),
                (3, 'Emerald', 3500, 'precious'),
            ]
        )
        db.commit()
    yield app


@pytest.fixture
def db_client(db_app):
    """Create test client with a seeded catalog."""
    with db_app.test_client() as client:
        yield client
