"""Configuration service for market data and pricing settings."""
import os


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


def get_user_agent() -> str:
    """Get the User-Agent string for provider HTTP requests."""
    default_ua = 'Mozilla/5.0 (compatible; JewelryPricing/1.0)'
    return os.environ.get('MARKET_DATA_USER_AGENT', default_ua)


def get_fetch_timeout_seconds() -> float:
    """Get the timeout applied to every external market-data fetch.

    Controlled by MARKET_DATA_FETCH_TIMEOUT_SECONDS env var (default: 10).
    """
    return float(os.environ.get('MARKET_DATA_FETCH_TIMEOUT_SECONDS', '10'))


def get_cache_ttl_seconds() -> int:
    """Get the TTL for the gold price and exchange rate caches.

    Controlled by MARKET_DATA_TTL_SECONDS env var (default: 3600 = 1 hour).
    """
    return int(os.environ.get('MARKET_DATA_TTL_SECONDS', '3600'))


def get_refresh_interval_seconds() -> int:
    """Get the background refresh interval in seconds.

    Controlled by MARKET_DATA_REFRESH_SECONDS env var (default: 3600).
    """
    return int(os.environ.get('MARKET_DATA_REFRESH_SECONDS', '3600'))


def get_retry_backoff_seconds() -> int:
    """Get the wait before retrying a failed background refresh.

    Controlled by MARKET_DATA_RETRY_SECONDS env var (default: 60). Never
    longer than the cache TTL.
    """
    return int(os.environ.get('MARKET_DATA_RETRY_SECONDS', '60'))


def is_background_refresh_enabled() -> bool:
    """Check if the scheduled refresh thread should run (default: on)."""
    return _flag('MARKET_DATA_BACKGROUND_REFRESH', '1')


# Gold price settings
def get_gold_price_source_url() -> str:
    """Get the market page scraped for the 24K gold rate."""
    return os.environ.get(
        'GOLD_PRICE_SOURCE_URL',
        'https://www.goodreturns.in/gold-rates/hyderabad.html',
    )


def get_gold_price_location() -> str:
    """Get the reference location the gold rate is quoted for."""
    return os.environ.get('GOLD_PRICE_LOCATION', 'Hyderabad, India')


def get_goldapi_key() -> str | None:
    """Get GoldAPI key if configured."""
    return os.environ.get('GOLDAPI_KEY')


def get_gold_price_band() -> tuple[float, float]:
    """Get the plausible (min, max) INR-per-gram band for 24K gold."""
    return (
        float(os.environ.get('GOLD_PRICE_MIN_INR', '5000')),
        float(os.environ.get('GOLD_PRICE_MAX_INR', '20000')),
    )


def get_gold_price_baseline() -> float:
    """Get the baseline INR-per-gram used when no live or cached value exists."""
    return float(os.environ.get('GOLD_PRICE_BASELINE_INR', '9800'))


def get_gold_price_jitter() -> float:
    """Get the maximum +/- jitter applied to the baseline estimate."""
    return float(os.environ.get('GOLD_PRICE_JITTER_INR', '150'))


# Exchange rate settings
def get_default_exchange_rate() -> float:
    """Get the USD->INR rate served when no live or cached rate exists."""
    return float(os.environ.get('EXCHANGE_RATE_DEFAULT', '83'))


def get_exchange_rate_band() -> tuple[float, float]:
    """Get the plausible (min, max) band for USD->INR."""
    return (
        float(os.environ.get('EXCHANGE_RATE_MIN', '50')),
        float(os.environ.get('EXCHANGE_RATE_MAX', '150')),
    )


def get_market_data_config() -> dict:
    """Get complete market data configuration status."""
    gold_min, gold_max = get_gold_price_band()
    fx_min, fx_max = get_exchange_rate_band()
    return {
        'cache_ttl_seconds': get_cache_ttl_seconds(),
        'fetch_timeout_seconds': get_fetch_timeout_seconds(),
        'refresh_interval_seconds': get_refresh_interval_seconds(),
        'retry_backoff_seconds': get_retry_backoff_seconds(),
        'background_refresh_enabled': is_background_refresh_enabled(),
        'gold': {
            'source_url': get_gold_price_source_url(),
            'location': get_gold_price_location(),
            'goldapi_configured': bool(get_goldapi_key()),
            'band_inr': [gold_min, gold_max],
            'baseline_inr': get_gold_price_baseline(),
            'jitter_inr': get_gold_price_jitter(),
        },
        'exchange_rate': {
            'default': get_default_exchange_rate(),
            'band': [fx_min, fx_max],
        },
        'user_agent': get_user_agent(),
    }
