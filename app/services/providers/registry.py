"""Provider registry and selection logic."""
from app.services.config import get_goldapi_key
from . import FXProvider, MetalProvider
from .fx_providers import ExchangeRateAPIProvider, FawazExchangeAPIProvider, ChainedFXProvider
from .metal_providers import GoldAPIProvider, GoldRatePageProvider, ChainedMetalProvider


def get_fx_provider() -> FXProvider:
    """Get configured FX provider.

    ExchangeRate-API first, falling back to the Fawaz Exchange API mirrors.
    Neither needs a key.
    """
    return ChainedFXProvider(
        primary=ExchangeRateAPIProvider(),
        fallback=FawazExchangeAPIProvider(),
    )


def get_metal_provider() -> MetalProvider:
    """Get configured gold price provider.

    Priority:
    1. GoldAPI (if key configured), falling back to the rate page
    2. Gold rate page scrape
    """
    if get_goldapi_key():
        return ChainedMetalProvider(primary=GoldAPIProvider(), fallback=GoldRatePageProvider())
    return GoldRatePageProvider()


def get_provider_status() -> dict:
    """Return status of all configured providers."""
    fx = get_fx_provider()
    metal = get_metal_provider()

    return {
        'fx': {
            'provider': fx.name,
            'requires_key': fx.requires_api_key,
            'configured': fx.is_configured(),
        },
        'gold': {
            'provider': metal.name,
            'requires_key': metal.requires_api_key,
            'configured': metal.is_configured(),
        },
    }
