"""Python consumer side of the pricing API."""
from .coalescer import PriceCoalescer, PriceInputs, State
from .estimate import placeholder_quote
from .http import PricingAPIClient, PricingAPIError

__all__ = [
    'PriceCoalescer',
    'PriceInputs',
    'State',
    'placeholder_quote',
    'PricingAPIClient',
    'PricingAPIError',
]
