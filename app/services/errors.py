"""Pricing error taxonomy.

Transient market-data failures never reach this module; they are absorbed by
the provider fallback chain. What is left is bad input (reported to the
caller as a 400) and everything else (logged, reported as a generic 500).
"""


class PricingError(Exception):
    """Base exception for pricing failures."""
    pass


class InvalidInputError(PricingError):
    """Request cannot be priced as given (unknown id, negative weight, ...)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        data = {'success': False, 'error': 'Invalid input', 'message': self.message}
        if self.field:
            data['field'] = self.field
        return data
