"""
Engine errors.

ConfigurationError and ValidationError are fatal: the calculation aborts and
no partial QuoteResult is returned. DataIntegrityWarning is non-fatal; the
engine logs it, records it on the result, and issues it through the warnings
module so callers can turn it into an error with a filter.
"""


class PricingError(Exception):
    """Base class for everything the pricing engine raises."""


class ConfigurationError(PricingError):
    """A required rate or the tenant pricing settings are missing."""


class ValidationError(PricingError):
    """A piece is geometrically or structurally invalid."""

    def __init__(self, message: str, piece_id=None):
        super().__init__(message)
        self.piece_id = piece_id


class DataIntegrityWarning(UserWarning):
    """Calculation continued with a documented fallback."""
