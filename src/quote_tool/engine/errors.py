"""
Error taxonomy for the quote engine.

ConfigurationError is a deployment bug (broken rate table or settings) and
should stop startup. InvalidInput is a correctable user mistake on a single
field or line and never poisons the rest of the cart.
"""


class QuoteError(Exception):
    """Base class for all quote engine errors."""


class ConfigurationError(QuoteError):
    """Rate table or pricing configuration is malformed or incomplete."""


class InvalidInput(QuoteError):
    """A caller-supplied value is outside the accepted domain."""


class LineNotFound(InvalidInput):
    """No cart line exists with the requested id."""

    def __init__(self, line_id: str):
        super().__init__(f"Line '{line_id}' not found")
        self.line_id = line_id


class ConversionUnavailable(QuoteError):
    """The exchange-rate provider could not supply a rate."""
