"""Engine subpackage - core quote pricing logic and resolution."""
from .errors import ConfigurationError, ConversionUnavailable, InvalidInput, LineNotFound, QuoteError
from .models import (
    BillingPeriod,
    FeeBase,
    LineItem,
    PricedLine,
    PricingConfig,
    ProductKind,
    QuoteRequest,
    QuoteResult,
    QuoteTotals,
    TaxOrder,
    TierRange,
)
from .rate_table import RateTable, load_rate_table
from .tier_resolver import resolve_tier
from .currency import CurrencyConverter, ExchangeRateProvider, StaticRateProvider, to_display_currency
from .line_pricer import price_line
from .aggregator import aggregate, summarize
from .quote_engine import QuoteEngine

__all__ = [
    'QuoteEngine', 'QuoteRequest', 'QuoteResult', 'QuoteTotals', 'LineItem', 'PricedLine',
    'PricingConfig', 'ProductKind', 'TaxOrder', 'FeeBase', 'BillingPeriod', 'TierRange',
    'RateTable', 'load_rate_table', 'resolve_tier', 'price_line', 'aggregate', 'summarize',
    'CurrencyConverter', 'ExchangeRateProvider', 'StaticRateProvider', 'to_display_currency',
    'QuoteError', 'ConfigurationError', 'InvalidInput', 'LineNotFound', 'ConversionUnavailable',
]
