"""
Currency Converter - Base currency → display currency.

The rate comes from an ExchangeRateProvider. Today only the static provider
exists, but callers must still handle ConversionUnavailable so a live
provider can be swapped in later.
"""
from abc import ABC, abstractmethod
from decimal import Decimal

from .errors import ConversionUnavailable, InvalidInput
from .models import PricingConfig
from .numbers import to_decimal


class ExchangeRateProvider(ABC):
    provider_name: str

    @abstractmethod
    def get_rate(self) -> Decimal:
        """Return display-currency units per base-currency unit."""
        raise NotImplementedError


class StaticRateProvider(ExchangeRateProvider):
    """Fixed exchange rate taken from configuration."""
    provider_name = "static"

    def __init__(self, rate):
        try:
            self.rate = to_decimal(rate, 'exchange_rate')
        except InvalidInput as e:
            raise ConversionUnavailable(str(e)) from None
        if self.rate <= 0:
            raise ConversionUnavailable(f"Exchange rate must be positive, got {self.rate}")

    def get_rate(self) -> Decimal:
        return self.rate


class CurrencyConverter:
    """
    Pure multiplication by the provider's rate.

    No rounding happens here; formatting to two places is an output concern.
    """

    def __init__(self, provider: ExchangeRateProvider):
        self.provider = provider

    @classmethod
    def from_config(cls, config: PricingConfig) -> 'CurrencyConverter':
        return cls(StaticRateProvider(config.exchange_rate))

    @property
    def rate(self) -> Decimal:
        rate = self.provider.get_rate()
        if rate is None:
            raise ConversionUnavailable(
                f"{self.provider.provider_name} provider returned no exchange rate"
            )
        return rate

    def to_display(self, amount: Decimal) -> Decimal:
        return amount * self.rate


def to_display_currency(amount, config: PricingConfig) -> Decimal:
    """Convert a base-currency amount using the configured static rate."""
    return CurrencyConverter.from_config(config).to_display(to_decimal(amount, 'amount'))
