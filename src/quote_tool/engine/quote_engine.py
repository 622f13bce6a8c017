"""
Quote Engine - Facade over the pricing pipeline with traceability.

Wires the loaded rate table and pricing configuration into:
- Per-line pricing (tier, markup, tax, annualisation)
- Quote aggregation (discount, processing fee)
- Currency conversion for every monetary figure
- Structured QuoteResult output with trace and warnings
"""
import logging
from decimal import Decimal
from typing import Optional, Sequence

from ..config.settings import Settings, get_settings
from .aggregator import aggregate, summarize
from .currency import CurrencyConverter
from .line_pricer import price_line
from .models import FeeBase, LineItem, PricedLine, ProductKind, QuoteRequest, QuoteResult, QuoteTotals
from .numbers import ZERO, to_decimal
from .rate_table import RateTable, load_rate_table

logger = logging.getLogger(__name__)


class QuoteEngine:
    """
    Core engine that prices quotes using Quantity → Tier → Cost → Resale pipeline.

    Resolution order per line:
    1. Floor the quantity at 1 for pricing
    2. Resolve the tier and listed unit cost from the rate table
    3. Strip baked-in tax if the table is tax-inclusive
    4. Apply markup (floored) and tax in the configured order
    5. Extend by quantity and billing periods
    Then across lines: subtotal → discount → processing fee → grand total.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_table: Optional[RateTable] = None,
        converter: Optional[CurrencyConverter] = None,
    ):
        """
        Initialize engine with the rate table and pricing configuration.

        An injected rate_table or converter replaces the one built from
        settings and survives reload_data().
        """
        self._injected_rate_table = rate_table
        self._injected_converter = converter
        self.settings = settings or get_settings()
        self.config = self.settings.pricing_config()

        if rate_table is None:
            rate_table = load_rate_table(
                self.settings.rate_table,
                tax_inclusive=self.settings.rate_table_tax_inclusive,
                baked_in_tax_percent=self.config.baked_in_tax_percent,
                products=list(ProductKind),
            )
        self.rate_table = rate_table
        self.converter = converter or CurrencyConverter.from_config(self.config)

        logger.info(
            "Quote engine ready: %d products, rate %s %s/%s, fee %s%%",
            len(self.rate_table.products), self.config.exchange_rate,
            self.config.display_currency, self.config.base_currency, self.config.fee_percent,
        )

    def reload_data(self):
        """Reload settings, and the rate table unless one was injected, from disk."""
        self.__init__(
            Settings.load(self.settings.project_root),
            rate_table=self._injected_rate_table,
            converter=self._injected_converter,
        )

    def list_products(self) -> list[dict]:
        """Product options offered to the presentation layer."""
        return [
            {
                "product": kind.value,
                "label": kind.label,
                "category": kind.category,
                "flat_rate": kind.is_flat_rate,
                "tiers": [tier.label for tier in self.rate_table.ranges_for(kind)],
            }
            for kind in self.rate_table.products
        ]

    def price_line(self, item: LineItem) -> PricedLine:
        return price_line(item, self.rate_table, self.config, self.converter)

    def aggregate(self, lines: Sequence[LineItem], discount_percent=ZERO, waive_fee: bool = False) -> QuoteTotals:
        return aggregate(lines, self.rate_table, self.config, discount_percent, waive_fee, self.converter)

    def to_display_currency(self, amount) -> Decimal:
        return self.converter.to_display(to_decimal(amount, 'amount'))

    def calculate(self, request: QuoteRequest) -> QuoteResult:
        """
        Calculate a quote with full traceability.

        Args:
            request: QuoteRequest with line snapshots, discount and fee choice

        Returns:
            QuoteResult with priced lines, totals, trace and warnings
        """
        lines = [self.price_line(item) for item in request.lines]
        totals = summarize(lines, self.config, request.discount_percent, request.waive_fee, self.converter)

        result = QuoteResult(
            lines=lines,
            totals=totals,
            base_currency=self.config.base_currency,
            display_currency=self.config.display_currency,
        )

        # Bubble up line warnings
        for line in lines:
            for warning in line.warnings:
                if warning not in result.warnings:
                    result.add_warning(warning)

        base = self.config.base_currency
        result.add_trace("Lines", f"Priced {totals.line_count} line(s)", f"{totals.subtotal_before_discount:.2f} {base}")
        if totals.discount_amount:
            result.add_trace("Discount", f"{totals.discount_percent}% of subtotal", f"-{totals.discount_amount:.2f} {base}")
        if totals.fee_waived:
            result.add_trace("Processing Fee", "Waived", None)
        else:
            basis = "post-discount" if totals.fee_base is FeeBase.POST_DISCOUNT else "pre-discount"
            result.add_trace(
                "Processing Fee", f"{totals.fee_percent}% of {basis} amount", f"{totals.fee_amount:.2f} {base}"
            )
        result.add_trace("Grand Total", f"Converted at {self.converter.rate}",
                         f"{totals.grand_total:.2f} {base} / {totals.grand_total_display:.2f} "
                         f"{self.config.display_currency}")
        return result

    def quote_cart(self, cart, discount_percent=ZERO, waive_fee: bool = False) -> QuoteResult:
        """Price the current state of a CartStore."""
        return self.calculate(cart.to_request(discount_percent=discount_percent, waive_fee=waive_fee))
