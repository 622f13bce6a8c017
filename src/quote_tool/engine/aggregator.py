"""
Quote Aggregator - Combines priced lines into quote totals.

Order is fixed: sum lines → quote discount → processing fee. The fee applies
to the post-discount amount unless the deployment sets fee_base to
pre_discount.
"""
import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .currency import CurrencyConverter
from .errors import InvalidInput
from .line_pricer import price_line
from .models import FeeBase, LineItem, PricedLine, PricingConfig, QuoteTotals
from .numbers import HUNDRED, ZERO, to_decimal
from .rate_table import RateTable

logger = logging.getLogger(__name__)


def check_discount(discount_percent) -> Decimal:
    discount = to_decimal(discount_percent, 'discount_percent')
    if not (0 <= discount <= 100):
        raise InvalidInput(f"discount_percent must be within 0-100, got {discount}")
    return discount


def summarize(
    priced_lines: Iterable[PricedLine],
    config: PricingConfig,
    discount_percent=ZERO,
    waive_fee: bool = False,
    converter: Optional[CurrencyConverter] = None,
) -> QuoteTotals:
    """Roll already-priced lines up into QuoteTotals."""
    converter = converter or CurrencyConverter.from_config(config)
    discount = check_discount(discount_percent)
    if waive_fee and not config.fee_waivable:
        raise InvalidInput("Processing fee cannot be waived in this deployment")

    line_count = 0
    subtotal = ZERO
    profit_total = ZERO
    for line in priced_lines:
        line_count += 1
        subtotal += line.line_resale_total
        profit_total += line.line_profit_total

    discount_amount = subtotal * discount / HUNDRED
    after_discount = subtotal - discount_amount

    fee_basis = after_discount if config.fee_base is FeeBase.POST_DISCOUNT else subtotal
    fee_amount = ZERO if waive_fee else fee_basis * config.fee_percent / HUNDRED
    grand_total = after_discount + fee_amount
    net_profit = profit_total - discount_amount

    amounts = {
        'subtotal_before_discount': subtotal,
        'profit_total': profit_total,
        'discount_amount': discount_amount,
        'amount_after_discount': after_discount,
        'fee_amount': fee_amount,
        'grand_total': grand_total,
        'net_profit': net_profit,
    }
    displayed = {f"{name}_display": converter.to_display(value) for name, value in amounts.items()}

    logger.debug(
        "Aggregated %d lines: subtotal=%s discount=%s fee=%s total=%s",
        line_count, subtotal, discount_amount, fee_amount, grand_total,
    )
    return QuoteTotals(
        line_count=line_count,
        discount_percent=discount,
        fee_percent=config.fee_percent,
        fee_base=config.fee_base,
        fee_waived=bool(waive_fee),
        **amounts,
        **displayed,
    )


def aggregate(
    lines: Sequence[LineItem],
    rate_table: RateTable,
    config: PricingConfig,
    discount_percent=ZERO,
    waive_fee: bool = False,
    converter: Optional[CurrencyConverter] = None,
) -> QuoteTotals:
    """
    Price every line independently, then total them.

    An empty sequence gives all-zero totals, not an error.
    """
    converter = converter or CurrencyConverter.from_config(config)
    priced = [price_line(line, rate_table, config, converter) for line in lines]
    return summarize(priced, config, discount_percent, waive_fee, converter)
