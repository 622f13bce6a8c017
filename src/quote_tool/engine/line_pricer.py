"""
Line Pricer - Turns one cart line into a fully composed PricedLine.

Composition order (fixed; changing it changes totals):
1. safe quantity = max(quantity, 1)
2. tier → listed unit cost → base cost without baked-in tax
3. effective markup = max(markup, config floor)
4-5. markup and tax, in the order set by config.tax_order
6. unit profit = resale with tax - base with the same tax (markup only)
7. extend by safe quantity
8. annual billing multiplies the extended totals by 12
"""
import logging
from typing import Optional

from .currency import CurrencyConverter
from .errors import InvalidInput
from .models import BillingPeriod, LineItem, PricedLine, PricingConfig, ProductKind, TaxOrder
from .numbers import percent_factor, to_decimal, to_quantity
from .rate_table import RateTable

logger = logging.getLogger(__name__)

ANNUAL_PERIODS = BillingPeriod.ANNUAL.periods


def billing_period_for(item: LineItem, config: PricingConfig) -> BillingPeriod:
    """Per-line annual flag wins; otherwise the deployment default applies."""
    if item.annual is None:
        return config.billing_period
    return BillingPeriod.ANNUAL if item.annual else BillingPeriod.MONTHLY


def price_line(
    item: LineItem,
    rate_table: RateTable,
    config: PricingConfig,
    converter: Optional[CurrencyConverter] = None,
) -> PricedLine:
    """
    Price a single line. Pure: the same inputs always give an equal result.

    Raises ConfigurationError when the rate table cannot price the line and
    InvalidInput for negative tax or non-numeric fields. Quantities below 1
    and markups below the floor are normalised, not rejected.
    """
    converter = converter or CurrencyConverter.from_config(config)

    product = ProductKind.parse(item.product)
    quantity = to_quantity(item.quantity)
    markup = to_decimal(item.markup_percent, 'markup_percent')
    tax = to_decimal(item.tax_percent, 'tax_percent')
    if tax < 0:
        raise InvalidInput(f"tax_percent cannot be negative, got {tax}")

    safe_quantity = max(quantity, 1)
    tier = rate_table.resolve_tier(product, safe_quantity)
    listed = rate_table.unit_cost(product, tier)
    base = rate_table.base_pre_tax(listed)

    effective_markup = max(markup, config.min_markup_percent)
    markup_factor = percent_factor(effective_markup)
    tax_factor = percent_factor(tax)

    unit_cost_with_tax = base * tax_factor
    unit_resale_pre_tax = base * markup_factor
    if config.tax_order is TaxOrder.AFTER_MARKUP:
        unit_resale = unit_resale_pre_tax * tax_factor
    else:
        unit_resale = unit_cost_with_tax * markup_factor
    unit_profit = unit_resale - unit_cost_with_tax

    billing = billing_period_for(item, config)
    periods = billing.periods
    line_resale_total = unit_resale * safe_quantity * periods
    line_profit_total = unit_profit * safe_quantity * periods

    amounts = {
        'unit_cost_listed': listed,
        'unit_cost_base': base,
        'unit_cost_with_tax': unit_cost_with_tax,
        'unit_resale_pre_tax': unit_resale_pre_tax,
        'unit_resale': unit_resale,
        'unit_profit': unit_profit,
        'annual_unit_resale': unit_resale * ANNUAL_PERIODS,
        'line_resale_total': line_resale_total,
        'line_profit_total': line_profit_total,
    }
    displayed = {f"{name}_display": converter.to_display(value) for name, value in amounts.items()}

    line = PricedLine(
        line_id=item.line_id,
        product=product,
        platform=item.platform,
        tier=tier.label,
        quantity=quantity,
        safe_quantity=safe_quantity,
        billing_period=billing,
        periods=periods,
        markup_percent=markup,
        effective_markup_percent=effective_markup,
        tax_percent=tax,
        tax_order=config.tax_order,
        **amounts,
        **displayed,
    )

    line.add_trace("Product", f"{product.label}", product.category)
    if safe_quantity != quantity:
        line.add_trace("Quantity", f"Stored quantity {quantity} priced as", str(safe_quantity))
        line.add_warning(f"Quantity {quantity} on {product.label} priced as {safe_quantity}")
    line.add_trace("Tier Lookup", f"Quantity {safe_quantity} falls in tier", tier.label)
    line.add_trace("Unit Cost", f"Listed cost for tier {tier.label}", f"${listed:.2f}")
    if rate_table.tax_inclusive:
        line.add_trace(
            "Baked-in Tax",
            f"Removed {rate_table.baked_in_tax_percent}% included tax",
            f"${base:.4f}",
        )
    if effective_markup != markup:
        line.add_trace("Markup Floor", f"Markup {markup}% raised to minimum", f"{effective_markup}%")
    if effective_markup < config.target_markup_percent:
        line.add_warning(
            f"Markup {effective_markup}% on {product.label} is below the "
            f"{config.target_markup_percent}% target"
        )

    if config.tax_order is TaxOrder.AFTER_MARKUP:
        line.add_trace("Markup", f"{effective_markup}% on base cost", f"${unit_resale_pre_tax:.4f}")
        line.add_trace("Tax", f"{tax}% on marked-up price", f"${unit_resale:.4f}")
    else:
        line.add_trace("Tax", f"{tax}% on base cost", f"${unit_cost_with_tax:.4f}")
        line.add_trace("Markup", f"{effective_markup}% on taxed cost", f"${unit_resale:.4f}")
    line.add_trace("Profit", "Resale minus taxed base cost, per unit", f"${unit_profit:.4f}")

    extension = f"Quantity {safe_quantity} × ${unit_resale:.2f}"
    if periods != 1:
        extension += f" × {periods} months"
    line.add_trace("Extension", extension, f"${line_resale_total:.2f}")

    logger.debug(
        "Priced %s x%d (%s): tier=%s resale=%s",
        product.value, safe_quantity, billing.value, tier.label, line_resale_total,
    )
    return line
