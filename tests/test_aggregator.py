"""
Quote aggregation tests.

Two-line cart used throughout: SPX Desktop x30 (tier 26-50, 6.40) and
SPX VMs x5 (tier 1-25, 33.90), both at 15% markup and 13% tax.
    Desktop line  249.504      profit 32.544
    VMs line      220.26525    profit 28.73025
    subtotal      469.76925
"""
import pytest
import sys
import os
from decimal import Decimal
from pathlib import Path

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool.engine import (
    FeeBase,
    InvalidInput,
    LineItem,
    PricingConfig,
    ProductKind,
    aggregate,
    load_rate_table,
    price_line,
    summarize,
)

RATE_TABLE_CSV = Path(src_path) / 'quote_tool' / 'data' / 'rate_table.csv'


@pytest.fixture(scope="module")
def rate_table():
    return load_rate_table(RATE_TABLE_CSV)


@pytest.fixture
def config():
    return PricingConfig()


@pytest.fixture
def cart_lines():
    return [
        LineItem("a", ProductKind.DESKTOP, 30, Decimal("15"), Decimal("13")),
        LineItem("b", ProductKind.VMS, 5, Decimal("15"), Decimal("13")),
    ]


def test_empty_quote_is_all_zero(rate_table, config):
    totals = aggregate([], rate_table, config, discount_percent=10)

    assert totals.line_count == 0
    for name in totals.MONEY_FIELDS:
        assert getattr(totals, name) == 0, name
        assert getattr(totals, f"{name}_display") == 0, name


def test_line_totals_sum_to_subtotal(rate_table, config, cart_lines):
    priced = [price_line(line, rate_table, config) for line in cart_lines]
    assert priced[0].line_resale_total == Decimal("249.504")
    assert priced[1].line_resale_total == Decimal("220.26525")

    totals = summarize(priced, config)
    assert totals.line_count == 2
    assert totals.subtotal_before_discount == Decimal("469.76925")
    assert totals.profit_total == Decimal("61.27425")


def test_discount_then_post_discount_fee(rate_table, config, cart_lines):
    totals = aggregate(cart_lines, rate_table, config, discount_percent=Decimal("10"))

    assert totals.discount_amount == Decimal("46.976925")
    assert totals.amount_after_discount == Decimal("422.792325")
    assert totals.fee_base is FeeBase.POST_DISCOUNT
    assert totals.fee_amount == Decimal("12.260977425")
    assert totals.grand_total == Decimal("435.053302425")
    assert totals.net_profit == Decimal("14.297325")


def test_pre_discount_fee_base(rate_table, cart_lines):
    config = PricingConfig(fee_base="pre_discount")
    totals = aggregate(cart_lines, rate_table, config, discount_percent=Decimal("10"))

    assert totals.fee_amount == Decimal("13.62330825")
    assert totals.grand_total == Decimal("436.41563325")


def test_no_discount_fee_bases_agree(rate_table, cart_lines):
    post = aggregate(cart_lines, rate_table, PricingConfig(fee_base="post_discount"))
    pre = aggregate(cart_lines, rate_table, PricingConfig(fee_base="pre_discount"))
    assert post.grand_total == pre.grand_total


def test_fee_waiver_removes_exactly_the_fee(rate_table, config, cart_lines):
    charged = aggregate(cart_lines, rate_table, config, discount_percent=10)
    waived = aggregate(cart_lines, rate_table, config, discount_percent=10, waive_fee=True)

    assert waived.fee_waived is True
    assert waived.fee_amount == 0
    assert waived.grand_total == waived.amount_after_discount
    assert charged.grand_total - waived.grand_total == charged.fee_amount


def test_waiver_rejected_when_not_waivable(rate_table, cart_lines):
    config = PricingConfig(fee_waivable=False)
    with pytest.raises(InvalidInput):
        aggregate(cart_lines, rate_table, config, waive_fee=True)
    # Not waiving is always fine
    assert aggregate(cart_lines, rate_table, config).fee_amount > 0


@pytest.mark.parametrize("discount", ["-1", "100.01", "abc"])
def test_discount_out_of_range(rate_table, config, cart_lines, discount):
    with pytest.raises(InvalidInput):
        aggregate(cart_lines, rate_table, config, discount_percent=discount)


def test_full_discount(rate_table, config, cart_lines):
    totals = aggregate(cart_lines, rate_table, config, discount_percent=100)
    assert totals.amount_after_discount == 0
    assert totals.fee_amount == 0
    assert totals.grand_total == 0


def test_display_twins_use_exchange_rate(rate_table, config, cart_lines):
    totals = aggregate(cart_lines, rate_table, config, discount_percent=10)
    for name in totals.MONEY_FIELDS:
        assert getattr(totals, f"{name}_display") == getattr(totals, name) * config.exchange_rate


def test_annual_lines_aggregate_annual_totals(rate_table, config):
    lines = [LineItem("a", ProductKind.DESKTOP, 10, Decimal("15"), Decimal("13"), annual=True)]
    totals = aggregate(lines, rate_table, config)
    assert totals.subtotal_before_discount == Decimal("1035.4416")


def test_export_dict_keys_and_rounding(rate_table, config, cart_lines):
    totals = aggregate(cart_lines, rate_table, config, discount_percent=10)
    row = totals.to_export_dict("CAD", "INR")

    assert row["grand_total_cad"] == Decimal("435.05")
    assert row["fee_amount_cad"] == Decimal("12.26")
    assert row["discount_amount_cad"] == Decimal("46.98")
    assert row["discount_percent"] == Decimal("10")
    assert "grand_total_inr" in row
    assert row["fee_base"] == "post_discount"

    # Unrounded export keeps full precision
    raw = totals.to_export_dict("CAD", "INR", decimals=None)
    assert raw["grand_total_cad"] == Decimal("435.053302425")


@pytest.mark.parametrize("decimals", [-1, 11, 40, 2.5])
def test_export_rejects_unusable_decimals(rate_table, config, cart_lines, decimals):
    totals = aggregate(cart_lines, rate_table, config)
    with pytest.raises(InvalidInput):
        totals.to_export_dict("CAD", "INR", decimals=decimals)
