"""
Golden test cases for quote engine regression testing.
These tests capture the expected behavior of the quote engine and
should fail if pricing logic changes unexpectedly.

Expected figures are exact (Decimal), not approximate.
"""
import csv
import os
import sys
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool.config.settings import Settings
from quote_tool.engine import QuoteEngine
from quote_tool.services.cart_store import CartStore


@pytest.fixture(scope="module")
def engine(tmp_path_factory):
    """Create a single engine instance with default settings for all tests."""
    return QuoteEngine(Settings.load(tmp_path_factory.mktemp("golden")))


def load_golden_cases():
    """Load golden test cases from CSV."""
    cases_path = os.path.join(os.path.dirname(__file__), 'golden_cases.csv')

    if not os.path.exists(cases_path):
        pytest.skip(f"Golden cases file not found: {cases_path}. Run generate_golden_cases.py first.")

    cases = []
    with open(cases_path, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            cases.append(row)

    return cases


@pytest.mark.parametrize("case", load_golden_cases(), ids=lambda c: f"{c['product']}-qty{c['qty']}")
def test_golden_case(engine, case):
    """Test that pricing matches expected golden case."""
    cart = CartStore()
    cart.add(
        case['product'],
        quantity=int(case['qty']),
        markup_percent=case['markup_percent'],
        tax_percent=case['tax_percent'],
    )

    result = engine.quote_cart(cart)

    assert len(result.lines) == 1, \
        f"Expected 1 line item, got {len(result.lines)}"
    line = result.lines[0]

    assert line.tier == case['expected_tier'], \
        f"Tier mismatch for {case['product']} x{case['qty']}: expected {case['expected_tier']}, got {line.tier}"

    expected_unit = Decimal(case['expected_unit_resale'])
    assert line.unit_resale == expected_unit, \
        f"Unit resale mismatch for {case['product']}: expected {expected_unit}, got {line.unit_resale}"

    expected_total = Decimal(case['expected_line_total'])
    assert line.line_resale_total == expected_total, \
        f"Line total mismatch for {case['product']}: expected {expected_total}, got {line.line_resale_total}"

    expected_profit = Decimal(case['expected_line_profit'])
    assert line.line_profit_total == expected_profit, \
        f"Profit mismatch for {case['product']}: expected {expected_profit}, got {line.line_profit_total}"

    # Single-line quote: subtotal is the line total
    assert result.totals.subtotal_before_discount == expected_total


def test_quote_calculates_totals(engine):
    """Line total is unit resale times quantity for every product."""
    for product in engine.rate_table.products:
        cart = CartStore()
        cart.add(product, quantity=5)
        line = engine.quote_cart(cart).lines[0]
        assert line.line_resale_total == line.unit_resale * 5, \
            f"Line total mismatch for {product.label}: expected {line.unit_resale * 5}, got {line.line_resale_total}"
