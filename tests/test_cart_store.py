import pytest
import sys
import os
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool.engine import InvalidInput, LineNotFound, ProductKind, QuoteRequest
from quote_tool.config.settings import Settings
from quote_tool.services.cart_store import CartStore


@pytest.fixture
def cart():
    return CartStore()


def test_add_uses_form_defaults(cart):
    line = cart.add(ProductKind.DESKTOP)

    assert line.product is ProductKind.DESKTOP
    assert line.quantity == 1
    assert line.markup_percent == Decimal("15")
    assert line.tax_percent == Decimal("13")
    assert line.annual is None
    assert len(cart) == 1
    assert line.line_id in cart


def test_add_accepts_labels_and_text(cart):
    line = cart.add("SPX VMs", quantity="12", markup_percent="20.5", tax_percent=5)
    assert line.product is ProductKind.VMS
    assert line.quantity == 12
    assert line.markup_percent == Decimal("20.5")


def test_ids_are_unique(cart):
    ids = {cart.add(ProductKind.SBS).line_id for _ in range(50)}
    assert len(ids) == 50


def test_lines_keep_insertion_order(cart):
    first = cart.add(ProductKind.SBS)
    second = cart.add(ProductKind.DESKTOP)
    third = cart.add(ProductKind.VMS)
    assert [line.line_id for line in cart.lines()] == [first.line_id, second.line_id, third.line_id]


def test_zero_quantity_is_stored_as_entered(cart):
    line = cart.add(ProductKind.DESKTOP, quantity=0)
    assert cart.get(line.line_id).quantity == 0
    assert cart.get(line.line_id).safe_quantity == 1


def test_unknown_product_rejected(cart):
    with pytest.raises(InvalidInput):
        cart.add("Mainframe")
    assert len(cart) == 0


def test_negative_tax_rejected_on_add(cart):
    with pytest.raises(InvalidInput):
        cart.add(ProductKind.DESKTOP, tax_percent=-1)


def test_remove(cart):
    line = cart.add(ProductKind.DESKTOP)
    cart.remove(line.line_id)
    assert len(cart) == 0
    with pytest.raises(LineNotFound):
        cart.remove(line.line_id)


def test_update_quantity_from_text(cart):
    line = cart.add(ProductKind.DESKTOP)
    updated = cart.update_field(line.line_id, "quantity", "40")
    assert updated.quantity == 40
    assert cart.get(line.line_id).quantity == 40


def test_update_markup_and_tax(cart):
    line = cart.add(ProductKind.DESKTOP)
    cart.update_field(line.line_id, "markup_percent", 22.5)
    cart.update_field(line.line_id, "tax_percent", "0")
    stored = cart.get(line.line_id)
    assert stored.markup_percent == Decimal("22.5")
    assert stored.tax_percent == Decimal("0")


@pytest.mark.parametrize("field, value", [
    ("quantity", "abc"),
    ("quantity", "2.5"),
    ("markup_percent", ""),
    ("markup_percent", "NaN"),
    ("tax_percent", "-3"),
    ("tax_percent", None),
])
def test_rejected_update_leaves_line_unchanged(cart, field, value):
    line = cart.add(ProductKind.DESKTOP, quantity=7, markup_percent=18, tax_percent=13)
    with pytest.raises(InvalidInput):
        cart.update_field(line.line_id, field, value)
    assert cart.get(line.line_id) == line


def test_update_unknown_field(cart):
    line = cart.add(ProductKind.DESKTOP)
    with pytest.raises(InvalidInput):
        cart.update_field(line.line_id, "product", "SBS")


def test_update_unknown_line(cart):
    with pytest.raises(LineNotFound):
        cart.update_field("missing", "quantity", 3)


def test_returned_lines_are_detached(cart):
    line = cart.add(ProductKind.DESKTOP, quantity=5)
    line.quantity = 999
    cart.lines()[0].quantity = 999
    assert cart.get(line.line_id).quantity == 5


def test_set_billing(cart):
    line = cart.add(ProductKind.DESKTOP)
    assert cart.set_billing(line.line_id, True).annual is True
    assert cart.set_billing(line.line_id, None).annual is None


def test_clear(cart):
    cart.add(ProductKind.DESKTOP)
    cart.add(ProductKind.VMS)
    cart.clear()
    assert len(cart) == 0
    assert cart.lines() == []


def test_request_is_a_frozen_snapshot(cart):
    line = cart.add(ProductKind.DESKTOP, quantity=5)
    request = cart.to_request(discount_percent="10", waive_fee=True)

    cart.update_field(line.line_id, "quantity", 50)
    cart.add(ProductKind.VMS)

    assert isinstance(request, QuoteRequest)
    assert len(request.lines) == 1
    assert request.lines[0].quantity == 5
    assert request.discount_percent == Decimal("10")
    assert request.waive_fee is True


def test_configured_form_defaults(tmp_path):
    settings = Settings.load(tmp_path).with_overrides({
        "default_quantity": 5,
        "default_markup_percent": "20",
        "default_tax_percent": "0",
    })
    cart = CartStore.from_settings(settings)
    line = cart.add(ProductKind.DESKTOP)

    assert line.quantity == 5
    assert line.markup_percent == Decimal("20")
    assert line.tax_percent == Decimal("0")

    # Explicit values still win over the defaults
    assert cart.add(ProductKind.DESKTOP, quantity=0, tax_percent=13).quantity == 0
