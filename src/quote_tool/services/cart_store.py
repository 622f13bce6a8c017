"""
Cart Store - Ordered, explicitly owned collection of quote lines.

Holds only what the engine needs to price a quote. Nothing derived is cached:
every read is priced fresh from the current line state.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional

from ..engine.errors import InvalidInput, LineNotFound
from ..engine.models import LineItem, ProductKind, QuoteRequest
from ..engine.numbers import ZERO, to_decimal, to_quantity

logger = logging.getLogger(__name__)


class CartStore:
    """Single-session cart of LineItems keyed by an opaque id."""

    MUTABLE_FIELDS = ('quantity', 'markup_percent', 'tax_percent')

    def __init__(
        self,
        default_quantity=1,
        default_markup_percent=Decimal("15"),
        default_tax_percent=Decimal("13"),
    ):
        self._lines: dict[str, LineItem] = {}
        self.default_quantity = to_quantity(default_quantity, 'default_quantity')
        self.default_markup_percent = to_decimal(default_markup_percent, 'default_markup_percent')
        self.default_tax_percent = to_decimal(default_tax_percent, 'default_tax_percent')

    @classmethod
    def from_settings(cls, settings) -> 'CartStore':
        """Cart whose new lines start from the configured form defaults."""
        return cls(
            default_quantity=settings.default_quantity,
            default_markup_percent=settings.default_markup_percent,
            default_tax_percent=settings.default_tax_percent,
        )

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, line_id: str) -> bool:
        return line_id in self._lines

    def add(
        self,
        product,
        quantity=None,
        markup_percent=None,
        tax_percent=None,
        annual: Optional[bool] = None,
        platform: Optional[str] = None,
    ) -> LineItem:
        """
        Add a line and return it with a fresh id.

        Omitted numeric fields take the cart's form defaults. The stored
        quantity is kept exactly as given (even 0); pricing floors it.
        """
        if quantity is None:
            quantity = self.default_quantity
        if markup_percent is None:
            markup_percent = self.default_markup_percent
        if tax_percent is None:
            tax_percent = self.default_tax_percent

        kind = ProductKind.parse(product)
        tax = to_decimal(tax_percent, 'tax_percent')
        if tax < 0:
            raise InvalidInput(f"tax_percent cannot be negative, got {tax}")

        line = LineItem(
            line_id=uuid.uuid4().hex,
            product=kind,
            quantity=to_quantity(quantity),
            markup_percent=to_decimal(markup_percent, 'markup_percent'),
            tax_percent=tax,
            annual=annual,
            platform=(platform or None),
        )
        self._lines[line.line_id] = line
        logger.debug("Added line %s: %s x%d", line.line_id, kind.value, line.quantity)
        return line.snapshot()

    def remove(self, line_id: str):
        """Remove a line."""
        if line_id not in self._lines:
            raise LineNotFound(line_id)
        del self._lines[line_id]
        logger.debug("Removed line %s", line_id)

    def update_field(self, line_id: str, field: str, value) -> LineItem:
        """
        Update one numeric field of a line.

        value may be a number or numeric text (form input). Anything that
        does not coerce to a finite number raises InvalidInput and leaves the
        line untouched.
        """
        line = self._get(line_id)
        if field not in self.MUTABLE_FIELDS:
            allowed = ", ".join(self.MUTABLE_FIELDS)
            raise InvalidInput(f"Field '{field}' cannot be updated. Updatable fields: {allowed}")

        if field == 'quantity':
            new_value = to_quantity(value)
        else:
            new_value = to_decimal(value, field)
            if field == 'tax_percent' and new_value < 0:
                raise InvalidInput(f"tax_percent cannot be negative, got {new_value}")

        setattr(line, field, new_value)
        logger.debug("Updated line %s: %s=%s", line_id, field, new_value)
        return line.snapshot()

    def set_billing(self, line_id: str, annual: Optional[bool]) -> LineItem:
        """Set the per-line annual flag (None follows the deployment default)."""
        line = self._get(line_id)
        line.annual = annual
        return line.snapshot()

    def get(self, line_id: str) -> LineItem:
        return self._get(line_id).snapshot()

    def lines(self) -> list[LineItem]:
        """Snapshots of the current lines, in insertion order."""
        return [line.snapshot() for line in self._lines.values()]

    def clear(self):
        self._lines.clear()

    def to_request(self, discount_percent=ZERO, waive_fee: bool = False) -> QuoteRequest:
        """Freeze the current cart into an immutable pricing request."""
        return QuoteRequest(
            lines=tuple(self._lines.values()),
            discount_percent=discount_percent,
            waive_fee=waive_fee,
        )

    def _get(self, line_id: str) -> LineItem:
        try:
            return self._lines[line_id]
        except KeyError:
            raise LineNotFound(line_id) from None
