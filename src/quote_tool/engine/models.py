"""
Data models for the quote engine.

Uses dataclasses for structured, type-safe data representation.
Money and percentages are Decimal; percentages are always on the 0-100 scale.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional

import pandas as pd

from .errors import ConfigurationError, InvalidInput
from .numbers import ZERO, to_decimal, round_money


class ProductKind(str, Enum):
    """Licensed products that can be quoted."""
    DESKTOP = "Desktop"
    VMS = "VMs"
    SBS = "SBS"
    PHYSICAL_SERVER = "Physical Server"
    XCEL_ADVANCE_CLOUD = "Xcel Advance cloud"
    XCEL_COMPLETE_CLOUD = "Xcel Complete cloud"

    @property
    def category(self) -> str:
        if self in (ProductKind.XCEL_ADVANCE_CLOUD, ProductKind.XCEL_COMPLETE_CLOUD):
            return "ESET"
        return "SPX"

    @property
    def is_flat_rate(self) -> bool:
        """Add-on products priced from the flat ESET ladder."""
        return self.category == "ESET"

    @property
    def label(self) -> str:
        prefix = "Eset" if self.category == "ESET" else "SPX"
        return f"{prefix} {self.value}"

    @classmethod
    def parse(cls, value) -> "ProductKind":
        """Accept a member, its value ("VMs"), its label ("SPX VMs") or its name."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for kind in cls:
            if text in (kind.value.lower(), kind.label.lower(), kind.name.lower()):
                return kind
        raise InvalidInput(f"Unknown product '{value}'")


class TaxOrder(str, Enum):
    """Where tax sits relative to markup in the unit price composition."""
    AFTER_MARKUP = "after_markup"
    BEFORE_MARKUP = "before_markup"


class FeeBase(str, Enum):
    """Which amount the processing fee percentage applies to."""
    POST_DISCOUNT = "post_discount"
    PRE_DISCOUNT = "pre_discount"


class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @property
    def periods(self) -> int:
        return 12 if self is BillingPeriod.ANNUAL else 1


@dataclass(frozen=True)
class PricingConfig:
    """
    Process-wide pricing constants.

    Values are validated once at construction; anything out of range is a
    deployment bug and raises ConfigurationError.
    """
    exchange_rate: Decimal = Decimal("61.87")
    min_markup_percent: Decimal = Decimal("0")
    target_markup_percent: Decimal = Decimal("15")
    fee_percent: Decimal = Decimal("2.9")
    fee_waivable: bool = True
    baked_in_tax_percent: Decimal = Decimal("13")
    tax_order: TaxOrder = TaxOrder.AFTER_MARKUP
    fee_base: FeeBase = FeeBase.POST_DISCOUNT
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    base_currency: str = "CAD"
    display_currency: str = "INR"

    def __post_init__(self):
        for name in ('exchange_rate', 'min_markup_percent', 'target_markup_percent',
                     'fee_percent', 'baked_in_tax_percent'):
            try:
                value = to_decimal(getattr(self, name), name)
            except InvalidInput as e:
                raise ConfigurationError(str(e)) from None
            object.__setattr__(self, name, value)

        for name, enum_cls in (('tax_order', TaxOrder), ('fee_base', FeeBase),
                               ('billing_period', BillingPeriod)):
            try:
                object.__setattr__(self, name, enum_cls(getattr(self, name)))
            except ValueError:
                allowed = ", ".join(m.value for m in enum_cls)
                raise ConfigurationError(
                    f"{name} must be one of: {allowed}, got {getattr(self, name)!r}"
                ) from None

        if not isinstance(self.fee_waivable, bool):
            raise ConfigurationError(f"fee_waivable must be true or false, got {self.fee_waivable!r}")

        if self.exchange_rate <= 0:
            raise ConfigurationError(f"exchange_rate must be positive, got {self.exchange_rate}")
        if self.min_markup_percent < 0:
            raise ConfigurationError("min_markup_percent cannot be negative")
        if self.target_markup_percent < 0:
            raise ConfigurationError("target_markup_percent cannot be negative")
        if not (0 <= self.fee_percent <= 100):
            raise ConfigurationError(f"fee_percent must be within 0-100, got {self.fee_percent}")
        if self.baked_in_tax_percent < 0:
            raise ConfigurationError("baked_in_tax_percent cannot be negative")
        if not self.base_currency or not self.display_currency:
            raise ConfigurationError("Currency codes must not be empty")


@dataclass(frozen=True)
class TierRange:
    """A quantity range within which a product's unit cost is constant."""
    label: str
    min_qty: int
    max_qty: Optional[int]  # None = open-ended
    unit_cost: Decimal

    @property
    def is_open_ended(self) -> bool:
        return self.max_qty is None

    def contains(self, quantity: int) -> bool:
        if quantity < self.min_qty:
            return False
        return self.max_qty is None or quantity <= self.max_qty


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class LineItem:
    """
    A cart line as entered by the user.

    quantity is the stored value shown back to the user and may be zero or
    negative while the form is being edited; pricing always uses safe_quantity.
    """
    line_id: str
    product: ProductKind
    quantity: int
    markup_percent: Decimal
    tax_percent: Decimal
    annual: Optional[bool] = None  # None = follow PricingConfig.billing_period
    platform: Optional[str] = None  # e.g. cloud/platform choice for add-ons

    @property
    def safe_quantity(self) -> int:
        return max(self.quantity, 1)

    def snapshot(self) -> "LineItem":
        """Detached copy, so later cart edits cannot reach a built request."""
        return replace(self)


@dataclass
class PricedLine:
    """Fully composed pricing for one line. Derived, never stored."""
    line_id: str
    product: ProductKind
    platform: Optional[str]
    tier: str
    quantity: int
    safe_quantity: int
    billing_period: BillingPeriod
    periods: int
    markup_percent: Decimal
    effective_markup_percent: Decimal
    tax_percent: Decimal
    tax_order: TaxOrder

    # Base currency
    unit_cost_listed: Decimal
    unit_cost_base: Decimal
    unit_cost_with_tax: Decimal
    unit_resale_pre_tax: Decimal
    unit_resale: Decimal
    unit_profit: Decimal
    annual_unit_resale: Decimal
    line_resale_total: Decimal
    line_profit_total: Decimal

    # Display currency
    unit_cost_listed_display: Decimal
    unit_cost_base_display: Decimal
    unit_cost_with_tax_display: Decimal
    unit_resale_pre_tax_display: Decimal
    unit_resale_display: Decimal
    unit_profit_display: Decimal
    annual_unit_resale_display: Decimal
    line_resale_total_display: Decimal
    line_profit_total_display: Decimal

    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    MONEY_FIELDS = (
        'unit_cost_listed', 'unit_cost_base', 'unit_cost_with_tax',
        'unit_resale_pre_tax', 'unit_resale', 'unit_profit',
        'annual_unit_resale', 'line_resale_total', 'line_profit_total',
    )

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this line."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this line."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class QuoteTotals:
    """Quote-level sums. Discount and fee exist only at this level."""
    line_count: int
    subtotal_before_discount: Decimal
    profit_total: Decimal  # sum of line profit = markup amount
    discount_percent: Decimal
    discount_amount: Decimal
    amount_after_discount: Decimal
    fee_percent: Decimal
    fee_base: FeeBase
    fee_waived: bool
    fee_amount: Decimal
    grand_total: Decimal
    net_profit: Decimal

    subtotal_before_discount_display: Decimal
    profit_total_display: Decimal
    discount_amount_display: Decimal
    amount_after_discount_display: Decimal
    fee_amount_display: Decimal
    grand_total_display: Decimal
    net_profit_display: Decimal

    MONEY_FIELDS = (
        'subtotal_before_discount', 'profit_total', 'discount_amount',
        'amount_after_discount', 'fee_amount', 'grand_total', 'net_profit',
    )

    def to_export_dict(self, base_currency: str = "CAD", display_currency: str = "INR",
                       decimals: Optional[int] = 2) -> dict:
        """Flat dict with currency and percent units spelled out in the keys."""
        base = base_currency.lower()
        display = display_currency.lower()
        row = {
            "line_count": self.line_count,
            "discount_percent": self.discount_percent,
            "fee_percent": self.fee_percent,
            "fee_base": self.fee_base.value,
            "fee_waived": self.fee_waived,
        }
        for name in self.MONEY_FIELDS:
            row[f"{name}_{base}"] = round_money(getattr(self, name), decimals)
        for name in self.MONEY_FIELDS:
            row[f"{name}_{display}"] = round_money(getattr(self, f"{name}_display"), decimals)
        return row


@dataclass(frozen=True)
class QuoteRequest:
    """Immutable pricing input: the lines plus quote-level discount and fee choice."""
    lines: tuple = ()
    discount_percent: Decimal = ZERO
    waive_fee: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'lines', tuple(line.snapshot() for line in self.lines))
        object.__setattr__(self, 'discount_percent',
                           to_decimal(self.discount_percent, 'discount_percent'))


@dataclass
class QuoteResult:
    """Complete result of a quote calculation."""
    lines: list[PricedLine]
    totals: QuoteTotals
    base_currency: str = "CAD"
    display_currency: str = "INR"
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the result-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a result-level warning."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable result trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_export_rows(self, decimals: Optional[int] = 2) -> list[dict]:
        """
        Flatten priced lines for table exporters.

        Keys carry their unit (currency code suffix, _percent for 0-100 values).
        Rounding happens here and only here; decimals=None keeps full precision.
        """
        base = self.base_currency.lower()
        display = self.display_currency.lower()
        rows = []
        for line in self.lines:
            row = {
                "line_id": line.line_id,
                "product": line.product.label,
                "category": line.product.category,
                "platform": line.platform or "",
                "tier": line.tier,
                "quantity": line.quantity,
                "safe_quantity": line.safe_quantity,
                "billing_period": line.billing_period.value,
                "markup_percent": line.effective_markup_percent,
                "tax_percent": line.tax_percent,
            }
            for name in PricedLine.MONEY_FIELDS:
                row[f"{name}_{base}"] = round_money(getattr(line, name), decimals)
            for name in PricedLine.MONEY_FIELDS:
                row[f"{name}_{display}"] = round_money(getattr(line, f"{name}_display"), decimals)
            rows.append(row)
        return rows

    def to_dataframe(self, decimals: Optional[int] = 2) -> pd.DataFrame:
        """Export rows as a DataFrame (one row per line)."""
        rows = self.to_export_rows(decimals)
        if not rows:
            return pd.DataFrame(columns=self._export_columns())
        return pd.DataFrame(rows)

    def _export_columns(self) -> list[str]:
        base = self.base_currency.lower()
        display = self.display_currency.lower()
        columns = ["line_id", "product", "category", "platform", "tier", "quantity",
                   "safe_quantity", "billing_period", "markup_percent", "tax_percent"]
        columns += [f"{name}_{base}" for name in PricedLine.MONEY_FIELDS]
        columns += [f"{name}_{display}" for name in PricedLine.MONEY_FIELDS]
        return columns
