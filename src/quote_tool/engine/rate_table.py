"""
Rate Table - Static product → quantity tier → unit cost lookup.

Loaded once at startup (from CSV or an in-memory mapping) and validated
eagerly: every product's tiers must be contiguous, start at 1 and end in
exactly one open-ended tier. A table that breaks these rules raises
ConfigurationError before any quote is priced.
"""
import logging
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Optional, Union

import pandas as pd

from .errors import ConfigurationError, InvalidInput
from .models import ProductKind, TierRange
from .numbers import percent_factor, to_decimal
from .tier_resolver import resolve_tier

logger = logging.getLogger(__name__)

CSV_COLUMNS = ['product', 'label', 'min_qty', 'max_qty', 'unit_cost']


def validate_ranges(product: ProductKind, ranges: tuple[TierRange, ...]):
    """Check the tier ladder of one product covers [1, ∞) without gaps or overlaps."""
    if not ranges:
        raise ConfigurationError(f"{product.label}: no price tiers defined")

    labels = [r.label for r in ranges]
    if len(set(labels)) != len(labels):
        raise ConfigurationError(f"{product.label}: duplicate tier labels {labels}")

    expected_min = 1
    for i, tier in enumerate(ranges):
        if tier.min_qty != expected_min:
            raise ConfigurationError(
                f"{product.label}: tier '{tier.label}' starts at {tier.min_qty}, "
                f"expected {expected_min} (gap or overlap)"
            )
        if tier.unit_cost < 0:
            raise ConfigurationError(f"{product.label}: tier '{tier.label}' has a negative unit cost")

        is_last = i == len(ranges) - 1
        if tier.max_qty is None:
            if not is_last:
                raise ConfigurationError(
                    f"{product.label}: open-ended tier '{tier.label}' must be the last tier"
                )
            break
        if tier.max_qty < tier.min_qty:
            raise ConfigurationError(
                f"{product.label}: tier '{tier.label}' has max {tier.max_qty} below min {tier.min_qty}"
            )
        if is_last:
            raise ConfigurationError(
                f"{product.label}: last tier '{tier.label}' must be open-ended"
            )
        expected_min = tier.max_qty + 1


class RateTable:
    """
    Immutable price list for every quotable product.

    tax_inclusive marks listed costs that already contain baked_in_tax_percent;
    base_pre_tax() strips it so the user's own tax rate can be applied.
    """

    def __init__(
        self,
        tiers: dict,
        tax_inclusive: bool = False,
        baked_in_tax_percent: Union[Decimal, str, int] = Decimal("13"),
    ):
        try:
            self.baked_in_tax_percent = to_decimal(baked_in_tax_percent, 'baked_in_tax_percent')
        except InvalidInput as e:
            raise ConfigurationError(str(e)) from None
        if self.baked_in_tax_percent < 0:
            raise ConfigurationError("baked_in_tax_percent cannot be negative")
        if not isinstance(tax_inclusive, bool):
            raise ConfigurationError(f"tax_inclusive must be true or false, got {tax_inclusive!r}")
        self.tax_inclusive = tax_inclusive

        table = {}
        for product, ranges in tiers.items():
            try:
                kind = ProductKind.parse(product)
            except InvalidInput as e:
                raise ConfigurationError(str(e)) from None
            ranges = tuple(ranges)
            validate_ranges(kind, ranges)
            table[kind] = ranges
        self._tiers = MappingProxyType(table)

    @classmethod
    def from_mapping(
        cls,
        mapping: dict,
        tax_inclusive: bool = False,
        baked_in_tax_percent: Union[Decimal, str, int] = Decimal("13"),
    ) -> 'RateTable':
        """
        Build a table from {product: [(label, min_qty, max_qty, unit_cost), ...]}.

        max_qty None marks the open-ended tier.
        """
        tiers = {}
        for product, rows in mapping.items():
            ranges = []
            for label, min_qty, max_qty, unit_cost in rows:
                try:
                    min_qty = int(min_qty)
                    max_qty = None if max_qty is None else int(max_qty)
                except (TypeError, ValueError):
                    raise ConfigurationError(
                        f"{product} tier '{label}': min_qty/max_qty must be whole numbers "
                        f"(got {min_qty!r}, {max_qty!r})"
                    ) from None
                ranges.append(TierRange(
                    label=str(label),
                    min_qty=min_qty,
                    max_qty=max_qty,
                    unit_cost=_config_decimal(unit_cost, f"{product} {label} unit_cost"),
                ))
            tiers[product] = ranges
        return cls(tiers, tax_inclusive=tax_inclusive, baked_in_tax_percent=baked_in_tax_percent)

    @property
    def products(self) -> tuple[ProductKind, ...]:
        return tuple(self._tiers.keys())

    def ranges_for(self, product: ProductKind) -> tuple[TierRange, ...]:
        try:
            return self._tiers[product]
        except KeyError:
            raise ConfigurationError(f"Rate table has no tiers for {product.label}") from None

    def resolve_tier(self, product: ProductKind, quantity: int) -> TierRange:
        return resolve_tier(self.ranges_for(product), quantity)

    def unit_cost(self, product: ProductKind, tier: Union[TierRange, str]) -> Decimal:
        """Listed unit cost for a tier (given as a TierRange or its label)."""
        label = tier.label if isinstance(tier, TierRange) else str(tier)
        for candidate in self.ranges_for(product):
            if candidate.label == label:
                return candidate.unit_cost
        raise ConfigurationError(f"{product.label}: no tier labelled '{label}'")

    def base_pre_tax(self, listed_cost: Decimal) -> Decimal:
        """Listed cost with any baked-in tax removed."""
        if self.tax_inclusive:
            return listed_cost / percent_factor(self.baked_in_tax_percent)
        return listed_cost

    def to_records(self) -> list[dict]:
        """Flat rows (one per tier) for display or export."""
        records = []
        for product, ranges in self._tiers.items():
            for tier in ranges:
                records.append({
                    'product': product.value,
                    'label': product.label,
                    'category': product.category,
                    'tier': tier.label,
                    'min_qty': tier.min_qty,
                    'max_qty': tier.max_qty,
                    'unit_cost': tier.unit_cost,
                })
        return records

    def __eq__(self, other):
        if not isinstance(other, RateTable):
            return NotImplemented
        return (
            dict(self._tiers) == dict(other._tiers)
            and self.tax_inclusive == other.tax_inclusive
            and self.baked_in_tax_percent == other.baked_in_tax_percent
        )

    def __repr__(self):
        return (
            f"RateTable(products={len(self._tiers)}, tax_inclusive={self.tax_inclusive}, "
            f"baked_in_tax_percent={self.baked_in_tax_percent})"
        )


def _config_decimal(value, name: str) -> Decimal:
    try:
        return to_decimal(value, name)
    except InvalidInput as e:
        raise ConfigurationError(str(e)) from None


def _parse_rows(df: pd.DataFrame, source: str) -> dict:
    tiers = {}
    for row_number, row in enumerate(df.to_dict(orient='records'), start=2):
        where = f"{source}:{row_number}"
        try:
            product = ProductKind.parse(row['product'])
        except InvalidInput as e:
            raise ConfigurationError(f"{where}: {e}") from None

        try:
            min_qty = int(row['min_qty'])
            max_qty = int(row['max_qty']) if row['max_qty'] else None
        except ValueError:
            raise ConfigurationError(
                f"{where}: min_qty/max_qty must be whole numbers "
                f"(got {row['min_qty']!r}, {row['max_qty']!r})"
            ) from None

        tiers.setdefault(product, []).append(TierRange(
            label=row['label'] or f"{min_qty}+",
            min_qty=min_qty,
            max_qty=max_qty,
            unit_cost=_config_decimal(row['unit_cost'], f"{where} unit_cost"),
        ))

    for product in tiers:
        tiers[product].sort(key=lambda t: t.min_qty)
    return tiers


def load_rate_table(
    path: Path,
    tax_inclusive: bool = False,
    baked_in_tax_percent: Union[Decimal, str, int] = Decimal("13"),
    products: Optional[Iterable[ProductKind]] = None,
) -> RateTable:
    """
    Load and validate the rate table CSV.

    Expected columns: product, label, min_qty, max_qty, unit_cost. An empty
    max_qty marks the open-ended tier. When products is given, every one of
    them must be present in the file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rate table not found at {path}.")

    df = pd.read_csv(path, dtype=str).fillna('')
    df.columns = [c.strip() for c in df.columns]
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise ConfigurationError(f"{path.name}: missing columns {missing}")
    for col in CSV_COLUMNS:
        df[col] = df[col].astype(str).str.strip()

    table = RateTable(
        _parse_rows(df[CSV_COLUMNS], path.name),
        tax_inclusive=tax_inclusive,
        baked_in_tax_percent=baked_in_tax_percent,
    )

    if products is not None:
        absent = [p.label for p in products if p not in table.products]
        if absent:
            raise ConfigurationError(f"{path.name}: no tiers for {', '.join(absent)}")

    logger.info(
        "Loaded rate table %s: %d products, %d tiers (tax_inclusive=%s)",
        path.name, len(table.products), len(df), tax_inclusive,
    )
    return table
