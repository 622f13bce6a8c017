"""
Tier Resolver - Maps a quantity onto the price tier that covers it.
"""
from typing import Sequence

from .errors import ConfigurationError, InvalidInput
from .models import TierRange


def resolve_tier(ranges: Sequence[TierRange], quantity: int) -> TierRange:
    """
    Return the first range with min_qty <= quantity <= max_qty.

    Callers pass the safe quantity (already floored at 1). Open-ended ranges
    treat max_qty as infinite. A miss means the rate table is broken, so it
    raises ConfigurationError instead of pricing at zero.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput(f"Tier lookup needs a whole quantity, got {quantity!r}")
    if quantity < 1:
        raise InvalidInput(f"Tier lookup needs a quantity of at least 1, got {quantity}")

    for tier in ranges:
        if quantity < tier.min_qty:
            continue
        if tier.max_qty is not None and quantity > tier.max_qty:
            continue
        return tier

    raise ConfigurationError(f"No price tier covers quantity {quantity}")
