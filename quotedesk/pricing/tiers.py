"""Tier Resolver — picks the pricing tier for a product and quantity."""
import logging
from typing import Optional

from quotedesk.core.catalog import Tier
from quotedesk.core.errors import QuoteValidationError, ERROR_MESSAGES, catalog_warning

log = logging.getLogger("quotedesk.pricing")


def validate_quantity(qty) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise QuoteValidationError(f"{ERROR_MESSAGES['INVALID_QUANTITY']}, got {qty!r}")
    return qty


def resolve_tier(product, qty, flags: Optional[list] = None) -> Tier:
    """
    Return the tier whose [min_qty, max_qty] contains qty.

    When no tier matches (catalog gap or quantity past the last bounded
    tier) the last tier is used and a tier_fallback flag is recorded.
    """
    validate_quantity(qty)
    tiers = product.tiers
    for tier in tiers:
        if tier.contains(qty):
            return tier
    catalog_warning(flags, f"tier_fallback:{product.name}",
                    "No tier of %s covers qty %d; using last tier (%d-%s)",
                    product.name, qty, tiers[-1].min_qty, tiers[-1].max_qty)
    return tiers[-1]
