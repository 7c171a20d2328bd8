"""
app/pricing/resolver.py
-----------------------
Pick which tier's precomputed numbers a line item is priced at.

The resolver does no discount arithmetic. Tier `final` and
`discount_amount` arrive precomputed from the catalog; this module only
decides *which* tier applies for the requested customer type.

Tier selection:
1. Wholesale requested and wholesale configured with base > 0 → wholesale.
2. Otherwise retail, if configured.
3. Otherwise whichever tier is configured.
4. Nothing configured → PricingError (upstream data bug).

Callers check stock before resolving; an out-of-stock product is a user
notice, not a pricing concern.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.pricing.tiers import (
    ConfiguredTier, ProductPricing, RETAIL, WHOLESALE, TIERS,
)


class PricingError(ValueError):
    """Product pricing data is missing or malformed."""


@dataclass(frozen=True)
class ResolvedPrice:
    unit_price:        Decimal        # what the customer pays per unit
    base_price:        Decimal        # tier price before discount
    discount_per_unit: Decimal        # base_price - unit_price, never negative
    tier_used:         str
    discount_type:     Optional[str] = None
    discount_value:    Optional[Decimal] = None


def _wholesale_usable(pricing: ProductPricing) -> bool:
    tier = pricing.wholesale
    return tier.configured and tier.base > 0


def select_tier(pricing: ProductPricing, requested_tier: str = RETAIL) -> str:
    """Return the tier name to price at. Raises PricingError if none is usable."""
    if requested_tier not in TIERS:
        raise PricingError(f'Unknown price tier {requested_tier!r}')

    if requested_tier == WHOLESALE and _wholesale_usable(pricing):
        return WHOLESALE
    if pricing.retail.configured:
        return RETAIL
    if pricing.wholesale.configured:
        return WHOLESALE
    raise PricingError('Product has no configured price tier')


def resolve_price(product, requested_tier: str = RETAIL) -> ResolvedPrice:
    """
    Resolve the authoritative unit price for `product`.

    Args:
        product:        a ProductPricing, or any object with a `.pricing`
                        attribute holding one (e.g. CatalogProduct)
        requested_tier: 'retail' | 'wholesale' (the cashier's customer type)

    Returns:
        ResolvedPrice with final unit price, base price and per-unit savings.
    """
    pricing = product if isinstance(product, ProductPricing) else getattr(product, 'pricing', None)
    if not isinstance(pricing, ProductPricing):
        raise PricingError(f'Product {getattr(product, "id", product)!r} has no pricing data')

    name = select_tier(pricing, requested_tier)
    tier = pricing.tier(name)
    if not isinstance(tier, ConfiguredTier):   # select_tier guarantees this
        raise PricingError(f'Tier {name!r} is not configured')

    final    = max(Decimal('0'), tier.final)
    discount = max(Decimal('0'), tier.base - final)

    return ResolvedPrice(
        unit_price=final,
        base_price=tier.base,
        discount_per_unit=discount,
        tier_used=name,
        discount_type=tier.discount_type if discount > 0 else None,
        discount_value=tier.discount_value if discount > 0 else None,
    )
