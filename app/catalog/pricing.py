"""
app/catalog/pricing.py
----------------------
Discount source: turns Product rows into the per-tier pricing the checkout
core consumes.

This is the only place percentage / fixed discount arithmetic happens.
The resolver and cart trust the `final` / `discount_amount` produced here.

    percentage → amount = base × value / 100
    fixed      → amount = min(value, base)      (never a negative final)

A discount only applies while its status is `active`.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.pricing.discounts import (
    FIXED, PERCENTAGE, STATUS_ACTIVE, Discount, discount_status,
)
from app.pricing.tiers import (
    ConfiguredTier, ProductPricing, UnconfiguredTier, to_money,
)


Q = Decimal('0.01')


@dataclass(frozen=True)
class CatalogProduct:
    """What the product grid and barcode lookup see of a product."""
    id:              str
    name:            str
    barcode:         Optional[str]
    pricing:         ProductPricing
    stock:           int             # effectiveStock.current
    discount_status: str = 'none'

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'name':           self.name,
            'barcode':        self.barcode,
            'pricing':        self.pricing.to_dict(),
            'effectiveStock': {'current': self.stock},
            'discountStatus': self.discount_status,
        }


def apply_discount(base, discount: Optional[Discount], now: Optional[datetime] = None):
    """Build the tier for `base`, folding in `discount` if it is active at `now`."""
    if base is None:
        return UnconfiguredTier()

    base = to_money(base)
    if discount_status(discount, now) != STATUS_ACTIVE or base <= 0:
        return ConfiguredTier(base=base)

    value = Decimal(str(discount.value))
    if discount.type == PERCENTAGE:
        amount = (base * value / Decimal('100')).quantize(Q, rounding=ROUND_HALF_UP)
    elif discount.type == FIXED:
        amount = min(value, base)
    else:
        raise ValueError(f'Unknown discount type {discount.type!r}')

    amount = min(amount, base)
    return ConfiguredTier(
        base=base,
        final=base - amount,
        discount_amount=amount,
        discount_type=discount.type,
        discount_value=value,
        has_active_discount=amount > 0,
    )


def build_pricing(product, now: Optional[datetime] = None) -> ProductPricing:
    """ProductPricing for a Product row (retail + wholesale tiers)."""
    discount = product.to_discount()
    return ProductPricing(
        retail=apply_discount(product.retail_price, discount, now),
        wholesale=apply_discount(product.wholesale_price, discount, now),
    )


def catalog_product(product, now: Optional[datetime] = None) -> CatalogProduct:
    return CatalogProduct(
        id=str(product.id),
        name=product.name,
        barcode=product.barcode,
        pricing=build_pricing(product, now),
        stock=max(0, product.stock or 0),
        discount_status=discount_status(product.to_discount(), now),
    )
