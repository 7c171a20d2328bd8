"""
app/pricing/tiers.py
--------------------
Per-customer-class price lists for a product.

A tier is either configured (it has a base price and the precomputed
discounted final price) or unconfigured (no price at all). Unconfigured
tiers carry no numbers, so code can't accidentally read a price off them.

    ProductPricing(
        retail    = ConfiguredTier(base=Decimal('100.00'), final=Decimal('80.00'),
                                   discount_amount=Decimal('20.00'), ...),
        wholesale = UnconfiguredTier(),
    )
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union


RETAIL    = 'retail'
WHOLESALE = 'wholesale'
TIERS     = (RETAIL, WHOLESALE)

Q = Decimal('0.01')   # quantize target


def to_money(value) -> Decimal:
    """Coerce int / str / Decimal to a 2dp Decimal. Floats go through str()."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(Q, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ConfiguredTier:
    """A tier with a real price. `final` defaults to base - discount_amount."""
    base:                Decimal
    final:               Optional[Decimal] = None
    discount_amount:     Decimal = Decimal('0')
    discount_type:       Optional[str] = None       # 'percentage' | 'fixed'
    discount_value:      Optional[Decimal] = None
    has_active_discount: bool = False

    configured = True

    def __post_init__(self):
        base   = to_money(self.base)
        amount = max(Decimal('0'), to_money(self.discount_amount))
        if self.final is None:
            final = max(Decimal('0'), base - amount)
        else:
            final = max(Decimal('0'), to_money(self.final))
        # frozen dataclass → write through object.__setattr__
        object.__setattr__(self, 'base', base)
        object.__setattr__(self, 'discount_amount', amount)
        object.__setattr__(self, 'final', final)
        if self.discount_value is not None:
            object.__setattr__(self, 'discount_value', Decimal(str(self.discount_value)))

    def to_dict(self) -> dict:
        return {
            'configured':        True,
            'base':              str(self.base),
            'final':             str(self.final),
            'discountAmount':    str(self.discount_amount),
            'discountType':      self.discount_type,
            'discountValue':     None if self.discount_value is None else str(self.discount_value),
            'hasActiveDiscount': self.has_active_discount,
        }


@dataclass(frozen=True)
class UnconfiguredTier:
    """A tier with no price. Must never be selected as the active tier."""
    configured = False

    def to_dict(self) -> dict:
        return {'configured': False}


PricingTier = Union[ConfiguredTier, UnconfiguredTier]


@dataclass(frozen=True)
class ProductPricing:
    retail:    PricingTier = field(default_factory=UnconfiguredTier)
    wholesale: PricingTier = field(default_factory=UnconfiguredTier)

    def tier(self, name: str) -> PricingTier:
        if name == WHOLESALE:
            return self.wholesale
        return self.retail

    def to_dict(self) -> dict:
        return {RETAIL: self.retail.to_dict(), WHOLESALE: self.wholesale.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> 'ProductPricing':
        """
        Build from the wire shape used by the product availability source:
            {"retail": {"configured": true, "base": "100", ...},
             "wholesale": {"configured": false}}

        Missing keys inside a configured tier raise KeyError, which callers
        treat as a malformed payload.
        """
        return cls(
            retail=tier_from_dict(data.get(RETAIL)),
            wholesale=tier_from_dict(data.get(WHOLESALE)),
        )


def tier_from_dict(data: Optional[dict]) -> PricingTier:
    if not data or not data.get('configured'):
        return UnconfiguredTier()
    return ConfiguredTier(
        base=data['base'],
        final=data.get('final'),
        discount_amount=data.get('discountAmount') or '0',
        discount_type=data.get('discountType'),
        discount_value=data.get('discountValue'),
        has_active_discount=bool(data.get('hasActiveDiscount', False)),
    )
