"""
app/cart/items.py
-----------------
LineItem: one product row in the checkout cart.

Session-storage shape (money as strings to survive JSON serialisation,
same convention as the rest of the app):
{
    "id":                    str,
    "name":                  str,
    "unitPriceFinal":        "80.00",
    "unitPriceBase":         "100.00",
    "quantity":              int,
    "discountAmountPerUnit": "20.00",
    "discountType":          "percentage" | "fixed" | null,
    "discountValue":         "20" | null,
    "priceTier":             "retail" | "wholesale",
    "barcodes":              [str, ...]
}
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from app.pricing.resolver import ResolvedPrice, resolve_price
from app.pricing.tiers import RETAIL, to_money


@dataclass
class LineItem:
    id:                       str
    name:                     str
    unit_price_final:         Decimal
    unit_price_base:          Decimal
    quantity:                 int = 1
    discount_amount_per_unit: Decimal = Decimal('0')
    discount_type:            Optional[str] = None
    discount_value:           Optional[Decimal] = None
    price_tier:               str = RETAIL
    barcodes:                 List[str] = field(default_factory=list)

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price_final * Decimal(self.quantity)).quantize(Decimal('0.01'))

    @property
    def line_savings(self) -> Decimal:
        return (self.discount_amount_per_unit * Decimal(self.quantity)).quantize(Decimal('0.01'))

    def copy(self) -> 'LineItem':
        return LineItem.from_dict(self.to_dict())

    # ── Session (de)serialisation ─────────────────────────────────

    def to_dict(self) -> dict:
        return {
            'id':                    self.id,
            'name':                  self.name,
            'unitPriceFinal':        str(self.unit_price_final),
            'unitPriceBase':         str(self.unit_price_base),
            'quantity':              self.quantity,
            'discountAmountPerUnit': str(self.discount_amount_per_unit),
            'discountType':          self.discount_type,
            'discountValue':         None if self.discount_value is None else str(self.discount_value),
            'priceTier':             self.price_tier,
            'barcodes':              list(self.barcodes),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LineItem':
        value = data.get('discountValue')
        return cls(
            id=str(data['id']),
            name=data['name'],
            unit_price_final=Decimal(data['unitPriceFinal']),
            unit_price_base=Decimal(data.get('unitPriceBase') or data['unitPriceFinal']),
            quantity=int(data['quantity']),
            discount_amount_per_unit=Decimal(data.get('discountAmountPerUnit') or '0'),
            discount_type=data.get('discountType'),
            discount_value=None if value is None else Decimal(value),
            price_tier=data.get('priceTier') or RETAIL,
            barcodes=list(data.get('barcodes') or []),
        )


def line_item_from_price(product_id, name: str, price: ResolvedPrice,
                         barcode: Optional[str] = None) -> LineItem:
    """Build a qty-1 LineItem from an already resolved price."""
    return LineItem(
        id=str(product_id),
        name=name,
        unit_price_final=to_money(price.unit_price),
        unit_price_base=to_money(price.base_price),
        quantity=1,
        discount_amount_per_unit=to_money(price.discount_per_unit),
        discount_type=price.discount_type,
        discount_value=price.discount_value,
        price_tier=price.tier_used,
        barcodes=[barcode] if barcode else [],
    )


def line_item_for(product, requested_tier: str = RETAIL) -> LineItem:
    """Resolve `product`'s price and wrap it as a LineItem. Raises PricingError."""
    price = resolve_price(product, requested_tier)
    return line_item_from_price(product.id, product.name, price, getattr(product, 'barcode', None))
