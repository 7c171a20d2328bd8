from datetime import datetime
from decimal import Decimal
from typing import Optional

from app import db
from app.pricing.discounts import Discount


class Product(db.Model):
    """
    A sellable product with up to two price tiers.
    A NULL tier price means that tier is not configured for this product.
    """
    __tablename__ = 'products'

    id              = db.Column(db.Integer, primary_key=True)
    name            = db.Column(db.String(200), nullable=False, index=True)
    barcode         = db.Column(db.String(100), unique=True, nullable=True, index=True)
    retail_price    = db.Column(db.Numeric(10, 2), nullable=True)
    wholesale_price = db.Column(db.Numeric(10, 2), nullable=True)
    stock           = db.Column(db.Integer, nullable=False, default=0)
    is_active       = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at      = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at      = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    discount = db.relationship(
        'ProductDiscount', back_populates='product',
        uselist=False, cascade='all, delete-orphan', lazy='joined',
    )

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='check_stock_non_negative'),
        db.CheckConstraint('retail_price IS NULL OR retail_price >= 0', name='check_retail_price'),
        db.CheckConstraint('wholesale_price IS NULL OR wholesale_price >= 0', name='check_wholesale_price'),
    )

    def to_discount(self) -> Optional[Discount]:
        return self.discount.to_discount() if self.discount else None

    def __repr__(self):
        return f"<Product {self.barcode!r} {self.name!r}>"


class ProductDiscount(db.Model):
    """
    Time-windowed discount for one product. Status (scheduled / active /
    expired / disabled) is derived at read time, never stored.
    """
    __tablename__ = 'product_discounts'

    id            = db.Column(db.Integer, primary_key=True)
    product_id    = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'),
                              nullable=False, unique=True, index=True)
    is_enabled    = db.Column(db.Boolean, nullable=False, default=True)
    discount_type = db.Column(db.String(20), nullable=False)   # 'percentage' | 'fixed'
    value         = db.Column(db.Numeric(10, 2), nullable=False)
    start_at      = db.Column(db.DateTime, nullable=False)
    end_at        = db.Column(db.DateTime, nullable=False)
    notes         = db.Column(db.String(300), nullable=True)
    created_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    product = db.relationship('Product', back_populates='discount')

    __table_args__ = (
        db.CheckConstraint('value > 0', name='check_discount_value_positive'),
        db.CheckConstraint('start_at < end_at', name='check_discount_window'),
    )

    def to_discount(self) -> Discount:
        return Discount(
            is_enabled=bool(self.is_enabled),
            type=self.discount_type,
            value=Decimal(str(self.value)),
            start_at=self.start_at,
            end_at=self.end_at,
            notes=self.notes,
        )

    def __repr__(self):
        return f"<ProductDiscount P:{self.product_id} {self.discount_type} {self.value}>"
