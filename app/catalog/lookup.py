"""
app/catalog/lookup.py
---------------------
Read-only queries feeding the checkout screen (product grid, scanner).
"""
from datetime import datetime
from typing import List, Optional

from app.catalog.models import Product
from app.catalog.pricing import CatalogProduct, catalog_product


def load_catalog(search: Optional[str] = None, now: Optional[datetime] = None) -> List[CatalogProduct]:
    """Active products in grid order (by name), optionally filtered by name/barcode."""
    query = Product.query.filter(Product.is_active.is_(True))
    if search:
        like = f'%{search.strip()}%'
        query = query.filter((Product.name.ilike(like)) | (Product.barcode == search.strip()))
    now = now or datetime.utcnow()
    return [catalog_product(p, now) for p in query.order_by(Product.name, Product.id).all()]


def find_by_barcode(barcode: str, now: Optional[datetime] = None) -> Optional[CatalogProduct]:
    barcode = (barcode or '').strip()
    if not barcode:
        return None
    product = Product.query.filter_by(barcode=barcode, is_active=True).first()
    if product is None:
        return None
    return catalog_product(product, now)
