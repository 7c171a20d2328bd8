"""
app/catalog/__init__.py
-----------------------
Catalog blueprint: product pricing, barcode lookup, discount management.
URL prefix: /catalog
"""
from flask import Blueprint

catalog = Blueprint('catalog', __name__)

from app.catalog import routes  # noqa: E402, F401
from app.catalog import models  # noqa: E402, F401  registers Product/ProductDiscount
