"""
app/catalog/routes.py
---------------------
JSON endpoints for product pricing and per-product discounts.
"""
from datetime import datetime

from flask import jsonify, request, abort, current_app

from app import db
from app.catalog import catalog
from app.catalog.lookup import load_catalog, find_by_barcode
from app.catalog.models import Product, ProductDiscount
from app.catalog.pricing import catalog_product
from app.catalog.validators import validate_discount_form, parse_discount_form
from app.pricing.discounts import STATUS_NONE


# ── List ──────────────────────────────────────────────────────────

@catalog.route('/products')
def products():
    """?q= search, ?status= none|disabled|scheduled|active|expired|with-discount."""
    items  = load_catalog(request.args.get('q'))
    status = request.args.get('status')
    if status == 'with-discount':
        items = [p for p in items if p.discount_status != STATUS_NONE]
    elif status:
        items = [p for p in items if p.discount_status == status]
    return jsonify({'success': True, 'data': [p.to_dict() for p in items]})


@catalog.route('/products/barcode/<barcode>')
def by_barcode(barcode):
    product = find_by_barcode(barcode)
    if product is None:
        return jsonify({'success': False, 'message': 'Product not found'}), 404
    return jsonify({'success': True, 'data': product.to_dict()})


# ── Discounts ─────────────────────────────────────────────────────

@catalog.route('/products/<int:product_id>/discount', methods=['PUT'])
def save_discount(product_id):
    product = db.session.get(Product, product_id) or abort(404)
    form    = request.get_json(silent=True) or request.form.to_dict()

    base_price = product.retail_price if product.retail_price is not None else product.wholesale_price
    errors = validate_discount_form(form, base_price)
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    fields = parse_discount_form(form)
    try:
        discount = product.discount or ProductDiscount(product_id=product.id)
        for name, value in fields.items():
            setattr(discount, name, value)
        product.discount = discount
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving discount for product {product_id} failed: {e}")
        raise

    current_app.logger.info(f"Discount saved for product {product_id}: {fields['discount_type']} {fields['value']}")
    return jsonify({'success': True, 'data': catalog_product(product, datetime.utcnow()).to_dict()})


@catalog.route('/products/<int:product_id>/discount/toggle', methods=['POST'])
def toggle_discount(product_id):
    product = db.session.get(Product, product_id) or abort(404)
    if product.discount is None:
        return jsonify({'success': False, 'message': 'Product has no discount'}), 404
    product.discount.is_enabled = not product.discount.is_enabled
    db.session.commit()
    return jsonify({'success': True, 'data': catalog_product(product).to_dict()})


@catalog.route('/products/<int:product_id>/discount', methods=['DELETE'])
def delete_discount(product_id):
    product = db.session.get(Product, product_id) or abort(404)
    if product.discount is not None:
        db.session.delete(product.discount)
        db.session.commit()
        current_app.logger.info(f"Discount removed from product {product_id}")
    return jsonify({'success': True})
