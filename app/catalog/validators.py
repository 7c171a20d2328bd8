"""
app/catalog/validators.py
-------------------------
Pure-Python validation for product discount form data.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from app.pricing.discounts import DISCOUNT_TYPES, MAX_PERCENTAGE, PERCENTAGE, FIXED


def _parse_datetime(raw: str):
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def validate_discount_form(form_data: dict, base_price=None) -> dict:
    """
    Validate raw form data for creating / editing a product discount.

    Args:
        form_data:  dict of raw string values from request.form / JSON body
        base_price: the product's base price; a fixed discount may not
                    exceed it (that would give a negative final price)

    Returns:
        dict of {field_name: error_message} — empty if all valid.
    """
    errors = {}

    # ── type ──────────────────────────────────────────────────────
    discount_type = str(form_data.get('type', '')).strip()
    if discount_type not in DISCOUNT_TYPES:
        errors['type'] = 'Discount type must be percentage or fixed.'

    # ── value ─────────────────────────────────────────────────────
    value_raw = str(form_data.get('value', '')).strip()
    value = None
    if not value_raw:
        errors['value'] = 'Discount value is required.'
    else:
        try:
            value = Decimal(value_raw)
            if not value.is_finite() or value <= 0:
                errors['value'] = 'Discount value must be greater than zero.'
                value = None
        except InvalidOperation:
            errors['value'] = 'Discount value must be a valid number.'

    if value is not None:
        if discount_type == PERCENTAGE and value > MAX_PERCENTAGE:
            errors['value'] = 'Percentage discounts cannot exceed 90%.'
        elif discount_type == FIXED and base_price is not None and value > Decimal(str(base_price)):
            errors['value'] = 'Fixed discount cannot exceed the product price.'

    # ── window ────────────────────────────────────────────────────
    start_raw = str(form_data.get('startAt', '')).strip()
    end_raw   = str(form_data.get('endAt', '')).strip()
    if not start_raw or not end_raw:
        errors['window'] = 'Start and end date/time are required.'
    else:
        start, end = _parse_datetime(start_raw), _parse_datetime(end_raw)
        if start is None or end is None:
            errors['window'] = 'Dates must be ISO formatted (YYYY-MM-DDTHH:MM).'
        elif start >= end:
            errors['window'] = 'End date must be after start date.'

    notes = str(form_data.get('notes') or '')
    if len(notes) > 300:
        errors['notes'] = 'Notes must be 300 characters or fewer.'

    return errors


def parse_discount_form(form_data: dict) -> dict:
    """
    Convert validated raw form strings to correct Python types.
    Call only after validate_discount_form returns no errors.
    """
    enabled = form_data.get('isEnabled', True)
    return {
        'discount_type': str(form_data['type']).strip(),
        'value':         Decimal(str(form_data['value']).strip()),
        'start_at':      datetime.fromisoformat(str(form_data['startAt']).strip()),
        'end_at':        datetime.fromisoformat(str(form_data['endAt']).strip()),
        'is_enabled':    enabled in (True, '1', 'true', 'on', 'yes'),
        'notes':         (str(form_data.get('notes') or '').strip() or None),
    }
