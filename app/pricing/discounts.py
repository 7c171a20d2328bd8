"""
app/pricing/discounts.py
------------------------
Time-windowed product discounts and their derived status.

Status is never stored; it is a pure function of the discount and `now`:

    none      → product has no discount
    disabled  → is_enabled=False (wins over the time window)
    scheduled → now <  start_at
    active    → start_at <= now <= end_at
    expired   → now >  end_at
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


PERCENTAGE = 'percentage'
FIXED      = 'fixed'
DISCOUNT_TYPES = (PERCENTAGE, FIXED)

# Percentage discounts above this are rejected by validation.
MAX_PERCENTAGE = Decimal('90')

STATUS_NONE      = 'none'
STATUS_DISABLED  = 'disabled'
STATUS_SCHEDULED = 'scheduled'
STATUS_ACTIVE    = 'active'
STATUS_EXPIRED   = 'expired'


@dataclass(frozen=True)
class Discount:
    """A discount attached to one product."""
    is_enabled: bool
    type:       str
    value:      Decimal
    start_at:   datetime
    end_at:     datetime
    notes:      Optional[str] = None

    def status(self, now: Optional[datetime] = None) -> str:
        return discount_status(self, now)


def discount_status(discount: Optional[Discount], now: Optional[datetime] = None) -> str:
    """Derive the lifecycle status of `discount` at `now` (default: utcnow)."""
    if discount is None:
        return STATUS_NONE
    if not discount.is_enabled:
        return STATUS_DISABLED
    now = now or datetime.utcnow()
    if now < discount.start_at:
        return STATUS_SCHEDULED
    if now > discount.end_at:
        return STATUS_EXPIRED
    return STATUS_ACTIVE
