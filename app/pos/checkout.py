"""
app/pos/checkout.py
-------------------
One cashier's checkout session: cart ledger + navigation state, stored in
the Flask session between requests.

Session structure under key 'checkout':
{
    "cart":       { ...CartLedger.to_dict()... },
    "navigation": { ...NavigationState.to_dict()... },
    "gridSearch": str | null       ← filter that defines the visible product grid
}

Completed sales are announced on the `sale_completed` blinker signal:

    @sale_completed.connect
    def print_receipt(sender, detail):
        ...

Delivery is best-effort: a failing receiver is logged and the next one
still runs. Never rely on it for correctness.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from blinker import Namespace
from flask import session, current_app

from app.cart.items import line_item_for
from app.cart.ledger import CartLedger
from app.catalog.lookup import find_by_barcode, load_catalog
from app.keyboard.dispatcher import DispatcherHooks, InputDispatcher
from app.keyboard.events import NavigationState


logger = logging.getLogger(__name__)

CHECKOUT_KEY = 'checkout'

_signals = Namespace()

#: Sent by Checkout.complete_sale with ``detail`` (the receipt dict).
sale_completed = _signals.signal('sale-completed')


# ── Sale-completed broadcast ──────────────────────────────────────

def announce_sale_completed(sender, detail: dict) -> int:
    """Call every receiver for `sender`; returns how many succeeded."""
    delivered = 0
    for receiver in sale_completed.receivers_for(sender):
        try:
            receiver(sender, detail=detail)
            delivered += 1
        except Exception:
            logger.exception('Sale-completed receiver %r failed', receiver)
    return delivered


# ── Checkout ──────────────────────────────────────────────────────

class Checkout:

    def __init__(self, cart: CartLedger, navigation: NavigationState,
                 grid_search: Optional[str] = None):
        self.cart = cart
        self.nav = navigation
        self.grid_search = grid_search

    def products(self):
        return load_catalog(self.grid_search)

    def dispatcher(self, hooks: DispatcherHooks, products_per_row: int) -> InputDispatcher:
        return InputDispatcher(
            cart=self.cart,
            products=self.products(),
            navigation=self.nav,
            hooks=hooks,
            products_per_row=products_per_row,
        )

    def scan(self, barcode: str, notices: list) -> str:
        """
        Add one unit of the product with `barcode`.
        Returns 'added', 'not_found' or 'out_of_stock'.
        """
        product = find_by_barcode(barcode)
        if product is None:
            notices.append(('error', f'No product with barcode {barcode}'))
            return 'not_found'
        if product.stock <= 0:
            notices.append(('error', 'Out of stock'))
            return 'out_of_stock'
        item = line_item_for(product, self.nav.customer_type)
        item.barcodes = [barcode]
        self.cart.add_item(item, 1)
        notices.append(('success', f'Added: {product.name}'))
        return 'added'

    def complete_sale(self, payment: Optional[dict] = None) -> dict:
        """Close out the current sale: snapshot totals, clear, reset focus."""
        detail = {
            'items':       [line.to_dict() for line in self.cart.lines],
            'subtotal':    str(self.cart.subtotal()),
            'discount':    str(self.cart.discount),
            'tax':         str(self.cart.tax()),
            'total':       str(self.cart.total()),
            'heldTicketNo': self.cart.held_ticket_no,
            'payment':     payment or {},
            'completedAt': datetime.utcnow().isoformat(),
        }
        self.cart.clear()
        self.nav.reset()
        announce_sale_completed(self, detail)
        return detail

    def to_dict(self) -> dict:
        return {
            'cart':       self.cart.to_dict(),
            'navigation': self.nav.to_dict(),
            'gridSearch': self.grid_search,
        }

    def state(self) -> dict:
        """JSON view for the checkout screen."""
        totals = {name: str(value) for name, value in self.cart.totals().items()}
        return {
            'cart':       self.cart.to_dict(),
            'totals':     totals,
            'itemCount':  self.cart.item_count(),
            'navigation': self.nav.to_dict(),
            'gridSearch': self.grid_search,
        }


# ── Flask session storage ─────────────────────────────────────────

def load_checkout() -> Checkout:
    """Rebuild the checkout from the Flask session (empty if none yet)."""
    data = session.get(CHECKOUT_KEY) or {}
    tax_rate = Decimal(str(current_app.config.get('POS_TAX_RATE', '0')))
    return Checkout(
        cart=CartLedger.from_dict(data.get('cart'), tax_rate=tax_rate),
        navigation=NavigationState.from_dict(data.get('navigation')),
        grid_search=data.get('gridSearch'),
    )


def save_checkout(checkout: Checkout) -> None:
    session[CHECKOUT_KEY] = checkout.to_dict()
    session.modified = True


def clear_checkout() -> None:
    session.pop(CHECKOUT_KEY, None)
    session.modified = True
