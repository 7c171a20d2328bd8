"""
app/cart/ledger.py
------------------
CartLedger: the checkout session's in-memory cart.

Lines are kept in a dict keyed by product id (insertion order = display
order). Every total is recomputed from the lines on each read; nothing
derived is cached, so totals can never drift from the items.

    subtotal = Σ(unit_price_final × quantity)
    tax      = max(0, (subtotal - discount) × tax_rate)
    total    = max(0, subtotal - discount + tax)

Subscribers registered with subscribe() are called with the ledger after
every mutation that changed something.
"""
from __future__ import annotations
import logging
import uuid
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional

from app.cart.held import (
    CartBusyError, CartSnapshot, EmptyCartError, SalesApi, TicketRef,
)
from app.cart.items import LineItem


logger = logging.getLogger(__name__)

Q    = Decimal('0.01')
ZERO = Decimal('0')

# Largest order discount the held_tickets.discount column (12, 2) can store.
MAX_DISCOUNT = Decimal('9999999999.99')

Listener = Callable[['CartLedger'], None]


def new_hold_key() -> str:
    return uuid.uuid4().hex


class CartLedger:
    """
    `hold_key` identifies the current contents for hold purposes. It is
    stored with the session, sent with every hold and replaced whenever the
    cart starts over, so a replayed hold of the same cart is recognised.
    """

    def __init__(self, tax_rate=ZERO, hold_key: Optional[str] = None):
        self.tax_rate: Decimal = Decimal(str(tax_rate))
        self.discount: Decimal = ZERO
        self.held_ticket_id: Optional[str] = None
        self.held_ticket_no: Optional[str] = None
        self.hold_key: str = hold_key or new_hold_key()
        self._lines: Dict[str, LineItem] = {}
        self._listeners: List[Listener] = []
        self._busy = False

    # ── Read ──────────────────────────────────────────────────────

    @property
    def lines(self) -> List[LineItem]:
        return list(self._lines.values())

    @property
    def busy(self) -> bool:
        return self._busy

    def get(self, item_id) -> Optional[LineItem]:
        return self._lines.get(str(item_id))

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(self.lines)

    def item_count(self) -> int:
        """Total units across all lines."""
        return sum(line.quantity for line in self._lines.values())

    # ── Totals (computed on every read) ───────────────────────────

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), start=ZERO)

    def savings(self) -> Decimal:
        """Automatic per-product discount already folded into unit prices."""
        return sum((line.line_savings for line in self._lines.values()), start=ZERO)

    def tax(self) -> Decimal:
        taxable = self.subtotal() - self.discount
        return max(ZERO, (taxable * self.tax_rate).quantize(Q, rounding=ROUND_HALF_UP))

    def total(self) -> Decimal:
        return max(ZERO, self.subtotal() - self.discount + self.tax())

    def totals(self) -> dict:
        return {
            'subtotal': self.subtotal(),
            'savings':  self.savings(),
            'discount': self.discount,
            'tax':      self.tax(),
            'total':    self.total(),
        }

    # ── Observers ─────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    # ── Mutations ─────────────────────────────────────────────────

    def add_item(self, item: LineItem, qty: int = 1) -> LineItem:
        """
        Add `qty` units of `item`.

        A repeat add only bumps the quantity: the unit price recorded at the
        first add stays locked for the rest of the sale.
        """
        qty = max(1, int(qty))
        key = str(item.id)
        existing = self._lines.get(key)

        if existing is not None:
            existing.quantity += qty
            for barcode in item.barcodes:
                if barcode not in existing.barcodes:
                    existing.barcodes.append(barcode)
            line = existing
        else:
            line = item.copy()
            line.id = key
            line.quantity = qty
            self._lines[key] = line

        self._notify()
        return line

    def inc(self, item_id) -> None:
        line = self._lines.get(str(item_id))
        if line is None:
            return
        line.quantity += 1
        self._notify()

    def dec(self, item_id) -> None:
        """Decrement by one; a line at quantity 1 is removed, never left at 0."""
        key = str(item_id)
        line = self._lines.get(key)
        if line is None:
            return
        if line.quantity <= 1:
            del self._lines[key]
        else:
            line.quantity -= 1
        self._notify()

    def remove(self, item_id) -> None:
        if self._lines.pop(str(item_id), None) is not None:
            self._notify()

    def clear(self) -> None:
        """Empty the cart and reset the order-level discount. Idempotent."""
        changed = bool(self._lines) or self.discount != ZERO or self.held_ticket_id is not None
        if not changed:
            return
        self._reset()
        self._notify()

    def set_discount(self, amount) -> None:
        """
        Set the order-level discount. Negative amounts are clamped to zero;
        a non-number or an amount above MAX_DISCOUNT raises ValueError.
        """
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise ValueError(f'Discount {amount!r} is not a number')
        if not amount.is_finite() or amount > MAX_DISCOUNT:
            raise ValueError(f'Discount {amount} is out of range')

        amount = max(ZERO, amount.quantize(Q, rounding=ROUND_HALF_UP))
        if amount != self.discount:
            self.discount = amount
            self._notify()

    def _reset(self):
        self._lines = {}
        self.discount = ZERO
        self.held_ticket_id = None
        self.held_ticket_no = None
        self.hold_key = new_hold_key()

    # ── Held tickets ──────────────────────────────────────────────

    def snapshot(self, note: Optional[str] = None) -> CartSnapshot:
        return CartSnapshot(
            lines=[line.copy() for line in self._lines.values()],
            discount=self.discount,
            note=note,
            hold_key=self.hold_key,
        )

    def hold(self, sales_api: SalesApi, note: Optional[str] = None) -> TicketRef:
        """
        Park the current sale with the sales API, then clear the cart.

        If the API call raises, the exception propagates and the cart is
        left exactly as it was.
        """
        if self._busy:
            raise CartBusyError('A hold or resume is already in progress')
        if not self._lines:
            raise EmptyCartError('Cart is empty')

        snapshot = self.snapshot(note)
        self._busy = True
        try:
            ticket = sales_api.hold(snapshot)
        finally:
            self._busy = False

        logger.info('Held %d line(s) as ticket %s', len(snapshot.lines), ticket.ticket_no)
        self._reset()
        self.held_ticket_id = ticket.id
        self.held_ticket_no = ticket.ticket_no
        self._notify()
        return ticket

    def resume(self, sales_api: SalesApi, ticket_id) -> CartSnapshot:
        """
        Replace the cart wholesale with a held ticket's snapshot.

        Unsaved lines are discarded; warning the cashier first is the
        caller's job.
        """
        if self._busy:
            raise CartBusyError('A hold or resume is already in progress')

        self._busy = True
        try:
            snapshot = sales_api.resume(str(ticket_id))
        finally:
            self._busy = False

        if self._lines:
            logger.warning('Resuming ticket %s discards %d unsaved line(s)', ticket_id, len(self._lines))

        lines: Dict[str, LineItem] = {}
        for line in snapshot.lines:
            if line.quantity < 1:
                continue
            if line.id in lines:
                lines[line.id].quantity += line.quantity
            else:
                lines[line.id] = line.copy()

        self._lines = lines
        self.discount = max(ZERO, snapshot.discount)
        self.held_ticket_id = str(ticket_id)
        self.held_ticket_no = snapshot.ticket_no
        self.hold_key = new_hold_key()
        self._notify()
        return snapshot

    # ── Session (de)serialisation ─────────────────────────────────

    def to_dict(self) -> dict:
        return {
            'lines':        [line.to_dict() for line in self._lines.values()],
            'discount':     str(self.discount),
            'heldTicketId': self.held_ticket_id,
            'heldTicketNo': self.held_ticket_no,
            'holdKey':      self.hold_key,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict], tax_rate=ZERO) -> 'CartLedger':
        if not data:
            return cls(tax_rate=tax_rate)
        ledger = cls(tax_rate=tax_rate, hold_key=data.get('holdKey'))
        for raw in data.get('lines', []):
            line = LineItem.from_dict(raw)
            if line.quantity >= 1:
                ledger._lines[line.id] = line
        ledger.discount = max(ZERO, Decimal(data.get('discount') or '0'))
        ledger.held_ticket_id = data.get('heldTicketId')
        ledger.held_ticket_no = data.get('heldTicketNo')
        return ledger

    def __repr__(self):
        return f'<CartLedger lines={len(self._lines)} total={self.total()}>'
