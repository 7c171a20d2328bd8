"""
app/cart/held.py
----------------
Boundary types for the held-ticket (parked sale) collaborator.

The ledger only needs two atomic remote calls:

    hold(snapshot)    -> TicketRef
    resume(ticket_id) -> CartSnapshot

Any failure is raised as SalesApiError (or a subclass). There are no
partial states and the core never retries. A hold carries the ledger's
hold key; holding the same key twice raises DuplicateHoldError.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Protocol

from app.cart.items import LineItem


class SalesApiError(Exception):
    """Transport / persistence failure talking to the sales API."""


class TicketNotFoundError(SalesApiError):
    """No held ticket with that id (or it was already resumed)."""


class DuplicateHoldError(SalesApiError):
    """This cart (same hold key) is already parked as `ticket`."""

    def __init__(self, ticket: 'TicketRef'):
        super().__init__(f'Cart already held as {ticket.ticket_no}')
        self.ticket = ticket


class CartBusyError(RuntimeError):
    """A hold or resume is already in flight for this cart."""


class EmptyCartError(ValueError):
    """Tried to hold a cart with no lines."""


@dataclass(frozen=True)
class TicketRef:
    id:        str
    ticket_no: str


@dataclass
class CartSnapshot:
    lines:     List[LineItem] = field(default_factory=list)
    discount:  Decimal = Decimal('0')
    note:      Optional[str] = None
    ticket_no: Optional[str] = None
    hold_key:  Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'lines':    [line.to_dict() for line in self.lines],
            'discount': str(self.discount),
            'note':     self.note,
            'ticketNo': self.ticket_no,
            'holdKey':  self.hold_key,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CartSnapshot':
        return cls(
            lines=[LineItem.from_dict(d) for d in data.get('lines', [])],
            discount=Decimal(data.get('discount') or '0'),
            note=data.get('note'),
            ticket_no=data.get('ticketNo'),
            hold_key=data.get('holdKey'),
        )


class SalesApi(Protocol):
    """What the ledger needs from the sales back end."""

    def hold(self, snapshot: CartSnapshot) -> TicketRef:
        ...

    def resume(self, ticket_id: str) -> CartSnapshot:
        ...
