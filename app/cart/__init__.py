from app.cart.items import LineItem, line_item_for  # noqa: F401
from app.cart.held import (  # noqa: F401
    CartBusyError, CartSnapshot, DuplicateHoldError, EmptyCartError, SalesApi,
    SalesApiError, TicketNotFoundError, TicketRef,
)
from app.cart.ledger import CartLedger, MAX_DISCOUNT  # noqa: F401
