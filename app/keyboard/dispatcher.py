"""
app/keyboard/dispatcher.py
--------------------------
Focus-routed keyboard dispatcher for the checkout screen.

Each key event is classified top to bottom and the first matching rule
consumes it, so one keypress triggers at most one action:

    1. Escape            modal open → left to the modal; else blur + deselect
    2. F1 F2 F4 F8 F9    always, even inside a text input
    3. Ctrl/Cmd + key    L F P R E D, Delete / Shift+Backspace
    4. ?                 help, unless typing in a text input
    5. text input        stop, keep native editing
    6. modal open        stop, the modal owns navigation
    7. Tab               toggle retail / wholesale (products focus)
    8. product grid      arrows, Home/End, Enter, 1-9
    9. cart              arrows, Home/End, + - Delete Enter

User-input rejections (out of stock, empty cart) become notices through
`hooks.on_notice`; they never raise. PricingError from a malformed product
is not caught here.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from app.cart.items import line_item_for
from app.cart.ledger import CartLedger
from app.keyboard.events import (
    CART, NO_SELECTION, PAYMENT, PRODUCTS,
    KeyEvent, KeyEventSource, NavigationState,
)


logger = logging.getLogger(__name__)

# Keys that still count as shortcuts while a text input has focus.
ALLOWED_IN_INPUT = frozenset({'Escape', 'F1', 'F2', 'F4', 'F8', 'F9'})

DEFAULT_PRODUCTS_PER_ROW = 5


@dataclass
class DispatcherHooks:
    """Callbacks the checkout UI supplies. Any of them may be left as None."""
    on_pay:                  Optional[Callable[[], None]] = None
    on_hold:                 Optional[Callable[[], None]] = None
    on_resume:               Optional[Callable[[], None]] = None
    on_damage:               Optional[Callable[[], None]] = None
    on_return:               Optional[Callable[[], None]] = None
    on_exchange:             Optional[Callable[[], None]] = None
    on_print:                Optional[Callable[[], None]] = None
    on_show_help:            Optional[Callable[[], None]] = None
    on_logout:               Optional[Callable[[], None]] = None
    on_focus_product_search: Optional[Callable[[], None]] = None
    on_focus_cart:           Optional[Callable[[], None]] = None
    on_blur:                 Optional[Callable[[], None]] = None
    on_customer_type_change: Optional[Callable[[str], None]] = None
    on_notice:               Optional[Callable[[str, str], None]] = None


@dataclass(frozen=True)
class KeyOutcome:
    consumed: bool
    action:   Optional[str] = None


IGNORED = KeyOutcome(False)


def _call(hook, *args):
    if hook is not None:
        hook(*args)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class InputDispatcher:

    def __init__(self, cart: CartLedger, products: Sequence = (),
                 navigation: Optional[NavigationState] = None,
                 hooks: Optional[DispatcherHooks] = None,
                 products_per_row: int = DEFAULT_PRODUCTS_PER_ROW):
        if products_per_row < 1:
            raise ValueError('products_per_row must be at least 1')
        self.cart = cart
        self.products = list(products)
        self.nav = navigation or NavigationState()
        self.hooks = hooks or DispatcherHooks()
        self.products_per_row = products_per_row
        self._unsubscribe_cart = None
        self._unsubscribe_source = None

    # ── Lifecycle ─────────────────────────────────────────────────

    @property
    def attached(self) -> bool:
        return self._unsubscribe_cart is not None

    def attach(self, source: Optional[KeyEventSource] = None) -> 'InputDispatcher':
        """Start listening: follow cart changes and, if given, `source` key events."""
        if self.attached:
            return self
        self._unsubscribe_cart = self.cart.subscribe(self._on_cart_change)
        if source is not None:
            self._unsubscribe_source = source.subscribe(self.handle_key)
        self._on_cart_change(self.cart)
        return self

    def detach(self) -> None:
        if self._unsubscribe_source is not None:
            self._unsubscribe_source()
            self._unsubscribe_source = None
        if self._unsubscribe_cart is not None:
            self._unsubscribe_cart()
            self._unsubscribe_cart = None

    def _on_cart_change(self, cart: CartLedger) -> None:
        # keep the cart selection inside the (possibly shrunk) cart
        count = len(cart)
        if count == 0:
            self.nav.selected_cart_index = NO_SELECTION
        elif self.nav.selected_cart_index >= count:
            self.nav.selected_cart_index = count - 1

    # ── Helpers ───────────────────────────────────────────────────

    def _notice(self, level: str, message: str) -> None:
        _call(self.hooks.on_notice, level, message)

    def add_product_at(self, index: int, qty: int = 1) -> KeyOutcome:
        """Add the grid product at `index` to the cart, checking stock first."""
        if index < 0 or index >= len(self.products):
            return KeyOutcome(True)

        product = self.products[index]
        if (getattr(product, 'stock', 0) or 0) <= 0:
            self._notice('error', 'Out of stock')
            return KeyOutcome(True, 'out_of_stock')

        item = line_item_for(product, self.nav.customer_type)
        self.cart.add_item(item, qty)
        if qty == 1:
            self._notice('success', f'Added: {product.name}')
        else:
            self._notice('success', f'Added {qty}x {product.name}')
        return KeyOutcome(True, 'add_to_cart')

    # ── Dispatch ──────────────────────────────────────────────────

    def handle_key(self, event: KeyEvent) -> KeyOutcome:
        if not self.attached:
            return IGNORED

        nav = self.nav
        key = event.key

        # 1. Escape
        if key == 'Escape':
            if nav.modal_open:
                return IGNORED
            _call(self.hooks.on_blur)
            nav.clear_selection()
            return KeyOutcome(True, 'escape')

        # 2. Function keys
        outcome = self._function_key(key)
        if outcome is not None:
            return outcome

        # 3. Ctrl / Cmd
        if event.is_ctrl:
            outcome = self._ctrl_key(event)
            if outcome is not None:
                return outcome

        # 4. Help
        if key == '?' and not event.in_text_input:
            _call(self.hooks.on_show_help)
            return KeyOutcome(True, 'help')

        # 5. Native text editing
        if event.in_text_input and key not in ALLOWED_IN_INPUT:
            return IGNORED

        # 6. Dialogs handle their own keys
        if nav.modal_open:
            return IGNORED

        # 7. Tab
        if key == 'Tab' and not event.shift and nav.focus_area == PRODUCTS:
            customer_type = nav.toggle_customer_type()
            _call(self.hooks.on_customer_type_change, customer_type)
            self._notice('info', f'Switched to {customer_type.capitalize()} mode')
            return KeyOutcome(True, 'toggle_customer_type')

        # 8. Product grid
        if nav.focus_area == PRODUCTS and self.products:
            outcome = self._product_key(key)
            if outcome is not None:
                return outcome

        # 9. Cart
        if nav.focus_area == CART and not self.cart.is_empty():
            outcome = self._cart_key(key)
            if outcome is not None:
                return outcome

        return IGNORED

    def _function_key(self, key: str) -> Optional[KeyOutcome]:
        nav, hooks = self.nav, self.hooks

        if key == 'F1':
            _call(hooks.on_focus_product_search)
            nav.set_focus_area(PRODUCTS)
            return KeyOutcome(True, 'focus_search')

        if key == 'F2':
            nav.set_focus_area(CART)
            _call(hooks.on_focus_cart)
            if not self.cart.is_empty() and nav.selected_cart_index < 0:
                nav.selected_cart_index = 0
            return KeyOutcome(True, 'focus_cart')

        if key == 'F4':
            _call(hooks.on_hold)
            return KeyOutcome(True, 'hold')

        if key == 'F8':
            _call(hooks.on_resume)
            return KeyOutcome(True, 'resume')

        if key == 'F9':
            if self.cart.is_empty():
                self._notice('error', 'Cart is empty')
                return KeyOutcome(True, 'empty_cart')
            nav.set_focus_area(PAYMENT)
            _call(hooks.on_pay)
            return KeyOutcome(True, 'pay')

        return None

    def _ctrl_key(self, event: KeyEvent) -> Optional[KeyOutcome]:
        nav, hooks = self.nav, self.hooks
        key = event.key.lower()

        if key == 'l':
            _call(hooks.on_logout)
            return KeyOutcome(True, 'logout')
        if key == 'f':
            _call(hooks.on_focus_product_search)
            nav.set_focus_area(PRODUCTS)
            return KeyOutcome(True, 'focus_search')
        if key == 'p':
            _call(hooks.on_print)
            return KeyOutcome(True, 'print')
        if key == 'r':
            _call(hooks.on_return)
            return KeyOutcome(True, 'return')
        if key == 'e':
            _call(hooks.on_exchange)
            return KeyOutcome(True, 'exchange')
        if key == 'd':
            _call(hooks.on_damage)
            return KeyOutcome(True, 'damage')
        if key in ('delete', 'backspace'):
            if event.shift or event.key == 'Delete':
                self.cart.clear()
                logger.info('Cart cleared from keyboard')
                self._notice('info', 'Cart cleared')
                return KeyOutcome(True, 'clear_cart')
            return KeyOutcome(True)

        return None

    def _product_key(self, key: str) -> Optional[KeyOutcome]:
        nav = self.nav
        last = len(self.products) - 1
        current = nav.selected_product_index if nav.selected_product_index >= 0 else 0

        moves = {
            'ArrowLeft':  current - 1,
            'ArrowRight': current + 1,
            'ArrowUp':    current - self.products_per_row,
            'ArrowDown':  current + self.products_per_row,
            'Home':       0,
            'End':        last,
        }
        if key in moves:
            nav.selected_product_index = _clamp(moves[key], 0, last)
            return KeyOutcome(True, 'select_product')

        if key == 'Enter':
            if nav.selected_product_index < 0:
                return KeyOutcome(True)
            return self.add_product_at(nav.selected_product_index, 1)

        if len(key) == 1 and '1' <= key <= '9':
            if nav.selected_product_index < 0:
                return None
            return self.add_product_at(nav.selected_product_index, int(key))

        return None

    def _cart_key(self, key: str) -> Optional[KeyOutcome]:
        nav, cart = self.nav, self.cart
        lines = cart.lines
        last = len(lines) - 1
        current = nav.selected_cart_index if nav.selected_cart_index >= 0 else 0
        selected = lines[nav.selected_cart_index] if 0 <= nav.selected_cart_index <= last else None

        if key == 'ArrowUp':
            nav.selected_cart_index = _clamp(current - 1, 0, last)
            return KeyOutcome(True, 'select_line')
        if key == 'ArrowDown':
            nav.selected_cart_index = _clamp(current + 1, 0, last)
            return KeyOutcome(True, 'select_line')
        if key == 'Home':
            nav.selected_cart_index = 0
            return KeyOutcome(True, 'select_line')
        if key == 'End':
            nav.selected_cart_index = last
            return KeyOutcome(True, 'select_line')

        # Enter stands in for a quantity editor and just increments.
        if key in ('+', '=', 'Enter'):
            if selected is None:
                return KeyOutcome(True)
            cart.inc(selected.id)
            return KeyOutcome(True, 'increment')

        if key in ('-', '_'):
            if selected is None:
                return KeyOutcome(True)
            cart.dec(selected.id)
            return KeyOutcome(True, 'decrement')

        if key in ('Delete', 'Backspace'):
            if selected is None:
                return KeyOutcome(True)
            cart.remove(selected.id)
            return KeyOutcome(True, 'remove_line')

        return None
