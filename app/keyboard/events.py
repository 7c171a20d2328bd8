"""
app/keyboard/events.py
----------------------
Key events, the event source dispatchers attach to, and the per-checkout
navigation state (focus area, selected indices, customer type, modal).
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.pricing.tiers import RETAIL, WHOLESALE


# ── Focus areas ───────────────────────────────────────────────────
PRODUCTS = 'products'
CART     = 'cart'
PAYMENT  = 'payment'
MODAL    = 'modal'
FOCUS_AREAS = (PRODUCTS, CART, PAYMENT, MODAL)

NO_SELECTION = -1


@dataclass(frozen=True)
class KeyEvent:
    """
    One keydown. `key` uses DOM KeyboardEvent.key names
    ('F9', 'ArrowUp', 'Enter', 'Delete', '+', '3', 'l', ...).
    `in_text_input` is True when an input/textarea/contenteditable has focus.
    """
    key:           str
    ctrl:          bool = False
    meta:          bool = False
    shift:         bool = False
    in_text_input: bool = False

    @property
    def is_ctrl(self) -> bool:
        """Ctrl on Windows/Linux, Cmd on macOS."""
        return self.ctrl or self.meta

    @classmethod
    def from_dict(cls, data: dict) -> 'KeyEvent':
        key = data.get('key')
        if not isinstance(key, str) or not key:
            raise ValueError('Key event requires a non-empty "key"')
        return cls(
            key=key,
            ctrl=bool(data.get('ctrl', False)),
            meta=bool(data.get('meta', False)),
            shift=bool(data.get('shift', False)),
            in_text_input=bool(data.get('inTextInput', False)),
        )


KeyHandler = Callable[[KeyEvent], object]


class KeyEventSource:
    """A keydown subscription point (the window listener, a test harness, ...)."""

    def __init__(self):
        self._handlers: List[KeyHandler] = []

    def subscribe(self, handler: KeyHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)
        return unsubscribe

    def emit(self, event: KeyEvent) -> list:
        """Deliver `event` to every handler in subscription order."""
        return [handler(event) for handler in list(self._handlers)]

    @property
    def handler_count(self) -> int:
        return len(self._handlers)


@dataclass
class NavigationState:
    focus_area:             str = PRODUCTS
    selected_product_index: int = NO_SELECTION
    selected_cart_index:    int = NO_SELECTION
    customer_type:          str = RETAIL
    modal_open:             bool = False
    modal_name:             Optional[str] = None
    focus_before_modal:     Optional[str] = None

    def set_focus_area(self, area: str) -> None:
        if area not in FOCUS_AREAS:
            raise ValueError(f'Unknown focus area {area!r}')
        self.focus_area = area

    def toggle_customer_type(self) -> str:
        self.customer_type = WHOLESALE if self.customer_type == RETAIL else RETAIL
        return self.customer_type

    def clear_selection(self) -> None:
        self.selected_product_index = NO_SELECTION
        self.selected_cart_index = NO_SELECTION

    def open_modal(self, name: str = 'modal') -> None:
        if not self.modal_open:
            self.focus_before_modal = self.focus_area
        self.modal_open = True
        self.modal_name = name
        self.focus_area = MODAL

    def close_modal(self) -> None:
        if not self.modal_open:
            return
        self.focus_area = self.focus_before_modal or PRODUCTS
        self.modal_open = False
        self.modal_name = None
        self.focus_before_modal = None

    def reset(self) -> None:
        """Back to the product grid after a sale completes or the session clears."""
        self.focus_area = PRODUCTS
        self.clear_selection()
        self.modal_open = False
        self.modal_name = None
        self.focus_before_modal = None

    # ── Session (de)serialisation ─────────────────────────────────

    def to_dict(self) -> dict:
        return {
            'focusArea':            self.focus_area,
            'selectedProductIndex': self.selected_product_index,
            'selectedCartIndex':    self.selected_cart_index,
            'customerType':         self.customer_type,
            'modalOpen':            self.modal_open,
            'modalName':            self.modal_name,
            'focusBeforeModal':     self.focus_before_modal,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'NavigationState':
        if not data:
            return cls()
        focus = data.get('focusArea')
        customer = data.get('customerType')
        return cls(
            focus_area=focus if focus in FOCUS_AREAS else PRODUCTS,
            selected_product_index=int(data.get('selectedProductIndex', NO_SELECTION)),
            selected_cart_index=int(data.get('selectedCartIndex', NO_SELECTION)),
            customer_type=WHOLESALE if customer == WHOLESALE else RETAIL,
            modal_open=bool(data.get('modalOpen', False)),
            modal_name=data.get('modalName'),
            focus_before_modal=data.get('focusBeforeModal'),
        )
