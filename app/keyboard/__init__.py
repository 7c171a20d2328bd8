from app.keyboard.events import (  # noqa: F401
    CART, MODAL, PAYMENT, PRODUCTS, NO_SELECTION,
    KeyEvent, KeyEventSource, NavigationState,
)
from app.keyboard.dispatcher import (  # noqa: F401
    DispatcherHooks, InputDispatcher, KeyOutcome,
)
