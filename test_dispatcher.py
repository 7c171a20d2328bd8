"""
test_dispatcher.py — Tests for the focus-routed keyboard dispatcher.
Run: pytest test_dispatcher.py -v
"""
import pytest
from decimal import Decimal

from app.cart.items import line_item_for
from app.cart.ledger import CartLedger
from app.catalog.pricing import CatalogProduct
from app.keyboard.dispatcher import DispatcherHooks, InputDispatcher
from app.keyboard.events import (
    CART, PAYMENT, PRODUCTS, KeyEvent, KeyEventSource, NavigationState,
)
from app.pricing.resolver import PricingError
from app.pricing.tiers import ConfiguredTier, ProductPricing, UnconfiguredTier


# ── Fixtures ──────────────────────────────────────────────────────

def product(pid, stock=5, retail='100.00', wholesale=None):
    return CatalogProduct(
        id=pid, name=f'Item {pid}', barcode=f'BC{pid}', stock=stock,
        pricing=ProductPricing(
            retail=ConfiguredTier(base=Decimal(retail)),
            wholesale=ConfiguredTier(base=Decimal(wholesale)) if wholesale else UnconfiguredTier(),
        ),
    )


class Recorder:
    """Collects hook calls and notices."""

    def __init__(self):
        self.calls = []
        self.notices = []

    def hooks(self):
        names = ['on_pay', 'on_hold', 'on_resume', 'on_damage', 'on_return', 'on_exchange',
                 'on_print', 'on_show_help', 'on_logout', 'on_focus_product_search',
                 'on_focus_cart', 'on_blur']
        hooks = DispatcherHooks(**{n: (lambda n=n: self.calls.append(n)) for n in names})
        hooks.on_notice = lambda level, message: self.notices.append((level, message))
        hooks.on_customer_type_change = lambda t: self.calls.append(f'customer:{t}')
        return hooks


@pytest.fixture
def rec():
    return Recorder()


@pytest.fixture
def cart():
    return CartLedger()


@pytest.fixture
def products():
    # 3 per row → rows [P0 P1 P2] [P3 P4 P5] [P6]
    return [product(f'P{i}') for i in range(7)]


@pytest.fixture
def dispatcher(cart, products, rec):
    d = InputDispatcher(cart, products, NavigationState(), rec.hooks(), products_per_row=3)
    d.attach()
    yield d
    d.detach()


def press(d, key, **mods):
    return d.handle_key(KeyEvent(key, **mods))


# ── 1. Scenarios ──────────────────────────────────────────────────

def test_f9_on_empty_cart_raises_notice_not_payment(dispatcher, rec):
    outcome = press(dispatcher, 'F9')
    assert outcome.consumed
    assert 'on_pay' not in rec.calls
    assert ('error', 'Cart is empty') in rec.notices
    assert dispatcher.nav.focus_area == PRODUCTS


def test_enter_plus_minus_scenario(dispatcher, cart):
    """Add P0 via Enter, + to 2, - twice removes the line."""
    press(dispatcher, 'Home')
    press(dispatcher, 'Enter')
    assert [(l.id, l.quantity) for l in cart.lines] == [('P0', 1)]

    press(dispatcher, 'F2')
    assert dispatcher.nav.focus_area == CART
    assert dispatcher.nav.selected_cart_index == 0

    press(dispatcher, '+')
    assert cart.get('P0').quantity == 2

    press(dispatcher, '-')
    press(dispatcher, '-')
    assert cart.get('P0') is None
    assert dispatcher.nav.selected_cart_index == -1


def test_f9_with_items_opens_payment(dispatcher, rec):
    press(dispatcher, 'Home')
    press(dispatcher, 'Enter')
    outcome = press(dispatcher, 'F9')
    assert outcome.action == 'pay'
    assert rec.calls[-1] == 'on_pay'
    assert dispatcher.nav.focus_area == PAYMENT


# ── 2. Modal suppression ──────────────────────────────────────────

@pytest.mark.parametrize('focus', [PRODUCTS, CART, PAYMENT])
@pytest.mark.parametrize('key', ['ArrowUp', 'ArrowDown', 'ArrowLeft', 'ArrowRight',
                                 'Home', 'End', 'Enter', 'Tab', '3', '+', '-', 'Delete'])
def test_modal_blocks_navigation_and_mutation(cart, products, rec, focus, key):
    d = InputDispatcher(cart, products, NavigationState(), rec.hooks(), products_per_row=3).attach()
    cart.add_item(line_item_for(products[1]))
    d.nav.focus_area = focus
    d.nav.selected_product_index = 1
    d.nav.selected_cart_index = 0
    d.nav.open_modal('payment')
    before_cart, before_nav = cart.to_dict(), d.nav.to_dict()

    outcome = press(d, key)

    assert not outcome.consumed
    assert cart.to_dict() == before_cart
    assert d.nav.to_dict() == before_nav


def test_escape_left_to_open_modal(dispatcher, rec):
    dispatcher.nav.selected_product_index = 2
    dispatcher.nav.open_modal('help')
    assert not press(dispatcher, 'Escape').consumed
    assert dispatcher.nav.selected_product_index == 2
    assert 'on_blur' not in rec.calls


def test_function_keys_still_work_with_modal_open(dispatcher, rec):
    dispatcher.nav.open_modal('return')
    assert press(dispatcher, 'F4').consumed
    assert rec.calls == ['on_hold']


def test_close_modal_restores_focus(dispatcher):
    dispatcher.nav.focus_area = CART
    dispatcher.nav.open_modal('damage')
    dispatcher.nav.close_modal()
    assert dispatcher.nav.focus_area == CART
    assert not dispatcher.nav.modal_open


# ── 3. Escape / text input / help ─────────────────────────────────

def test_escape_blurs_and_clears_selection(dispatcher, rec):
    dispatcher.nav.selected_product_index = 4
    dispatcher.nav.selected_cart_index = 0
    assert press(dispatcher, 'Escape').action == 'escape'
    assert dispatcher.nav.selected_product_index == -1
    assert dispatcher.nav.selected_cart_index == -1
    assert rec.calls == ['on_blur']


def test_function_keys_work_inside_text_input(dispatcher, rec):
    outcome = press(dispatcher, 'F1', in_text_input=True)
    assert outcome.action == 'focus_search'
    assert rec.calls == ['on_focus_product_search']


def test_text_input_keeps_native_keys(dispatcher, cart):
    dispatcher.nav.selected_product_index = 0
    for key in ['ArrowRight', 'Enter', '5', 'Tab', '?']:
        assert not press(dispatcher, key, in_text_input=True).consumed
    assert cart.is_empty()
    assert dispatcher.nav.selected_product_index == 0


def test_help_only_outside_text_input(dispatcher, rec):
    assert press(dispatcher, '?').action == 'help'
    assert rec.calls == ['on_show_help']


# ── 4. Ctrl shortcuts ─────────────────────────────────────────────

@pytest.mark.parametrize('key,hook', [
    ('l', 'on_logout'), ('p', 'on_print'), ('r', 'on_return'),
    ('e', 'on_exchange'), ('d', 'on_damage'), ('f', 'on_focus_product_search'),
])
def test_ctrl_shortcuts(dispatcher, rec, key, hook):
    assert press(dispatcher, key, ctrl=True).consumed
    assert rec.calls == [hook]


def test_cmd_counts_as_ctrl(dispatcher, rec):
    press(dispatcher, 'P', meta=True)
    assert rec.calls == ['on_print']


def test_ctrl_delete_clears_cart(dispatcher, cart, products, rec):
    dispatcher.add_product_at(0, 3)
    outcome = press(dispatcher, 'Delete', ctrl=True, in_text_input=True)
    assert outcome.action == 'clear_cart'
    assert cart.is_empty()
    assert ('info', 'Cart cleared') in rec.notices


def test_ctrl_backspace_needs_shift(dispatcher, cart):
    dispatcher.add_product_at(0)
    outcome = press(dispatcher, 'Backspace', ctrl=True)
    assert outcome.consumed and outcome.action is None
    assert not cart.is_empty()
    press(dispatcher, 'Backspace', ctrl=True, shift=True)
    assert cart.is_empty()


# ── 5. Tab / product grid ─────────────────────────────────────────

def test_tab_toggles_customer_type(dispatcher, rec):
    press(dispatcher, 'Tab')
    assert dispatcher.nav.customer_type == 'wholesale'
    assert ('info', 'Switched to Wholesale mode') in rec.notices
    press(dispatcher, 'Tab')
    assert dispatcher.nav.customer_type == 'retail'


def test_shift_tab_not_consumed(dispatcher):
    assert not press(dispatcher, 'Tab', shift=True).consumed


@pytest.mark.parametrize('start,key,expected', [
    (-1, 'ArrowRight', 1),      # no selection starts from 0
    (0,  'ArrowLeft',  0),      # clamped at first
    (1,  'ArrowDown',  4),
    (4,  'ArrowDown',  6),      # short last row → clamp to last
    (4,  'ArrowUp',    1),
    (1,  'ArrowUp',    0),
    (3,  'End',        6),
    (5,  'Home',       0),
])
def test_grid_navigation(dispatcher, start, key, expected):
    dispatcher.nav.selected_product_index = start
    press(dispatcher, key)
    assert dispatcher.nav.selected_product_index == expected


def test_enter_without_selection_adds_nothing(dispatcher, cart):
    assert press(dispatcher, 'Enter').consumed
    assert cart.is_empty()


def test_digit_adds_exact_quantity(dispatcher, cart, rec):
    dispatcher.nav.selected_product_index = 2
    press(dispatcher, '7')
    assert cart.get('P2').quantity == 7
    assert ('success', 'Added 7x Item P2') in rec.notices


def test_out_of_stock_is_a_notice(cart, rec):
    d = InputDispatcher(cart, [product('X', stock=0)], hooks=rec.hooks()).attach()
    d.nav.selected_product_index = 0
    outcome = press(d, 'Enter')
    assert outcome.action == 'out_of_stock'
    assert cart.is_empty()
    assert ('error', 'Out of stock') in rec.notices


def test_wholesale_mode_prices_at_wholesale(cart, rec):
    d = InputDispatcher(cart, [product('W', retail='100', wholesale='80')], hooks=rec.hooks()).attach()
    press(d, 'Tab')
    d.nav.selected_product_index = 0
    press(d, 'Enter')
    line = cart.get('W')
    assert line.price_tier == 'wholesale'
    assert line.unit_price_final == Decimal('80.00')


def test_malformed_product_raises(cart, rec):
    broken = CatalogProduct(id='B', name='Broken', barcode=None, stock=3,
                            pricing=ProductPricing())
    d = InputDispatcher(cart, [broken], hooks=rec.hooks()).attach()
    d.nav.selected_product_index = 0
    with pytest.raises(PricingError):
        press(d, 'Enter')


# ── 6. Cart navigation ────────────────────────────────────────────

@pytest.fixture
def filled(dispatcher):
    for i in range(3):
        dispatcher.add_product_at(i)
    press(dispatcher, 'F2')
    return dispatcher


def test_cart_arrows_clamped(filled):
    press(filled, 'ArrowUp')
    assert filled.nav.selected_cart_index == 0
    for _ in range(5):
        press(filled, 'ArrowDown')
    assert filled.nav.selected_cart_index == 2


def test_cart_enter_increments(filled, cart):
    press(filled, 'Enter')
    assert cart.get('P0').quantity == 2


def test_delete_last_line_moves_selection_to_new_last(filled, cart):
    press(filled, 'End')
    press(filled, 'Delete')
    assert [l.id for l in cart.lines] == ['P0', 'P1']
    assert filled.nav.selected_cart_index == 1


def test_delete_middle_line_keeps_index(filled, cart):
    press(filled, 'ArrowDown')
    press(filled, 'Backspace')
    assert [l.id for l in cart.lines] == ['P0', 'P2']
    assert filled.nav.selected_cart_index == 1


def test_one_key_one_action(filled, rec, cart):
    """Digits in cart focus do nothing; nothing else fires on an unmapped key."""
    before = cart.to_dict()
    assert not press(filled, '4').consumed
    assert cart.to_dict() == before
    assert rec.calls == ['on_focus_cart']


# ── 7. Lifecycle ──────────────────────────────────────────────────

def test_detached_dispatcher_ignores_keys(cart, products, rec):
    d = InputDispatcher(cart, products, hooks=rec.hooks())
    assert not press(d, 'F4').consumed
    d.attach()
    assert press(d, 'F4').consumed
    d.detach()
    assert not press(d, 'F4').consumed
    assert rec.calls == ['on_hold']


def test_event_source_subscription(cart, products, rec):
    source = KeyEventSource()
    first = InputDispatcher(cart, products, hooks=rec.hooks()).attach(source)
    second = InputDispatcher(CartLedger(), products, hooks=Recorder().hooks()).attach(source)
    assert source.handler_count == 2

    first.detach()
    assert source.handler_count == 1
    source.emit(KeyEvent('F4'))
    assert rec.calls == []
    second.detach()


def test_unknown_focus_area_rejected():
    nav = NavigationState()
    with pytest.raises(ValueError):
        nav.set_focus_area('sidebar')
    nav.set_focus_area(CART)
    assert nav.focus_area == CART
