"""
app/pos/routes.py
-----------------
JSON endpoints driving the checkout screen.

The browser forwards every keydown to POST /pos/keys; the response says
whether the key was consumed, which action ran, any notices to toast, and
what the UI should open (payment modal, help overlay, held-ticket picker).
"""
from flask import jsonify, request, current_app

from app import db
from app.cart.held import (
    CartBusyError, DuplicateHoldError, EmptyCartError, SalesApiError, TicketNotFoundError,
)
from app.keyboard.dispatcher import DispatcherHooks
from app.keyboard.events import NO_SELECTION, KeyEvent
from app.keyboard.shortcuts import POS_SHORTCUTS
from app.pos import pos
from app.pos.checkout import load_checkout, save_checkout, clear_checkout
from app.sales.api import SqlSalesApi


SCAN_STATUS = {'added': 200, 'not_found': 404, 'out_of_stock': 409}


def _respond(checkout, notices=(), status=200, **extra):
    body = {
        'success': 200 <= status < 300,
        'state':   checkout.state(),
        'notices': [{'level': level, 'message': message} for level, message in notices],
    }
    body.update(extra)
    return jsonify(body), status


def _hold(checkout, notices, note=None):
    """
    Park the cart. Returns (ticket, status); ticket is None on failure and
    status is the HTTP code the hold endpoint answers with.
    """
    try:
        ticket = checkout.cart.hold(SqlSalesApi(db.session), note)
    except EmptyCartError:
        notices.append(('error', 'Cart is empty'))
        return None, 409
    except CartBusyError:
        notices.append(('error', 'Another hold or resume is in progress'))
        return None, 409
    except DuplicateHoldError as e:
        # another request already parked these lines
        checkout.cart.clear()
        checkout.nav.reset()
        notices.append(('warning', f'Sale already held as {e.ticket.ticket_no}'))
        return None, 409
    except SalesApiError as e:
        current_app.logger.error(f"Hold failed: {e}")
        notices.append(('error', 'Could not hold sale, please retry'))
        return None, 502

    checkout.nav.reset()
    notices.append(('success', f'Sale held as {ticket.ticket_no}'))
    return ticket, 201


# ── State ─────────────────────────────────────────────────────────

@pos.route('/state')
def state():
    return _respond(load_checkout())


@pos.route('/products')
def products():
    """List the product grid. ?q= narrows the grid used for keyboard navigation."""
    checkout = load_checkout()
    if 'q' in request.args:
        checkout.grid_search = request.args.get('q') or None
    items = checkout.products()
    if 'q' in request.args:
        if checkout.nav.selected_product_index >= 0:
            checkout.nav.selected_product_index = 0 if items else NO_SELECTION
        save_checkout(checkout)
    return jsonify({
        'success':  True,
        'products': [p.to_dict() for p in items],
        'customerType': checkout.nav.customer_type,
    })


@pos.route('/shortcuts')
def shortcuts():
    return jsonify({'success': True, 'shortcuts': POS_SHORTCUTS})


# ── Keyboard ──────────────────────────────────────────────────────

@pos.route('/keys', methods=['POST'])
def keys():
    try:
        event = KeyEvent.from_dict(request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    checkout = load_checkout()
    notices, effects = [], []
    logged_out = []

    def hold_from_keyboard():
        ticket, _ = _hold(checkout, notices)
        if ticket is not None:
            effects.append('held')

    hooks = DispatcherHooks(
        on_pay=lambda: effects.append('open:payment'),
        on_hold=hold_from_keyboard,
        on_resume=lambda: effects.append('open:held-tickets'),
        on_damage=lambda: effects.append('open:damage'),
        on_return=lambda: effects.append('open:return'),
        on_exchange=lambda: effects.append('open:exchange'),
        on_print=lambda: effects.append('print'),
        on_show_help=lambda: effects.append('open:help'),
        on_logout=lambda: logged_out.append(True),
        on_focus_product_search=lambda: effects.append('focus:search'),
        on_focus_cart=lambda: effects.append('focus:cart'),
        on_blur=lambda: effects.append('blur'),
        on_notice=lambda level, message: notices.append((level, message)),
    )

    dispatcher = checkout.dispatcher(hooks, current_app.config.get('POS_PRODUCTS_PER_ROW', 5))
    dispatcher.attach()
    try:
        outcome = dispatcher.handle_key(event)
    finally:
        dispatcher.detach()

    if logged_out:
        clear_checkout()
        current_app.logger.info("Checkout session cleared by logout shortcut")
        return jsonify({'success': True, 'consumed': True, 'action': outcome.action,
                        'effects': ['logout'], 'notices': []})

    save_checkout(checkout)
    return _respond(checkout, notices, consumed=outcome.consumed,
                    action=outcome.action, effects=effects)


@pos.route('/scan', methods=['POST'])
def scan():
    data = request.get_json(silent=True) or {}
    barcode = str(data.get('barcode', '')).strip()
    if not barcode:
        return jsonify({'success': False, 'message': 'Barcode is required'}), 400

    checkout = load_checkout()
    notices = []
    result = checkout.scan(barcode, notices)
    save_checkout(checkout)
    return _respond(checkout, notices, status=SCAN_STATUS[result], result=result)


@pos.route('/modal', methods=['POST'])
def modal():
    """The UI reports dialogs opening and closing so the dispatcher can stand aside."""
    data = request.get_json(silent=True) or {}
    checkout = load_checkout()
    if data.get('open'):
        checkout.nav.open_modal(str(data.get('name') or 'modal'))
    else:
        checkout.nav.close_modal()
    save_checkout(checkout)
    return _respond(checkout)


# ── Cart ──────────────────────────────────────────────────────────

@pos.route('/discount', methods=['POST'])
def discount():
    data = request.get_json(silent=True) or {}
    checkout = load_checkout()
    try:
        checkout.cart.set_discount(data.get('amount', '0'))
    except ValueError as e:
        current_app.logger.warning(f"Rejected order discount: {e}")
        return _respond(checkout, [('error', 'Discount must be a valid amount')], status=400)

    save_checkout(checkout)
    return _respond(checkout)


@pos.route('/clear', methods=['POST'])
def clear():
    checkout = load_checkout()
    checkout.cart.clear()
    checkout.nav.reset()
    save_checkout(checkout)
    return _respond(checkout, [('info', 'Cart cleared')])


@pos.route('/complete', methods=['POST'])
def complete():
    """Payment was taken elsewhere; close out the sale and reset the screen."""
    checkout = load_checkout()
    if checkout.cart.is_empty():
        return _respond(checkout, [('error', 'Cart is empty')], status=409)

    receipt = checkout.complete_sale(request.get_json(silent=True) or {})
    save_checkout(checkout)
    current_app.logger.info(f"Sale completed: total {receipt['total']}")
    return _respond(checkout, [('success', 'Sale completed')], receipt=receipt)


# ── Held tickets ──────────────────────────────────────────────────

@pos.route('/hold', methods=['POST'])
def hold():
    data = request.get_json(silent=True) or {}
    checkout = load_checkout()
    notices = []
    ticket, status = _hold(checkout, notices, (data.get('note') or '').strip() or None)
    save_checkout(checkout)
    if ticket is None:
        return _respond(checkout, notices, status=status)
    return _respond(checkout, notices, status=status,
                    ticket={'id': ticket.id, 'ticketNo': ticket.ticket_no})


@pos.route('/held')
def held():
    tickets = SqlSalesApi(db.session).list_held()
    return jsonify({'success': True, 'tickets': [t.to_dict() for t in tickets]})


@pos.route('/resume/<ticket_id>', methods=['POST'])
def resume(ticket_id):
    """
    Resume a held ticket. A non-empty cart is only replaced when the body
    carries {"confirm": true}; otherwise 409 so the UI can warn first.
    """
    data = request.get_json(silent=True) or {}
    checkout = load_checkout()

    if not checkout.cart.is_empty() and not data.get('confirm'):
        return _respond(checkout, [('warning', 'Cart has unsaved items. Resume anyway?')],
                        status=409, confirmRequired=True)

    try:
        snapshot = checkout.cart.resume(SqlSalesApi(db.session), ticket_id)
    except TicketNotFoundError:
        return _respond(checkout, [('error', 'Ticket not found')], status=404)
    except CartBusyError:
        return _respond(checkout, [('error', 'Another hold or resume is in progress')], status=409)
    except SalesApiError as e:
        current_app.logger.error(f"Resume of ticket {ticket_id} failed: {e}")
        return _respond(checkout, [('error', 'Could not resume sale, please retry')], status=502)

    checkout.nav.reset()
    save_checkout(checkout)
    return _respond(checkout, [('success', f'Resumed {snapshot.ticket_no}')])
