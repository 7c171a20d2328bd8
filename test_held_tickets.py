"""
test_held_tickets.py — Tests for the database-backed held-ticket API.
Run: pytest test_held_tickets.py -v
"""
import pytest
from decimal import Decimal
from datetime import datetime

from app import create_app, db
from app.cart.held import CartSnapshot, DuplicateHoldError, TicketNotFoundError
from app.cart.items import LineItem
from app.cart.ledger import CartLedger
from app.sales.api import SqlSalesApi
from app.sales.models import HeldTicket, TicketSequence, RESUMED
from app.sales.tickets import generate_ticket_number


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture(scope='function')
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def api(app):
    return SqlSalesApi(db.session)


def line(pid='1', price='50.00', qty=2):
    return LineItem(id=pid, name=f'Product {pid}', unit_price_final=Decimal(price),
                    unit_price_base=Decimal(price), quantity=qty)


# ── 1. Ticket numbering ───────────────────────────────────────────

def test_ticket_numbers_are_sequential(app):
    year = datetime.now().year
    first = generate_ticket_number(db.session)
    second = generate_ticket_number(db.session)
    db.session.commit()
    assert first == f'H{year}-0001'
    assert second == f'H{year}-0002'
    assert db.session.get(TicketSequence, year).last_seq == 2


def test_rolled_back_hold_does_not_consume_number(app):
    year = datetime.now().year
    generate_ticket_number(db.session)
    db.session.rollback()
    assert generate_ticket_number(db.session) == f'H{year}-0001'


# ── 2. hold / resume ──────────────────────────────────────────────

def test_hold_persists_snapshot(api):
    ref = api.hold(CartSnapshot(lines=[line('1'), line('2', '10.00', 1)],
                                discount=Decimal('5'), note='back in 5'))
    ticket = db.session.get(HeldTicket, int(ref.id))
    assert ticket.ticket_no == ref.ticket_no
    assert ticket.item_count == 3
    assert Decimal(str(ticket.subtotal)) == Decimal('110.00')
    assert ticket.total == Decimal('105.00')
    assert ticket.note == 'back in 5'


def test_resume_returns_snapshot_and_marks_ticket(api):
    ref = api.hold(CartSnapshot(lines=[line('7', '12.50', 4)]))
    snapshot = api.resume(ref.id)
    assert snapshot.ticket_no == ref.ticket_no
    assert snapshot.lines[0].unit_price_final == Decimal('12.50')
    assert snapshot.lines[0].quantity == 4
    assert db.session.get(HeldTicket, int(ref.id)).status == RESUMED


def test_resume_twice_not_found(api):
    ref = api.hold(CartSnapshot(lines=[line()]))
    api.resume(ref.id)
    with pytest.raises(TicketNotFoundError):
        api.resume(ref.id)


@pytest.mark.parametrize('bad_id', ['999', 'abc', ''])
def test_resume_unknown_ticket(api, bad_id):
    with pytest.raises(TicketNotFoundError):
        api.resume(bad_id)


def test_list_held_excludes_resumed(api):
    keep = api.hold(CartSnapshot(lines=[line('1')]))
    gone = api.hold(CartSnapshot(lines=[line('2')]))
    api.resume(gone.id)
    assert [t.ticket_no for t in api.list_held()] == [keep.ticket_no]


# ── 3. Ledger against the real API ────────────────────────────────

def test_ledger_hold_then_resume_round_trip(api):
    cart = CartLedger()
    cart.add_item(line('1', '19.99', 1), qty=3)
    cart.set_discount('2.00')
    before = cart.to_dict()['lines']

    ticket = cart.hold(api)
    assert cart.is_empty()
    assert cart.held_ticket_no == ticket.ticket_no

    cart.resume(api, ticket.id)
    assert cart.to_dict()['lines'] == before
    assert cart.discount == Decimal('2.00')
    assert cart.held_ticket_id == ticket.id


def test_same_hold_key_parks_once(api):
    first = api.hold(CartSnapshot(lines=[line('1')], hold_key='k' * 32))
    with pytest.raises(DuplicateHoldError) as excinfo:
        api.hold(CartSnapshot(lines=[line('1')], hold_key='k' * 32))
    assert excinfo.value.ticket == first
    assert HeldTicket.query.count() == 1


def test_hold_key_race_settled_by_unique_constraint(api, monkeypatch):
    """A duplicate that slips past the lookup still fails on commit."""
    first = api.hold(CartSnapshot(lines=[line('1')], hold_key='race'))
    real_lookup = SqlSalesApi._held_with_key
    calls = []

    def stale_first_lookup(self, key):
        calls.append(key)
        return None if len(calls) == 1 else real_lookup(self, key)
    monkeypatch.setattr(SqlSalesApi, '_held_with_key', stale_first_lookup)

    with pytest.raises(DuplicateHoldError) as excinfo:
        api.hold(CartSnapshot(lines=[line('2')], hold_key='race'))
    assert excinfo.value.ticket == first
    assert HeldTicket.query.count() == 1
