"""
app/sales/api.py
----------------
SqlSalesApi: the held-ticket collaborator backed by the app database.

Each call is one transaction. Any database error is rolled back and
re-raised as SalesApiError so the cart ledger can leave the cart as it was.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.cart.held import (
    CartSnapshot, DuplicateHoldError, SalesApiError, TicketNotFoundError, TicketRef,
)
from app.sales.models import HeldTicket, HELD, RESUMED
from app.sales.tickets import generate_ticket_number


logger = logging.getLogger(__name__)


class SqlSalesApi:

    def __init__(self, db_session):
        self.db_session = db_session

    def hold(self, snapshot: CartSnapshot) -> TicketRef:
        """
        Park `snapshot` as a new ticket. A snapshot whose hold key is already
        on a ticket raises DuplicateHoldError naming that ticket; the unique
        constraint on hold_key settles two holds racing past the lookup.
        """
        existing = self._held_with_key(snapshot.hold_key)
        if existing is not None:
            raise DuplicateHoldError(existing)

        subtotal = sum((line.line_total for line in snapshot.lines), start=Decimal('0'))
        try:
            ticket_no = generate_ticket_number(self.db_session)
            ticket = HeldTicket(
                ticket_no=ticket_no,
                status=HELD,
                hold_key=snapshot.hold_key,
                item_count=sum(line.quantity for line in snapshot.lines),
                subtotal=subtotal,
                discount=snapshot.discount,
                note=snapshot.note,
            )
            ticket.snapshot_dict = snapshot.to_dict()
            self.db_session.add(ticket)
            self.db_session.commit()
        except IntegrityError as e:
            self.db_session.rollback()
            existing = self._held_with_key(snapshot.hold_key)
            if existing is not None:
                logger.warning('Hold key %s already parked as %s', snapshot.hold_key, existing.ticket_no)
                raise DuplicateHoldError(existing) from e
            logger.error('Hold failed: %s', e)
            raise SalesApiError('Could not save held ticket') from e
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error('Hold failed: %s', e)
            raise SalesApiError('Could not save held ticket') from e

        return TicketRef(id=str(ticket.id), ticket_no=ticket.ticket_no)

    def _held_with_key(self, hold_key) -> Optional[TicketRef]:
        if not hold_key:
            return None
        try:
            ticket = self.db_session.query(HeldTicket).filter_by(hold_key=hold_key).first()
        except SQLAlchemyError as e:
            self.db_session.rollback()
            raise SalesApiError('Could not look up held tickets') from e
        if ticket is None:
            return None
        return TicketRef(id=str(ticket.id), ticket_no=ticket.ticket_no)

    def resume(self, ticket_id: str) -> CartSnapshot:
        """Load a held ticket and mark it resumed so it can't be resumed twice."""
        try:
            pk = int(ticket_id)
        except (TypeError, ValueError):
            raise TicketNotFoundError(f'Ticket {ticket_id!r} not found')

        try:
            ticket = (
                self.db_session.query(HeldTicket)
                .filter(HeldTicket.id == pk)
                .with_for_update()
                .first()
            )
            if ticket is None or ticket.status != HELD:
                self.db_session.rollback()
                raise TicketNotFoundError(f'Ticket {ticket_id!r} not found')

            snapshot = CartSnapshot.from_dict(ticket.snapshot_dict)
            snapshot.ticket_no = ticket.ticket_no
            ticket.status = RESUMED
            ticket.resumed_at = datetime.utcnow()
            self.db_session.commit()
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error('Resume of ticket %s failed: %s', ticket_id, e)
            raise SalesApiError('Could not load held ticket') from e

        return snapshot

    def list_held(self, limit: int = 50):
        return (
            self.db_session.query(HeldTicket)
            .filter(HeldTicket.status == HELD)
            .order_by(HeldTicket.created_at.desc(), HeldTicket.id.desc())
            .limit(limit)
            .all()
        )
