import json
from datetime import datetime
from decimal import Decimal

from app import db


HELD    = 'held'
RESUMED = 'resumed'


class TicketSequence(db.Model):
    """
    One row per calendar year holding the last-used held-ticket number.

    Numbering by COUNT(held_tickets) races under concurrent holds (two
    tills both read 15 and both write H2026-0016). The row is locked with
    SELECT ... FOR UPDATE instead, see app/sales/tickets.py.
    """
    __tablename__ = 'ticket_sequences'

    year     = db.Column(db.Integer, primary_key=True)
    last_seq = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<TicketSequence year={self.year} last_seq={self.last_seq}>"


class HeldTicket(db.Model):
    """
    A parked sale. `snapshot` is the JSON-encoded CartSnapshot
    (lines + order discount + note), money stored as strings.
    `hold_key` is unique, so one cart can be parked only once.
    """
    __tablename__ = 'held_tickets'

    id         = db.Column(db.Integer, primary_key=True)
    ticket_no  = db.Column(db.String(20), unique=True, nullable=False, index=True)
    status     = db.Column(db.String(20), nullable=False, default=HELD, index=True)
    hold_key   = db.Column(db.String(32), unique=True, nullable=True)
    snapshot   = db.Column(db.Text, nullable=False, default='{}')
    item_count = db.Column(db.Integer, nullable=False, default=0)
    subtotal   = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount   = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    note       = db.Column(db.String(300), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    resumed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint('discount >= 0', name='check_held_discount_non_negative'),
    )

    # ── Helpers ───────────────────────────────────────────────────

    @property
    def snapshot_dict(self) -> dict:
        try:
            return json.loads(self.snapshot or '{}')
        except (ValueError, TypeError):
            return {}

    @snapshot_dict.setter
    def snapshot_dict(self, value: dict):
        self.snapshot = json.dumps(value)

    @property
    def total(self) -> Decimal:
        return max(Decimal('0'), Decimal(str(self.subtotal)) - Decimal(str(self.discount)))

    def to_dict(self) -> dict:
        return {
            'id':        str(self.id),
            'ticketNo':  self.ticket_no,
            'status':    self.status,
            'itemCount': self.item_count,
            'subtotal':  str(self.subtotal),
            'discount':  str(self.discount),
            'total':     str(self.total),
            'note':      self.note,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<HeldTicket {self.ticket_no} {self.status}>"
