"""
app/sales/tickets.py
--------------------
Concurrency-safe held-ticket number generation.

Format:  HYYYY-NNNN
Example: H2026-0001, H2026-0002, … H2026-9999, H2026-10000

1. Lock this year's TicketSequence row with SELECT … FOR UPDATE, so
   concurrent holds from different tills serialise here.
2. First hold of the year: INSERT the row with last_seq = 0, then lock it.
3. Increment last_seq and return the formatted number.

The lock is released when the caller's transaction commits or rolls back,
so a failed hold never consumes a number.
"""
from datetime import datetime


def generate_ticket_number(db_session) -> str:
    """
    Generate the next held-ticket number for the current year.

    MUST be called inside an open SQLAlchemy transaction.

    Args:
        db_session: the active SQLAlchemy session (db.session)

    Returns:
        str — e.g. "H2026-0042"
    """
    from app.sales.models import TicketSequence

    year = datetime.now().year

    seq_row = (
        db_session.query(TicketSequence)
        .filter(TicketSequence.year == year)
        .with_for_update()
        .first()
    )

    if seq_row is None:
        seq_row = TicketSequence(year=year, last_seq=0)
        db_session.add(seq_row)
        db_session.flush()

        seq_row = (
            db_session.query(TicketSequence)
            .filter(TicketSequence.year == year)
            .with_for_update()
            .first()
        )

    seq_row.last_seq += 1
    db_session.flush()

    return f"H{year}-{seq_row.last_seq:04d}"
