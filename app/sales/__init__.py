from app.sales import models  # noqa: F401  registers HeldTicket/TicketSequence
