from app.models.base import TicketStatus, UpstreamModel
from app.models.ticket import Reply, Ticket
from app.models.user import TicketOwner, UserProfile

__all__ = [
    "Reply",
    "Ticket",
    "TicketOwner",
    "TicketStatus",
    "UpstreamModel",
    "UserProfile",
]
