from datetime import datetime

from pydantic import BaseModel, Field

from app.models.base import TicketStatus


class ReplyCreate(BaseModel):
    reply: str | None = None


class ReplyDraft(BaseModel):
    reply: str = ""


class TicketRow(BaseModel):
    """One row of the dashboard ticket table."""

    id: str
    owner_name: str
    owner_email: str
    avatar_url: str
    product: str
    subject: str
    inquiry: str
    image: str | None
    status: TicketStatus
    reply_count: int
    reply_draft: str = ""
    sending: bool = False
    can_send: bool = False
    created_at: datetime
    updated_at: datetime


class CustomerTicket(BaseModel):
    id: str
    product: str
    subject: str
    inquiry: str
    image: str | None
    status: TicketStatus
    replies: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class TicketSubmitted(BaseModel):
    message: str
    ticket: CustomerTicket | None = None
