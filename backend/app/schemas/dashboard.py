from datetime import date

from pydantic import BaseModel, Field

from app.schemas.ticket import TicketRow


class TicketCounters(BaseModel):
    total_tickets: int
    solved_tickets: int
    pending_tickets: int
    today_solved: int


class SolvedDay(BaseModel):
    date: str
    count: int


class TopCustomer(BaseModel):
    name: str
    email: str
    profile_pic: str
    count: int


class DashboardSummary(BaseModel):
    counters: TicketCounters
    solved_data: list[SolvedDay]
    top_customers: list[TopCustomer]


class DashboardView(BaseModel):
    summary: DashboardSummary
    tickets: list[TicketRow]
    showing: int
    total_filtered: int
    gallery: list[str] = Field(default_factory=list)
    search: str = ""
    date_from: date | None = None
    date_to: date | None = None
    message: str = ""
    error: bool = False
    loaded: bool = False


class GalleryView(BaseModel):
    images: list[str]
    index: int | None = None
    main_src: str | None = None
    next_src: str | None = None
    prev_src: str | None = None
    title: str | None = None
