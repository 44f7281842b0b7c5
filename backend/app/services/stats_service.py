from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo

from app.config import settings
from app.models.ticket import Ticket
from app.schemas.dashboard import (
    DashboardSummary,
    SolvedDay,
    TicketCounters,
    TopCustomer,
)

UNKNOWN = "Unknown"


def report_tz() -> tzinfo:
    return ZoneInfo(settings.report_timezone)


def calendar_day(moment: datetime, tz: tzinfo | None = None) -> date:
    """The calendar day ``moment`` falls on in the report timezone."""
    return moment.astimezone(tz or report_tz()).date()


def locale_date(day: date) -> str:
    """Render a day the way an en-US browser does (``M/D/YYYY``)."""
    return f"{day.month}/{day.day}/{day.year}"


def today(tz: tzinfo | None = None) -> date:
    return datetime.now(tz or report_tz()).date()


def compute_counters(
    tickets: Sequence[Ticket],
    on_day: date,
    tz: tzinfo | None = None,
) -> TicketCounters:
    """Total/solved/pending counts plus tickets solved on ``on_day``.

    A ticket counts as solved today when it has replies and its last update
    falls on ``on_day``.
    """
    tz = tz or report_tz()
    solved = [t for t in tickets if t.is_solved]
    return TicketCounters(
        total_tickets=len(tickets),
        solved_tickets=len(solved),
        pending_tickets=len(tickets) - len(solved),
        today_solved=sum(1 for t in solved if calendar_day(t.updated_at, tz) == on_day),
    )


def solved_per_day(tickets: Iterable[Ticket], tz: tzinfo | None = None) -> list[SolvedDay]:
    """Count solved tickets per calendar day of their last update, oldest first."""
    tz = tz or report_tz()
    by_day = Counter(calendar_day(t.updated_at, tz) for t in tickets if t.is_solved)
    return [
        SolvedDay(date=locale_date(day), count=count)
        for day, count in sorted(by_day.items())
    ]


def top_customers(
    tickets: Iterable[Ticket],
    limit: int | None = None,
) -> list[TopCustomer]:
    """Rank ticket owners by ticket count.

    Owners are keyed by email (``"Unknown"`` when missing); the first ticket
    seen for an owner supplies the display name and avatar. Equal counts keep
    first-seen order.
    """
    if limit is None:
        limit = settings.top_customers_limit

    customers: dict[str, dict] = {}
    for ticket in tickets:
        email = ticket.owner_email or UNKNOWN
        if email not in customers:
            owner = ticket.owner
            customers[email] = {
                "name": (owner.name if owner else None) or UNKNOWN,
                "profile_pic": (owner.profile_pic if owner else None) or settings.default_avatar_url,
                "email": email,
                "count": 0,
            }
        customers[email]["count"] += 1

    ranked = sorted(customers.values(), key=lambda c: c["count"], reverse=True)
    return [TopCustomer(**c) for c in ranked[:limit]]


def summarize(
    tickets: Sequence[Ticket],
    on_day: date | None = None,
    tz: tzinfo | None = None,
) -> DashboardSummary:
    tz = tz or report_tz()
    return DashboardSummary(
        counters=compute_counters(tickets, on_day or today(tz), tz),
        solved_data=solved_per_day(tickets, tz),
        top_customers=top_customers(tickets),
    )
