from fastapi import APIRouter, Depends, Query

from app.api.dependencies import (
    TicketFilter,
    get_dashboard_session,
    get_ticket_filter,
)
from app.schemas.dashboard import DashboardView, GalleryView
from app.schemas.ticket import ReplyCreate, ReplyDraft
from app.services.dashboard_service import DashboardSession

router = APIRouter()


def _render(session: DashboardSession, filters: TicketFilter) -> DashboardView:
    return session.view(filters.search, filters.date_from, filters.date_to)


@router.get("/", response_model=DashboardView)
async def get_dashboard(
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """Dashboard counters, charts and the filtered ticket table.

    Tickets are fetched the first time a session is viewed; afterwards the
    view is rendered from the session until it is refreshed.
    """
    await session.ensure_loaded()
    return _render(session, filters)


@router.post("/refresh", response_model=DashboardView)
async def refresh_dashboard(
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """Refetch all tickets and recompute the dashboard."""
    await session.refresh()
    return _render(session, filters)


@router.put("/tickets/{ticket_id}/draft", response_model=DashboardView)
async def save_reply_draft(
    ticket_id: str,
    data: ReplyDraft,
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """Store the reply text typed for a ticket."""
    await session.ensure_loaded()
    session.set_reply_draft(ticket_id, data.reply)
    return _render(session, filters)


@router.post("/tickets/{ticket_id}/reply", response_model=DashboardView)
async def reply_to_ticket(
    ticket_id: str,
    data: ReplyCreate | None = None,
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """Send the reply for a ticket, then refetch.

    A ``reply`` in the body replaces the stored draft first. Upstream
    failures come back as the view's inline message.
    """
    if data is not None and data.reply is not None:
        session.set_reply_draft(ticket_id, data.reply)
    await session.submit_reply(ticket_id)
    return _render(session, filters)


@router.delete("/tickets/{ticket_id}", response_model=DashboardView)
async def delete_ticket(
    ticket_id: str,
    confirm: bool = Query(False),
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """Delete a ticket. Requires ``confirm=true``."""
    await session.ensure_loaded()
    await session.delete_ticket(ticket_id, confirmed=confirm)
    return _render(session, filters)


@router.get("/gallery", response_model=GalleryView)
async def get_gallery(
    index: int | None = Query(None, ge=0),
    image: str | None = Query(None),
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """Images of the filtered tickets, opened at ``index`` or ``image`` if given."""
    await session.ensure_loaded()
    return session.gallery(
        filters.search, filters.date_from, filters.date_to, index=index, image=image
    )
