from dataclasses import dataclass
from datetime import date

from fastapi import Depends, Header, HTTPException, Query, Request, status

from app.config import settings
from app.services.dashboard_service import DashboardSession, SessionStore
from app.services.ticket_api import TicketApiClient, TicketApiError


async def get_bearer_token(
    request: Request,
    authorization: str | None = Header(None),
) -> str | None:
    """Bearer token from the Authorization header, else the token cookie.

    A missing token is not rejected here: the upstream API answers with its
    own error, which is surfaced like any other failed request.
    """
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(settings.token_cookie_name) or None


def get_ticket_api(request: Request) -> TicketApiClient:
    return TicketApiClient(request.app.state.http_client)


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


async def get_dashboard_session(
    token: str | None = Depends(get_bearer_token),
    api: TicketApiClient = Depends(get_ticket_api),
    store: SessionStore = Depends(get_session_store),
) -> DashboardSession:
    return store.get(api, token)


@dataclass
class TicketFilter:
    search: str = ""
    date_from: date | None = None
    date_to: date | None = None


async def get_ticket_filter(
    search: str = Query(""),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
) -> TicketFilter:
    """Search text plus an inclusive date range over ticket creation."""
    if date_from is not None and date_to is not None and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="date_from must not be after date_to",
        )
    return TicketFilter(search=search, date_from=date_from, date_to=date_to)


def upstream_http_error(exc: TicketApiError) -> HTTPException:
    """Map a failed upstream call onto the same status and message."""
    return HTTPException(
        status_code=exc.status_code or status.HTTP_502_BAD_GATEWAY,
        detail=exc.message,
    )
