from fastapi import APIRouter, Depends, Response

from app.api.dependencies import (
    get_bearer_token,
    get_session_store,
    get_ticket_api,
    upstream_http_error,
)
from app.config import settings
from app.schemas.common import MessageResponse
from app.schemas.user import LoginRequest, TokenResponse
from app.services.dashboard_service import SessionStore
from app.services.ticket_api import TicketApiClient, TicketApiError

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    response: Response,
    api: TicketApiClient = Depends(get_ticket_api),
):
    """Log in against the ticket API. Stores the token in an HTTP-only cookie."""
    try:
        token = await api.login(data.email, data.password)
    except TicketApiError as exc:
        raise upstream_http_error(exc)

    response.set_cookie(
        key=settings.token_cookie_name,
        value=token,
        httponly=True,
        secure=settings.token_cookie_secure,
        samesite="lax",
    )
    return TokenResponse(access_token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    token: str | None = Depends(get_bearer_token),
    store: SessionStore = Depends(get_session_store),
):
    """Forget the token cookie and drop the caller's dashboard session."""
    store.discard(token)
    response.delete_cookie(key=settings.token_cookie_name)
    return MessageResponse(message="Logged out")
