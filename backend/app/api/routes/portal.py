import nh3
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.api.dependencies import (
    TicketFilter,
    get_bearer_token,
    get_dashboard_session,
    get_ticket_api,
    get_ticket_filter,
    upstream_http_error,
)
from app.config import settings
from app.models.ticket import Ticket
from app.models.user import UserProfile
from app.schemas.dashboard import DashboardView
from app.schemas.ticket import CustomerTicket, TicketSubmitted
from app.schemas.user import ProfileResponse, ProfileUpdate
from app.services.dashboard_service import DashboardSession
from app.services.stats_service import UNKNOWN
from app.services.ticket_api import TicketApiClient, TicketApiError

router = APIRouter()


def _customer_ticket(ticket: Ticket) -> CustomerTicket:
    return CustomerTicket(
        id=ticket.id,
        product=ticket.product,
        subject=ticket.subject,
        inquiry=ticket.inquiry,
        image=ticket.image,
        status=ticket.status,
        replies=[r.message for r in ticket.replies],
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


def _profile_response(profile: UserProfile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        name=profile.name or UNKNOWN,
        email=profile.email or UNKNOWN,
        profile_pic=profile.profile_pic or settings.default_avatar_url,
    )


@router.post(
    "/submit-ticket",
    response_model=TicketSubmitted,
    status_code=status.HTTP_201_CREATED,
)
async def submit_ticket(
    product: str = Form(..., min_length=1),
    subject: str = Form(..., min_length=1),
    inquiry: str = Form(..., min_length=1),
    image: UploadFile | None = File(None),
    token: str | None = Depends(get_bearer_token),
    api: TicketApiClient = Depends(get_ticket_api),
):
    """Raise a new support ticket, optionally with a screenshot."""
    inquiry = nh3.clean(inquiry).strip()
    if not inquiry:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inquiry text is required",
        )

    upload = None
    if image is not None and image.filename:
        if not image.content_type or not image.content_type.startswith("image/"):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only image files are allowed.",
            )
        contents = await image.read()
        if len(contents) > settings.max_upload_size_mb * 1024 * 1024:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Image exceeds {settings.max_upload_size_mb} MB.",
            )
        upload = (image.filename, contents, image.content_type)

    try:
        message, ticket = await api.create_ticket(token, product, subject, inquiry, upload)
    except TicketApiError as exc:
        raise upstream_http_error(exc)

    return TicketSubmitted(
        message=message,
        ticket=_customer_ticket(ticket) if ticket is not None else None,
    )


@router.get("/my-tickets", response_model=list[CustomerTicket])
async def my_tickets(
    token: str | None = Depends(get_bearer_token),
    api: TicketApiClient = Depends(get_ticket_api),
):
    """Tickets raised by the logged-in customer, with their derived status."""
    try:
        tickets = await api.list_my_tickets(token)
    except TicketApiError as exc:
        raise upstream_http_error(exc)
    return [_customer_ticket(t) for t in tickets]


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    token: str | None = Depends(get_bearer_token),
    api: TicketApiClient = Depends(get_ticket_api),
):
    """Return the logged-in customer's profile."""
    try:
        profile = await api.get_profile(token)
    except TicketApiError as exc:
        raise upstream_http_error(exc)
    return _profile_response(profile)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    token: str | None = Depends(get_bearer_token),
    api: TicketApiClient = Depends(get_ticket_api),
):
    """Update name, email or avatar of the logged-in customer."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No profile fields to update",
        )
    try:
        profile = await api.update_profile(token, changes)
    except TicketApiError as exc:
        raise upstream_http_error(exc)
    return _profile_response(profile)


@router.get("/admin-tickets", response_model=DashboardView)
async def admin_tickets(
    filters: TicketFilter = Depends(get_ticket_filter),
    session: DashboardSession = Depends(get_dashboard_session),
):
    """The admin ticket list, embedded in the customer portal."""
    await session.ensure_loaded()
    return session.view(filters.search, filters.date_from, filters.date_to)
