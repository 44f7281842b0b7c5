from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_ticket_api
from app.main import create_app
from app.models.ticket import Ticket
from app.services.dashboard_service import DashboardSession
from app.services.ticket_api import TicketApiClient
from tests.fake_upstream import VALID_TOKEN, FakeUpstream


def make_ticket(
    ticket_id: str,
    name: str | None = "Alice Moss",
    email: str | None = "alice@example.com",
    replies: list | None = None,
    created_at: str = "2024-01-01T09:00:00.000Z",
    updated_at: str | None = None,
    image: str | None = None,
    owner_id: str = "u-1",
    profile_pic: str | None = None,
    product: str = "Router X2",
    subject: str = "Cannot connect",
    inquiry: str = "The router drops the connection every hour.",
) -> dict:
    """Build a ticket the way the upstream API serialises it."""
    owner = {"_id": owner_id}
    if name is not None:
        owner["name"] = name
    if email is not None:
        owner["email"] = email
    if profile_pic is not None:
        owner["profilePic"] = profile_pic
    return {
        "_id": ticket_id,
        "userId": owner,
        "product": product,
        "subject": subject,
        "inquiry": inquiry,
        "image": image,
        "replies": list(replies or []),
        "createdAt": created_at,
        "updatedAt": updated_at or created_at,
    }


def ticket(ticket_id: str, **kwargs) -> Ticket:
    """Parsed ``Ticket`` for tests that work on the domain model directly."""
    return Ticket.model_validate(make_ticket(ticket_id, **kwargs))


def sample_tickets() -> list[dict]:
    return [
        make_ticket(
            "t-1",
            replies=[{"message": "Please restart it."}],
            created_at="2024-01-01T09:00:00.000Z",
            updated_at="2024-01-01T12:00:00.000Z",
            image="https://cdn.example.com/a.png",
        ),
        make_ticket(
            "t-2",
            name="Bob Stone",
            email="bob@example.com",
            owner_id="u-2",
            replies=["Firmware updated."],
            created_at="2024-01-02T08:00:00.000Z",
            updated_at="2024-01-02T10:30:00.000Z",
        ),
        make_ticket(
            "t-3",
            created_at="2024-01-03T15:00:00.000Z",
            image="https://cdn.example.com/b.png",
        ),
    ]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(sample_tickets())


@pytest.fixture
async def api(upstream: FakeUpstream) -> AsyncGenerator[TicketApiClient, None]:
    """Upstream client wired to the in-process fake API."""
    async with AsyncClient(
        transport=ASGITransport(app=upstream.app), base_url="http://upstream"
    ) as http:
        yield TicketApiClient(http)


@pytest.fixture
def session(api: TicketApiClient) -> DashboardSession:
    return DashboardSession(api, VALID_TOKEN)


@pytest.fixture
async def client(api: TicketApiClient) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app with the fake upstream."""
    app = create_app()
    app.dependency_overrides[get_ticket_api] = lambda: api

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


def auth_header(token: str = VALID_TOKEN) -> dict:
    """Helper to create Authorization header."""
    return {"Authorization": f"Bearer {token}"}
