from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_ticket_api
from app.api.middleware import WINDOW_SECONDS, RateLimitMiddleware
from app.config import settings
from app.main import create_app
from app.services import auth_service
from app.services.dashboard_service import SessionStore
from tests.conftest import auth_header
from tests.fake_upstream import VALID_TOKEN


pytestmark = pytest.mark.asyncio


def _jwt(**claims) -> str:
    return jwt.encode(claims, "upstream-signing-secret-used-only-in-tests", algorithm="HS256")


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


async def test_token_subject_reads_unverified_claims():
    assert auth_service.token_subject(_jwt(id="64f0c0ffee")) == "64f0c0ffee"
    assert auth_service.token_subject(_jwt(sub="u-7")) == "u-7"
    assert auth_service.token_subject("not-a-jwt") is None


async def test_token_expiry():
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    future = datetime.now(timezone.utc) + timedelta(minutes=5)

    assert auth_service.is_token_expired(_jwt(sub="u", exp=int(past.timestamp())))
    assert not auth_service.is_token_expired(_jwt(sub="u", exp=int(future.timestamp())))
    assert not auth_service.is_token_expired("opaque-token")


async def test_expired_token_session_is_evicted(api):
    store = SessionStore()
    expired = _jwt(sub="u", exp=int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp()))
    store.get(api, expired)

    store.get(api, "other-token")

    assert len(store) == 1


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


async def test_login_valid_credentials(client: AsyncClient):
    """POST /api/v1/portal/login returns the token and sets it as an HTTP-only cookie."""
    response = await client.post(
        "/api/v1/portal/login",
        json={"email": "alice@example.com", "password": "secret"},
    )
    assert response.status_code == 200

    data = response.json()
    assert data["access_token"] == VALID_TOKEN
    assert data["token_type"] == "bearer"
    assert response.cookies.get(settings.token_cookie_name) == VALID_TOKEN


async def test_login_invalid_password(client: AsyncClient):
    response = await client.post(
        "/api/v1/portal/login",
        json={"email": "alice@example.com", "password": "wrong"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid credentials"


async def test_token_cookie_authenticates_requests(client: AsyncClient):
    """The token cookie stands in for the Authorization header."""
    login_response = await client.post(
        "/api/v1/portal/login",
        json={"email": "alice@example.com", "password": "secret"},
    )
    # The cookie is set with secure=True, so forward it explicitly
    # since the test client uses http:// not https://.
    token = login_response.cookies.get(settings.token_cookie_name)

    response = await client.get(
        "/api/v1/portal/my-tickets",
        cookies={settings.token_cookie_name: token},
    )
    assert response.status_code == 200


async def test_logout(client: AsyncClient):
    await client.get("/api/v1/admin/", headers=auth_header())

    response = await client.post("/api/v1/portal/logout", headers=auth_header())

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out"}


async def test_health(client: AsyncClient):
    response = await client.get("/api/v1/health")
    assert response.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


async def test_rate_limit_per_token(api, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_per_minute", 2)
    app = create_app()
    app.dependency_overrides[get_ticket_api] = lambda: api

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for _ in range(2):
            assert (await ac.get("/api/v1/health", headers=auth_header())).status_code == 200
        limited = await ac.get("/api/v1/health", headers=auth_header())
        assert limited.status_code == 429

        # A different token has its own window
        other = await ac.get("/api/v1/health", headers=auth_header("someone-else"))
        assert other.status_code == 200


async def test_rate_limit_forgets_idle_identities():
    limiter = RateLimitMiddleware(app=None, limit=2, sweep_threshold=10)
    now = 1_000_000.0

    for i in range(10):
        assert limiter.hit(f"token:junk-{i}", now)
    assert len(limiter._requests) == 10

    # Past the window, the next hit sweeps every idle identity
    later = now + WINDOW_SECONDS + 1
    assert limiter.hit("token:fresh", later)
    assert list(limiter._requests) == ["token:fresh"]


async def test_rate_limit_window_resets_after_expiry():
    limiter = RateLimitMiddleware(app=None, limit=1)

    assert limiter.hit("ip:127.0.0.1", 0.0)
    assert not limiter.hit("ip:127.0.0.1", 1.0)
    assert limiter.hit("ip:127.0.0.1", WINDOW_SECONDS + 1.0)
    assert limiter._requests["ip:127.0.0.1"] == [WINDOW_SECONDS + 1.0]
