import contextlib
import logging

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.middleware import RateLimitMiddleware
from app.api.routes import auth, dashboard, portal
from app.config import settings
from app.services.dashboard_service import SessionStore


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    async with contextlib.AsyncExitStack() as stack:
        if not settings.token_cookie_secure:
            logging.warning(
                "TOKEN_COOKIE_SECURE is disabled. "
                "The auth token cookie will be sent over plain HTTP."
            )
        app.state.http_client = await stack.enter_async_context(
            httpx.AsyncClient(
                base_url=settings.ticket_api_url,
                timeout=settings.ticket_api_timeout_seconds,
            )
        )
        logging.info("Using ticket API at %s", settings.ticket_api_url)
        yield


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Ticketdesk", version="0.1.0", lifespan=lifespan)
    app.state.sessions = SessionStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RateLimitMiddleware)

    @app.get("/api/v1/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(dashboard.router, prefix="/api/v1/admin", tags=["admin"])
    app.include_router(auth.router, prefix="/api/v1/portal", tags=["portal"])
    app.include_router(portal.router, prefix="/api/v1/portal", tags=["portal"])

    return app


app = create_app()
