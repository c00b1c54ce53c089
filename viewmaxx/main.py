"""ViewmaXX API — FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from viewmaxx.admin.routes import router as admin_router
from viewmaxx.auth.routes import router as auth_router
from viewmaxx.auth.store import TokenStore
from viewmaxx.config.cors import SecurityHeadersMiddleware, configure_cors
from viewmaxx.config.logging import configure_logging
from viewmaxx.config.settings import Settings, get_settings
from viewmaxx.middleware.error_handler import register_error_handlers
from viewmaxx.middleware.rate_limiter import RateLimiterMiddleware
from viewmaxx.middleware.request_id import RequestIDMiddleware
from viewmaxx.realtime.routes import router as realtime_router
from viewmaxx.services import build_services
from viewmaxx.users.repository import UserRepository
from viewmaxx.users.routes import router as users_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    users: UserRepository | None = None,
    token_store: TokenStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    services = build_services(settings, users=users, token_store=token_store)
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("ViewmaXX backend starting (environment=%s)", settings.ENVIRONMENT)
        yield
        logger.info("Shutting down gracefully...")
        await services.token_store.close()

    app = FastAPI(
        title="ViewmaXX API",
        description=(
            "Authentication and realtime core of the ViewmaXX video platform.\n\n"
            "## Authentication\n"
            "Send `Authorization: Bearer <accessToken>`. Access tokens are short-lived; "
            "exchange the refresh token at `/api/auth/refresh` for a new pair.\n\n"
            "## Realtime\n"
            "Connect to `/ws?token=<accessToken>` and exchange `{event, data}` frames."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Health check endpoints"},
            {"name": "Auth", "description": "Authentication: register, login, token refresh, logout"},
            {"name": "Users", "description": "User profiles"},
            {"name": "Admin", "description": "Account moderation"},
            {"name": "Realtime", "description": "WebSocket gateway"},
        ],
    )
    app.state.services = services

    # --- Middleware (last added is outermost) ---
    app.add_middleware(RateLimiterMiddleware, settings=settings)
    configure_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # --- Error handlers ---
    register_error_handlers(app, settings)

    # --- Routes ---
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(admin_router)
    app.include_router(realtime_router)

    @app.get("/health", tags=["Health"], summary="Health check", description="Returns OK if the service is running.")
    async def health_check():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started, 3),
            "environment": settings.ENVIRONMENT,
            "connections": services.hub.connection_count,
        }

    return app
