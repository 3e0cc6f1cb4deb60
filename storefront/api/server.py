"""
FastAPI server for the storefront.

Holds visitor cart state and hands checkout off to the hosted payment page.
Catalog, pricing and order data live in the REST backend.
"""
from __future__ import annotations

import logging
import re
import secrets
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from storefront import __version__
from storefront.core.client_storage import ClientStorage
from storefront.core.config import Settings, load_settings
from storefront.core.logging_config import setup_logging
from storefront.core.sentry_integration import init_sentry, set_visitor_context
from storefront.integrations.payment_service import PaymentService

from . import routes_cart, routes_payment
from .common import new_unsaved_cart_cache
from .rate_limit import limiter

logger = logging.getLogger(__name__)

VISITOR_COOKIE_MAX_AGE = 365 * 24 * 60 * 60
_VISITOR_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


def _is_valid_visitor_id(value: str | None) -> bool:
    return bool(value) and bool(_VISITOR_ID_RE.match(value))


def create_app(
    settings: Settings | None = None,
    client_storage: ClientStorage | None = None,
    payment_service: PaymentService | None = None,
) -> FastAPI:
    """
    Create the storefront application.

    Args:
        settings: Loaded settings (read from the environment when omitted)
        client_storage: Visitor storage backend (Redis or memory per settings)
        payment_service: Backend payment client (built from settings)
    """
    settings = settings or load_settings()
    client_storage = client_storage or ClientStorage(
        settings.redis_url, quota_bytes=settings.storage_quota_bytes
    )
    payment_service = payment_service or PaymentService(
        settings.api_base_url, timeout=settings.backend_timeout
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Storefront starting (backend %s)", settings.api_base_url)
        yield
        logger.info("Storefront shutting down")

    app = FastAPI(
        title="Storefront",
        description="Cart and checkout hand-off for the food-ordering storefront",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )

    app.state.settings = settings
    app.state.client_storage = client_storage
    app.state.payment_service = payment_service
    app.state.checkouts_in_flight = set()
    app.state.unsaved_carts = new_unsaved_cart_cache()

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    allowed_origins = list(settings.allowed_origins)
    if settings.is_dev:
        allowed_origins.extend(["http://localhost:3000", "http://127.0.0.1:3000"])
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "Sentry-Trace", "Baggage"],
        )

    @app.middleware("http")
    async def assign_visitor(request: Request, call_next):
        cookie_name = settings.visitor_cookie_name
        visitor_id = request.cookies.get(cookie_name)
        is_new = not _is_valid_visitor_id(visitor_id)
        if is_new:
            visitor_id = secrets.token_urlsafe(24)
        request.state.visitor_id = visitor_id
        set_visitor_context(visitor_id)

        response = await call_next(request)
        if is_new:
            response.set_cookie(
                cookie_name,
                visitor_id,
                max_age=VISITOR_COOKIE_MAX_AGE,
                httponly=True,
                samesite="lax",
                secure=request.url.scheme == "https",
            )
        return response

    api_router = APIRouter(prefix="/api/v1")
    api_router.include_router(routes_cart.router)
    api_router.include_router(routes_payment.router)
    app.include_router(api_router)
    app.include_router(routes_payment.return_router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "storage": "redis" if client_storage.uses_redis else "memory",
        }

    return app


def main() -> None:
    settings = load_settings()
    setup_logging(settings)
    init_sentry(environment=settings.environment)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
