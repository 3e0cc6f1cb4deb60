"""Request-scoped dependencies shared by the storefront routes."""
from __future__ import annotations

import logging
from typing import AsyncIterator

from cachetools import TTLCache
from fastapi import Depends, Request

from storefront.core.client_storage import VisitorStorage
from storefront.core.config import Settings
from storefront.integrations.payment_service import PaymentService
from storefront.services.cart_store import CartStore

logger = logging.getLogger(__name__)

UNSAVED_CART_CACHE_SIZE = 10000
UNSAVED_CART_TTL_SECONDS = 24 * 60 * 60


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_visitor_storage(request: Request) -> VisitorStorage:
    return request.app.state.client_storage.for_visitor(request.state.visitor_id)


def new_unsaved_cart_cache() -> TTLCache[str, CartStore]:
    return TTLCache(maxsize=UNSAVED_CART_CACHE_SIZE, ttl=UNSAVED_CART_TTL_SECONDS)


async def get_cart_store(
    request: Request, storage: VisitorStorage = Depends(get_visitor_storage)
) -> AsyncIterator[CartStore]:
    """Loaded cart for the visitor.

    A cart whose last save failed stays in ``app.state.unsaved_carts`` and is
    served (and written again) on the visitor's next request instead of the
    stale persisted copy.
    """
    unsaved: TTLCache[str, CartStore] = request.app.state.unsaved_carts
    store = unsaved.pop(storage.visitor_id, None)
    if store is None:
        store = CartStore(storage)
        store.load()
    elif not store.flush():
        logger.warning("Cart for visitor %s is still not saved", storage.visitor_id)

    yield store

    if store.is_dirty:
        unsaved[storage.visitor_id] = store


def resolve_origin(request: Request, settings: Settings) -> str:
    """Public origin used for the payment return URLs."""
    if settings.public_base_url:
        return settings.public_base_url
    return f"{request.url.scheme}://{request.url.netloc}"


def backend_cookies(request: Request, settings: Settings) -> dict[str, str]:
    """Visitor cookies forwarded to the backend, minus our own visitor cookie."""
    return {
        name: value
        for name, value in request.cookies.items()
        if name != settings.visitor_cookie_name
    }


def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "").lower()
