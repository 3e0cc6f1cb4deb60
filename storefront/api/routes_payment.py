from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict

from storefront.application.checkout import CheckoutOrchestrator
from storefront.application.payment_return import (
    abandon_payment,
    confirm_payment_return,
    handle_payment_cancel,
    read_auth_token,
)
from storefront.core.client_storage import VisitorStorage
from storefront.core.config import Settings
from storefront.core.exceptions import PaymentException
from storefront.domain.payment import (
    format_currency,
    format_payment_error,
    get_payment_status_display,
    validate_order_data,
)
from storefront.integrations.payment_service import PaymentService
from storefront.services.cart_store import CartStore

from .common import (
    backend_cookies,
    get_cart_store,
    get_payment_service,
    get_settings,
    get_visitor_storage,
    resolve_origin,
    wants_json,
)
from .rate_limit import CHECKOUT_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payment"])
return_router = APIRouter(prefix="/payment", tags=["payment-return"])


def _checkout_error(error: str | None, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": error, "message": format_payment_error(error)},
        status_code=status_code,
    )


class CheckoutBody(BaseModel):
    """Order produced by the order-creation step; only ``order_id`` is used."""

    model_config = ConfigDict(extra="allow")

    order_id: Any = None


@router.post("/checkout")
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def create_checkout(
    request: Request,
    body: CheckoutBody,
    storage: VisitorStorage = Depends(get_visitor_storage),
    payment_service: PaymentService = Depends(get_payment_service),
    settings: Settings = Depends(get_settings),
):
    """POST /api/v1/payment/checkout - Open a hosted checkout and redirect to it."""
    in_flight: set[str] = request.app.state.checkouts_in_flight
    if storage.visitor_id in in_flight:
        return _checkout_error("Payment is already being processed", 409)

    order_data = body.model_dump()
    redirects: list[str] = []
    orchestrator = CheckoutOrchestrator(
        storage,
        payment_service,
        navigate=redirects.append,
        origin=resolve_origin(request, settings),
        cookies=backend_cookies(request, settings),
    )

    in_flight.add(storage.visitor_id)
    try:
        result = await orchestrator.process_payment(order_data)
    finally:
        in_flight.discard(storage.visitor_id)

    if not result.success:
        status_code = 400 if validate_order_data(order_data) else 502
        return _checkout_error(result.error, status_code)

    redirect_url = redirects[-1]
    if wants_json(request):
        return JSONResponse({**result.to_dict(), "redirect_url": redirect_url})
    return RedirectResponse(url=redirect_url, status_code=303)


@router.get("/status/{payment_id}")
async def payment_status(
    request: Request,
    payment_id: str,
    storage: VisitorStorage = Depends(get_visitor_storage),
    payment_service: PaymentService = Depends(get_payment_service),
    settings: Settings = Depends(get_settings),
):
    """GET /api/v1/payment/status/{payment_id} - Backend payment status."""
    try:
        data = await payment_service.get_payment_status(
            payment_id,
            auth_token=read_auth_token(storage),
            cookies=backend_cookies(request, settings),
        )
    except PaymentException as exc:
        return JSONResponse(
            {"error": exc.message, "message": format_payment_error(exc)}, status_code=502
        )

    display = get_payment_status_display(data.get("status"))
    if data.get("amount") is not None:
        display["amount"] = format_currency(data["amount"], data.get("currency") or "USD")
    return {**data, "display": display}


@router.post("/cancel")
async def abandon_pending_payment(
    request: Request,
    storage: VisitorStorage = Depends(get_visitor_storage),
    payment_service: PaymentService = Depends(get_payment_service),
    settings: Settings = Depends(get_settings),
):
    """POST /api/v1/payment/cancel - Cancel the pending payment; the cart is kept."""
    result = await abandon_payment(
        storage=storage,
        payment_service=payment_service,
        cookies=backend_cookies(request, settings),
    )
    if result.ok:
        return result.to_dict()
    status_code = 404 if result.error_key == "missing_payment" else 502
    return JSONResponse(result.to_dict(), status_code=status_code)


@return_router.get("/success")
async def payment_success(
    request: Request,
    session_id: str | None = None,
    success: str | None = None,
    storage: VisitorStorage = Depends(get_visitor_storage),
    cart_store: CartStore = Depends(get_cart_store),
    payment_service: PaymentService = Depends(get_payment_service),
    settings: Settings = Depends(get_settings),
):
    result = await confirm_payment_return(
        storage=storage,
        cart_store=cart_store,
        payment_service=payment_service,
        session_id=session_id,
        success_flag=success,
        verify=settings.verify_payments,
        cookies=backend_cookies(request, settings),
    )
    return result.to_dict()


@return_router.get("/cancel")
async def payment_cancel(storage: VisitorStorage = Depends(get_visitor_storage)):
    return handle_payment_cancel(storage).to_dict()
