"""Use cases: shopper returns from the hosted payment page."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from storefront.core.client_storage import VisitorStorage
from storefront.core.exceptions import PaymentException, StorageException
from storefront.domain.payment import (
    AUTH_TOKEN_KEY,
    PENDING_PAYMENT_KEY,
    PendingPaymentRecord,
    format_payment_error,
    format_payment_id,
    format_session_id,
    is_payment_expired,
)
from storefront.integrations.payment_service import PaymentService
from storefront.services.cart_store import CartStore

logger = logging.getLogger(__name__)


@dataclass
class PaymentReturnResult:
    ok: bool
    error_key: str | None = None
    pending: PendingPaymentRecord | None = None
    data: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "error_key": self.error_key,
            "error": self.error,
            "message": format_payment_error(self.error) if self.error else None,
            "pending_payment": self.pending.to_dict() if self.pending else None,
            "display": _pending_display(self.pending) if self.pending else None,
            "data": self.data,
        }


def _pending_display(pending: PendingPaymentRecord) -> dict[str, Any]:
    return {
        "payment_id": format_payment_id(pending.payment_id),
        "session_id": format_session_id(pending.session_id),
        "expired": is_payment_expired(pending.expires_at),
    }


def read_auth_token(storage: VisitorStorage) -> str | None:
    """Bearer token for backend calls; unreadable storage means cookies only."""
    try:
        return storage.get_item(AUTH_TOKEN_KEY) or None
    except StorageException as exc:
        logger.warning("Auth token unreadable, using session cookies only: %s", exc)
        return None


def load_pending_payment(storage: VisitorStorage) -> PendingPaymentRecord | None:
    try:
        raw = storage.get_item(PENDING_PAYMENT_KEY)
    except StorageException as exc:
        logger.error("Failed to read pending payment: %s", exc)
        return None
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning("Pending payment record for visitor %s is corrupted", storage.visitor_id)
        return None
    if not isinstance(payload, Mapping):
        return None
    return PendingPaymentRecord.from_dict(payload)


def clear_pending_payment(storage: VisitorStorage) -> None:
    try:
        storage.remove_item(PENDING_PAYMENT_KEY)
    except StorageException as exc:
        logger.error("Failed to clear pending payment: %s", exc)


async def confirm_payment_return(
    *,
    storage: VisitorStorage,
    cart_store: CartStore,
    payment_service: PaymentService,
    session_id: str | None = None,
    success_flag: str | None = None,
    verify: bool = False,
    cookies: Mapping[str, str] | None = None,
) -> PaymentReturnResult:
    pending = load_pending_payment(storage)

    if pending is None:
        if session_id and (success_flag or "").lower() == "true":
            logger.info("Payment success confirmed from return parameters (session %s)", session_id)
            cart_store.clear_cart()
            return PaymentReturnResult(True, data={"session_id": session_id})
        return PaymentReturnResult(False, "missing_payment", error="No payment information found")

    if not pending.is_complete:
        return PaymentReturnResult(
            False,
            "missing_verification_data",
            pending=pending,
            error="Missing payment verification data",
        )

    data = None
    if verify:
        auth_token = read_auth_token(storage)
        try:
            data = await payment_service.verify_payment(
                pending.session_id, pending.order_id, auth_token=auth_token, cookies=cookies
            )
        except PaymentException as exc:
            logger.warning("Payment verification failed for order %s: %s", pending.order_id, exc.message)
            return PaymentReturnResult(False, "verification_failed", pending=pending, error=exc.message)

    logger.info("Payment for order %s completed; clearing cart", pending.order_id)
    cart_store.clear_cart()
    clear_pending_payment(storage)
    return PaymentReturnResult(True, pending=pending, data=data)


def handle_payment_cancel(storage: VisitorStorage) -> PaymentReturnResult:
    """Shopper left the hosted page; cart and pending record stay for a retry."""
    pending = load_pending_payment(storage)
    if pending is not None:
        logger.info("Payment cancelled for order %s", pending.order_id)
    return PaymentReturnResult(False, "cancelled", pending=pending)


async def abandon_payment(
    *,
    storage: VisitorStorage,
    payment_service: PaymentService,
    cookies: Mapping[str, str] | None = None,
) -> PaymentReturnResult:
    """Cancel the pending payment at the backend and forget it; the cart stays."""
    pending = load_pending_payment(storage)
    if pending is None or not pending.payment_id:
        return PaymentReturnResult(False, "missing_payment", pending=pending, error="No payment information found")

    auth_token = read_auth_token(storage)
    try:
        data = await payment_service.cancel_payment(
            pending.payment_id, auth_token=auth_token, cookies=cookies
        )
    except PaymentException as exc:
        logger.warning("Cancelling payment %s failed: %s", pending.payment_id, exc.message)
        return PaymentReturnResult(False, "cancel_failed", pending=pending, error=exc.message)

    logger.info("Payment %s for order %s abandoned", pending.payment_id, pending.order_id)
    clear_pending_payment(storage)
    return PaymentReturnResult(True, pending=pending, data=data)
