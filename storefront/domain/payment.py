"""Checkout domain types and payment display helpers."""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

PAYMENT_METHOD = "stripe"
PENDING_PAYMENT_KEY = "pendingPayment"
AUTH_TOKEN_KEY = "auth_token"

SUCCESS_PATH = "/payment/success"
CANCEL_PATH = "/payment/cancel"

DEFAULT_PAYMENT_ERROR = "Failed to process payment"
MISSING_CHECKOUT_URL_ERROR = "Payment session created but no checkout URL received"
REDIRECT_FAILED_ERROR = "Failed to redirect to payment page"


class CheckoutState(Enum):
    """Lifecycle of a single checkout attempt."""

    IDLE = "idle"
    PROCESSING = "processing"
    REDIRECTING = "redirecting"
    FAILED = "failed"


@dataclass
class PendingPaymentRecord:
    """Reference to a hosted payment session awaiting the shopper's return."""

    payment_id: Any
    session_id: Any
    order_id: Any
    created_at: int
    expires_at: Any = None

    @classmethod
    def from_session(cls, order_id: Any, data: Mapping[str, Any]) -> PendingPaymentRecord:
        return cls(
            payment_id=data.get("payment_id"),
            session_id=data.get("session_id"),
            order_id=order_id,
            created_at=int(time.time()),
            expires_at=data.get("expires_at"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PendingPaymentRecord:
        created_at = data.get("created_at", data.get("timestamp", 0))
        try:
            created_at = int(created_at or 0)
        except (TypeError, ValueError):
            created_at = 0
        return cls(
            payment_id=data.get("payment_id"),
            session_id=data.get("session_id"),
            order_id=data.get("order_id"),
            created_at=created_at,
            expires_at=data.get("expires_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def is_complete(self) -> bool:
        return bool(self.session_id) and bool(self.order_id)


@dataclass
class CheckoutResult:
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


# ---------- helpers ----------


def validate_order_data(order_data: Any) -> list[str]:
    """Return validation errors for checkout input (empty list when valid)."""
    if not order_data or not isinstance(order_data, Mapping):
        return ["Order data is required"]

    errors = []
    if not order_data.get("order_id"):
        errors.append("Order ID is required")

    amount = order_data.get("amount")
    if amount is not None:
        try:
            if Decimal(str(amount)) <= 0:
                errors.append("Invalid order amount")
        except (InvalidOperation, ValueError):
            errors.append("Invalid order amount")
    return errors


def is_payment_expired(expires_at: Any, now: float | None = None) -> bool:
    """Check a backend ``expires_at`` (Unix seconds). Missing or bad values count as expired."""
    if not expires_at:
        return True
    try:
        deadline = float(expires_at)
    except (TypeError, ValueError):
        return True
    current = time.time() if now is None else now
    return current > deadline


_ERROR_MESSAGES = {
    "network error": "Network connection failed. Please check your internet connection.",
    "timeout": "Request timed out. Please try again.",
    "unauthorized": "Authentication failed. Please log in again.",
    "forbidden": "You do not have permission to perform this action.",
    "not found": "The requested resource was not found.",
    "internal server error": "Server error occurred. Please try again later.",
    "bad gateway": "Service temporarily unavailable. Please try again later.",
    "service unavailable": "Payment service is temporarily unavailable.",
}


def format_payment_error(error: Exception | str | None) -> str:
    """Map a raw payment error to a message fit for the shopper."""
    if not error:
        return "An unknown error occurred"
    message = error if isinstance(error, str) else (getattr(error, "message", None) or str(error))
    if not message:
        return "An unknown error occurred"

    lowered = message.lower()
    for needle, friendly in _ERROR_MESSAGES.items():
        if needle in lowered:
            return friendly
    return message[0].upper() + message[1:]


def format_payment_id(payment_id: Any) -> str:
    if not payment_id:
        return ""
    value = str(payment_id)
    if len(value) > 12:
        return f"{value[:8]}...{value[-4:]}"
    return value


def format_session_id(session_id: Any) -> str:
    if not session_id:
        return ""
    value = str(session_id)
    for prefix in ("cs_test_", "cs_live_"):
        if value.startswith(prefix):
            clean = value[len(prefix):]
            return f"{clean[:16]}..." if len(clean) > 16 else clean
    return format_payment_id(value)


_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_currency(amount: Any, currency: str = "USD", in_cents: bool = False) -> str:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        value = Decimal("0")
    if not value.is_finite():
        value = Decimal("0")
    if in_cents:
        value = value / 100
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    sign = "-" if value < 0 else ""
    formatted = f"{abs(value):,.2f}"
    if symbol:
        return f"{sign}{symbol}{formatted}"
    return f"{sign}{formatted} {currency.upper()}"


_STATUS_DISPLAY = {
    "pending": {"text": "Payment Pending", "color": "yellow"},
    "processing": {"text": "Processing Payment", "color": "blue"},
    "succeeded": {"text": "Payment Successful", "color": "green"},
    "failed": {"text": "Payment Failed", "color": "red"},
    "cancelled": {"text": "Payment Cancelled", "color": "gray"},
    "expired": {"text": "Payment Expired", "color": "orange"},
}


def get_payment_status_display(status: str | None) -> dict[str, str]:
    key = (status or "").strip().lower()
    return dict(_STATUS_DISPLAY.get(key, _STATUS_DISPLAY["pending"]))
