from __future__ import annotations

import pytest

from storefront.core.exceptions import PaymentGatewayException
from storefront.domain.payment import (
    format_currency,
    format_payment_error,
    format_payment_id,
    format_session_id,
    get_payment_status_display,
    is_payment_expired,
    validate_order_data,
)


def test_validate_order_data() -> None:
    assert validate_order_data(None) == ["Order data is required"]
    assert validate_order_data({"amount": 10}) == ["Order ID is required"]
    assert validate_order_data({"order_id": 1, "amount": 0}) == ["Invalid order amount"]
    assert validate_order_data({"order_id": 1, "amount": "abc"}) == ["Invalid order amount"]
    assert validate_order_data({"order_id": 1, "amount": "19.99"}) == []
    assert validate_order_data({"order_id": 1}) == []


@pytest.mark.parametrize(
    ("expires_at", "expected"),
    [(None, True), ("garbage", True), (999, True), (1001, False), ("1001", False)],
)
def test_is_payment_expired(expires_at, expected) -> None:
    assert is_payment_expired(expires_at, now=1000) is expected


def test_format_payment_error() -> None:
    assert format_payment_error(None) == "An unknown error occurred"
    assert format_payment_error("Request timeout after 30s") == "Request timed out. Please try again."
    assert format_payment_error("card declined") == "Card declined"
    assert format_payment_error(PaymentGatewayException(401, "Unauthorized")) == (
        "Authentication failed. Please log in again."
    )


def test_format_ids() -> None:
    assert format_payment_id("") == ""
    assert format_payment_id("pay_short") == "pay_short"
    assert format_payment_id("pay_1234567890abcdef") == "pay_1234...cdef"
    assert format_session_id("cs_test_a1b2c3") == "a1b2c3"
    assert format_session_id("cs_live_0123456789abcdefXYZ") == "0123456789abcdef..."


def test_format_currency() -> None:
    assert format_currency(10) == "$10.00"
    assert format_currency(1999, in_cents=True) == "$19.99"
    assert format_currency("12.5", "eur") == "€12.50"
    assert format_currency(-3, "GBP") == "-£3.00"
    assert format_currency(1234.5, "UZS") == "1,234.50 UZS"
    assert format_currency("n/a") == "$0.00"


def test_payment_status_display() -> None:
    assert get_payment_status_display("succeeded") == {"text": "Payment Successful", "color": "green"}
    assert get_payment_status_display("SUCCEEDED")["color"] == "green"
    assert get_payment_status_display("mystery") == {"text": "Payment Pending", "color": "yellow"}
    assert get_payment_status_display(None)["text"] == "Payment Pending"
