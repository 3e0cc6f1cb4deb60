from __future__ import annotations

import pytest

from storefront.core.exceptions import (
    PaymentContractException,
    PaymentGatewayException,
    PaymentTransportException,
)
from storefront.integrations.payment_service import PaymentService

CHECKOUT_PATH = "/api/payment/checkout/create/"
SESSION = {
    "checkout_url": "https://pay.example.com/c/cs_test_1",
    "payment_id": "pay_1",
    "session_id": "cs_test_1",
    "expires_at": 1893456000,
}


async def _create(service: PaymentService, **kwargs):
    return await service.create_checkout_session(
        42,
        success_url="https://shop.example.com/payment/success",
        cancel_url="https://shop.example.com/payment/cancel",
        **kwargs,
    )


@pytest.mark.asyncio
async def test_create_checkout_session_sends_expected_payload(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, body=SESSION)

    data = await _create(payment_service)

    assert data == SESSION
    [request] = backend.requests_to(CHECKOUT_PATH)
    assert request["method"] == "POST"
    assert request["json"] == {
        "order_id": 42,
        "payment_method": "stripe",
        "success_url": "https://shop.example.com/payment/success",
        "cancel_url": "https://shop.example.com/payment/cancel",
    }
    assert "Authorization" not in request["headers"]
    assert request["headers"]["Content-Type"].startswith("application/json")


@pytest.mark.asyncio
async def test_bearer_token_and_cookies_are_forwarded(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, body=SESSION)

    await _create(payment_service, auth_token="tok-123", cookies={"sessionid": "abc"})

    [request] = backend.requests_to(CHECKOUT_PATH)
    assert request["headers"]["Authorization"] == "Bearer tok-123"
    assert request["cookies"] == {"sessionid": "abc"}


@pytest.mark.asyncio
async def test_structured_error_message_is_used(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, status=500, body={"message": "card declined"})

    with pytest.raises(PaymentGatewayException) as exc:
        await _create(payment_service)

    assert exc.value.status == 500
    assert exc.value.message == "card declined"


@pytest.mark.asyncio
async def test_detail_field_is_used_when_message_missing(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, status=403, body={"detail": "Not your order"})

    with pytest.raises(PaymentGatewayException) as exc:
        await _create(payment_service)

    assert exc.value.message == "Not your order"


@pytest.mark.asyncio
async def test_unstructured_error_falls_back_to_status(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, status=502, body="<html>Bad gateway</html>")

    with pytest.raises(PaymentGatewayException) as exc:
        await _create(payment_service)

    assert exc.value.message == "HTTP 502"


@pytest.mark.asyncio
async def test_missing_checkout_url_is_a_contract_fault(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, body={"payment_id": "pay_1"})

    with pytest.raises(PaymentContractException) as exc:
        await _create(payment_service)

    assert exc.value.message == "Payment session created but no checkout URL received"
    assert len(backend.requests_to(CHECKOUT_PATH)) == 1


@pytest.mark.asyncio
async def test_non_object_body_is_a_contract_fault(backend, payment_service) -> None:
    backend.respond(CHECKOUT_PATH, body="not json at all")

    with pytest.raises(PaymentContractException):
        await _create(payment_service)


@pytest.mark.asyncio
async def test_unreachable_backend_is_a_transport_fault() -> None:
    service = PaymentService("http://127.0.0.1:1/api", timeout=2)

    with pytest.raises(PaymentTransportException) as exc:
        await _create(service)

    assert exc.value.message


@pytest.mark.asyncio
async def test_verify_status_and_cancel_endpoints(backend, payment_service) -> None:
    backend.respond("/api/payment/checkout/verify/", body={"status": "succeeded"})
    backend.respond("/api/payment/status/pay_1/", body={"status": "pending"})
    backend.respond("/api/payment/cancel/pay_1/", body={"status": "cancelled"})

    verified = await payment_service.verify_payment("cs_test_1", 42, auth_token="tok")
    status = await payment_service.get_payment_status("pay_1")
    cancelled = await payment_service.cancel_payment("pay_1")

    assert verified == {"status": "succeeded"}
    assert status == {"status": "pending"}
    assert cancelled == {"status": "cancelled"}

    [verify_request] = backend.requests_to("/api/payment/checkout/verify/")
    assert verify_request["json"] == {"session_id": "cs_test_1", "order_id": 42}
    assert verify_request["headers"]["Authorization"] == "Bearer tok"
    assert backend.requests_to("/api/payment/status/pay_1/")[0]["method"] == "GET"
    assert backend.requests_to("/api/payment/cancel/pay_1/")[0]["method"] == "POST"
