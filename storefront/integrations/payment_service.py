"""
Payment backend client.

The storefront never talks to the payment processor directly. It asks the
REST backend to open a hosted checkout session (Stripe) and later to verify,
look up or cancel that payment.

Endpoints (relative to ``API_BASE_URL``):
- POST /payment/checkout/create/
- POST /payment/checkout/verify/
- GET  /payment/status/<payment_id>/
- POST /payment/cancel/<payment_id>/
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping

import aiohttp

from storefront.core.exceptions import (
    PaymentContractException,
    PaymentGatewayException,
    PaymentTransportException,
)
from storefront.domain.payment import MISSING_CHECKOUT_URL_ERROR, PAYMENT_METHOD

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _error_message(status: int, body: str) -> str:
    """Pull a readable message out of an error body, else ``HTTP <status>``."""
    text = (body or "").strip()
    if text.startswith("{"):
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            for field in ("message", "detail", "error"):
                value = payload.get(field)
                if isinstance(value, str) and value.strip():
                    return value.strip()
    return f"HTTP {status}"


class PaymentService:
    """Async client for the backend payment endpoints."""

    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @staticmethod
    def _headers(auth_token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Mapping[str, Any] | None = None,
        auth_token: str | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(
            "%s %s (%s)", method, url, "bearer token" if auth_token else "session cookies only"
        )
        try:
            async with aiohttp.ClientSession(
                headers=self._headers(auth_token),
                cookies=dict(cookies or {}),
                cookie_jar=aiohttp.CookieJar(unsafe=True),
                timeout=self._timeout,
            ) as session:
                async with session.request(method, url, json=payload) as resp:
                    body = await resp.text()
                    status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("Payment backend unreachable (%s %s): %s", method, path, message)
            raise PaymentTransportException(message) from exc

        if not 200 <= status < 300:
            message = _error_message(status, body)
            logger.warning("Payment backend error %s on %s %s: %s", status, method, path, message)
            raise PaymentGatewayException(status, message)

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise PaymentContractException("Invalid response from payment service") from exc
        if not isinstance(data, dict):
            raise PaymentContractException("Invalid response from payment service")
        return data

    async def create_checkout_session(
        self,
        order_id: Any,
        *,
        success_url: str,
        cancel_url: str,
        auth_token: str | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Open a hosted checkout session for an existing order.

        Returns:
            Backend payload with ``checkout_url``, ``payment_id``, ``session_id``,
            ``expires_at``

        Raises:
            PaymentException subclasses; exactly one request is made.
        """
        payload = {
            "order_id": order_id,
            "payment_method": PAYMENT_METHOD,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        data = await self._request(
            "POST",
            "/payment/checkout/create/",
            payload=payload,
            auth_token=auth_token,
            cookies=cookies,
        )
        if not data.get("checkout_url"):
            logger.error("Missing checkout_url in payment response for order %s", order_id)
            raise PaymentContractException(MISSING_CHECKOUT_URL_ERROR)

        logger.info(
            "Checkout session created for order %s (payment_id=%s)",
            order_id,
            data.get("payment_id"),
        )
        return data

    async def verify_payment(
        self,
        session_id: Any,
        order_id: Any,
        *,
        auth_token: str | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/payment/checkout/verify/",
            payload={"session_id": session_id, "order_id": order_id},
            auth_token=auth_token,
            cookies=cookies,
        )

    async def get_payment_status(
        self,
        payment_id: Any,
        *,
        auth_token: str | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"/payment/status/{payment_id}/", auth_token=auth_token, cookies=cookies
        )

    async def cancel_payment(
        self,
        payment_id: Any,
        *,
        auth_token: str | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/payment/cancel/{payment_id}/", auth_token=auth_token, cookies=cookies
        )

