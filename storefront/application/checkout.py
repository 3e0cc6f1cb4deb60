"""Use case: turn a confirmed order into a hosted checkout redirect."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping

from storefront.core.client_storage import VisitorStorage
from storefront.core.exceptions import PaymentException, StorageException
from storefront.core.sentry_integration import capture_exception
from storefront.domain.payment import (
    CANCEL_PATH,
    DEFAULT_PAYMENT_ERROR,
    PENDING_PAYMENT_KEY,
    REDIRECT_FAILED_ERROR,
    SUCCESS_PATH,
    CheckoutResult,
    CheckoutState,
    PendingPaymentRecord,
    validate_order_data,
)
from storefront.integrations.payment_service import PaymentService

from .payment_return import read_auth_token

logger = logging.getLogger(__name__)

Navigator = Callable[[str], None]


class CheckoutOrchestrator:
    """One visitor's checkout attempts: IDLE -> PROCESSING -> REDIRECTING | FAILED.

    ``navigate`` receives the hosted checkout URL once the session exists; the
    caller decides how the browser gets there.
    """

    def __init__(
        self,
        storage: VisitorStorage,
        payment_service: PaymentService,
        *,
        navigate: Navigator,
        origin: str,
        cookies: Mapping[str, str] | None = None,
    ):
        self._storage = storage
        self._payment_service = payment_service
        self._navigate = navigate
        self._origin = origin.rstrip("/")
        self._cookies = dict(cookies or {})
        self.state = CheckoutState.IDLE
        self.error: str | None = None
        self.payment_data: dict[str, Any] | None = None

    @property
    def is_processing(self) -> bool:
        return self.state is CheckoutState.PROCESSING

    @property
    def success_url(self) -> str:
        return f"{self._origin}{SUCCESS_PATH}"

    @property
    def cancel_url(self) -> str:
        return f"{self._origin}{CANCEL_PATH}"

    def clear_error(self) -> None:
        self.error = None
        if self.state is CheckoutState.FAILED:
            self.state = CheckoutState.IDLE

    def clear_payment_data(self) -> None:
        self.payment_data = None

    def _fail(self, message: str) -> CheckoutResult:
        self.state = CheckoutState.FAILED
        self.error = message
        return CheckoutResult(False, error=message)

    def _store_pending_payment(self, record: PendingPaymentRecord) -> None:
        try:
            self._storage.set_item(PENDING_PAYMENT_KEY, json.dumps(record.to_dict(), default=str))
        except StorageException as exc:
            logger.error("Failed to store pending payment for order %s: %s", record.order_id, exc)
            capture_exception(exc, payment={"order_id": str(record.order_id)})

    async def process_payment(self, order_data: Mapping[str, Any] | None) -> CheckoutResult:
        """Open a checkout session for ``order_data['order_id']`` and redirect to it.

        Never raises; failures come back as ``CheckoutResult(success=False)``.
        """
        if self.is_processing:
            return CheckoutResult(False, error="Payment is already being processed")

        self.state = CheckoutState.PROCESSING
        self.error = None

        errors = validate_order_data(order_data)
        if errors:
            logger.warning("Checkout rejected: %s", "; ".join(errors))
            return self._fail(errors[0])
        order_id = order_data["order_id"]

        try:
            data = await self._payment_service.create_checkout_session(
                order_id,
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                auth_token=read_auth_token(self._storage),
                cookies=self._cookies,
            )
        except PaymentException as exc:
            logger.warning("Checkout failed for order %s: %s", order_id, exc.message)
            return self._fail(exc.message or DEFAULT_PAYMENT_ERROR)
        except Exception as exc:
            logger.exception("Unexpected checkout error for order %s", order_id)
            capture_exception(exc, payment={"order_id": str(order_id)})
            return self._fail(str(exc) or DEFAULT_PAYMENT_ERROR)

        self.payment_data = data
        self._store_pending_payment(PendingPaymentRecord.from_session(order_id, data))

        self.state = CheckoutState.REDIRECTING
        try:
            self._navigate(data["checkout_url"])
        except Exception as exc:
            logger.exception("Redirect to checkout failed for order %s", order_id)
            capture_exception(exc, payment={"order_id": str(order_id)})
            return self._fail(REDIRECT_FAILED_ERROR)
        return CheckoutResult(True, data=data)
