"""Custom exceptions for the storefront."""
from __future__ import annotations


class StorefrontException(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class StorageException(StorefrontException):
    """Visitor storage read/write errors."""

    pass


class StorageQuotaExceededException(StorageException):
    """A value does not fit into the visitor storage quota."""

    def __init__(self, key: str, size: int, quota: int) -> None:
        super().__init__(f"Storage quota exceeded for '{key}': {size} > {quota} bytes")
        self.key = key
        self.size = size
        self.quota = quota


class ConfigurationException(StorefrontException):
    """Configuration errors."""

    pass


class PaymentException(StorefrontException):
    """Base class for payment backend failures."""

    pass


class PaymentGatewayException(PaymentException):
    """Backend answered with a non-success HTTP status."""

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(message or f"HTTP {status}")
        self.status = status


class PaymentTransportException(PaymentException):
    """Backend could not be reached."""

    pass


class PaymentContractException(PaymentException):
    """Backend answered 2xx with a body we cannot use."""

    pass
