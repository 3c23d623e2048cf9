"""
Error taxonomy for order ingestion and Shopify access.
"""
from typing import Iterable, Optional


class OrderSyncError(Exception):
    """Base class for errors raised by the order services."""


class ValidationError(OrderSyncError, ValueError):
    """Missing or malformed required fields in an order payload."""

    def __init__(self, message: str, missing: Optional[Iterable[str]] = None):
        self.missing = list(missing or [])
        super().__init__(message)

    @classmethod
    def missing_fields(cls, missing: Iterable[str]) -> "ValidationError":
        names = list(missing)
        return cls(f"Missing required fields: {', '.join(names)}", missing=names)


class ProductNotFound(OrderSyncError, LookupError):
    """SKU did not resolve to an active catalog product."""

    def __init__(self, product_code: Optional[str]):
        self.product_code = product_code
        label = product_code or "(unresolved SKU)"
        super().__init__(f"Product with code {label} not found or inactive")


class TransactionRollback(OrderSyncError):
    """Storage failure inside the order transaction; everything was rolled back."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ShopifyConfigError(OrderSyncError):
    """Shop URL or access token missing."""


class ShopifyAPIError(OrderSyncError):
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Shopify API error: {status_code} - {body[:200]}")

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


class ShopifyTimeoutError(OrderSyncError, TimeoutError):
    """Shopify did not answer within the client's timeout."""
