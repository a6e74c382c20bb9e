"""
Exception hierarchy for the Printify/SureCart integration.

Port-level errors (``PrintifyError``, ``SureCartError``) are raised by the
HTTP clients. The orchestrator turns them into per-item failures, except
while starting a run, where they become a ``ConnectivityError``.
"""
from typing import Any, Dict, Optional


class IntegrationError(Exception):
    """Base error for calls to a remote platform."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class PrintifyError(IntegrationError):
    """Non-2xx response or transport failure from the Printify API."""


class SureCartError(IntegrationError):
    """Non-2xx response or transport failure from the SureCart API."""


class SureCartValidationError(SureCartError):
    """SureCart rejected a payload (HTTP 422)."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field_errors = field_errors or {}


class ConnectivityError(Exception):
    """The catalog source could not be reached when starting a run."""


class OrderSyncError(Exception):
    """Base error for order synchronization."""


class NoMatchingProductsError(OrderSyncError):
    """None of the order line items reference a Printify product."""


class OrderAlreadySyncedError(OrderSyncError):
    """The order already has a Printify order attached."""


class OrderNotFoundError(OrderSyncError):
    """The storefront order does not exist."""
