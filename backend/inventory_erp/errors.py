# Overview: Domain exception taxonomy shared by services and routes.

"""
Inventory domain errors.

Every error carries the HTTP status it maps to and optional details that are
merged into the JSON error body by the handlers registered in create_app().
Services raise these; routes let them propagate.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for domain errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        body.update(self.details)
        return body


class NotFoundError(InventoryError):
    """Referenced entity does not exist."""

    status_code = 404


class NotConfiguredError(InventoryError):
    """Supplier sync attempted for a product without a supplier API endpoint."""

    status_code = 400


class InsufficientStockError(InventoryError):
    """A stock movement would drive quantity below zero."""

    status_code = 409

    def __init__(self, available: int, requested: int, message: str | None = None):
        super().__init__(
            message or f"Insufficient stock. Available: {available}",
            {"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class InvalidTransitionError(InventoryError):
    """Illegal purchase order status change."""

    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change purchase order status from {current} to {target}",
            {"current_status": current, "requested_status": target},
        )
        self.current = current
        self.target = target


class RateUnavailableError(InventoryError):
    """Conversion target currency is missing from the rate table."""

    status_code = 400


class UpstreamFailureError(InventoryError):
    """Supplier or rate provider network failure, timeout or bad response."""

    status_code = 502


class NotificationError(InventoryError):
    """Alert delivery failed or the notifier is not configured."""

    status_code = 502
