"""Typed errors raised by the marketplace services.

Every error carries the HTTP status it maps to, a stable machine-readable
code and optional detail data. ``main.py`` renders them in the response
envelope.
"""
from typing import Any, Optional


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, data: Optional[Any] = None):
        self.message = message
        self.data = data
        super().__init__(message)


class ValidationError(MarketplaceError):
    """Malformed or inconsistent input, rejected before any write."""

    status_code = 400
    code = "VALIDATION_ERROR"


class EmptyCart(ValidationError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Order must contain at least one item")


class DuplicateCartItem(ValidationError):
    code = "DUPLICATE_CART_ITEM"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Part {item_id} appears more than once in the cart", {"part_id": item_id})


class AddressNotFound(ValidationError):
    code = "ADDRESS_NOT_FOUND"

    def __init__(self, address_id: str):
        super().__init__(f"Delivery address not found: {address_id}", {"address_id": address_id})


class InvalidDateRange(ValidationError):
    code = "INVALID_DATE_RANGE"

    def __init__(self, message: str = "Invalid booking dates"):
        super().__init__(message)


class InvalidStatusValue(ValidationError):
    code = "INVALID_STATUS"

    def __init__(self, status: str, allowed):
        super().__init__(
            f"Unknown status: {status}",
            {"status": status, "allowed": sorted(allowed)},
        )


class ItemNotFound(MarketplaceError):
    """A cart line references a part that is missing or inactive."""

    status_code = 400
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Part not found: {item_id}", {"part_id": item_id})


class InsufficientStock(MarketplaceError):
    """Requested quantity exceeds the part's current stock."""

    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, name: str, available: Optional[int], requested: int):
        self.item_id = item_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for part: {name}",
            {"part_id": item_id, "available": available, "requested": requested},
        )


class PaymentVerificationFailed(MarketplaceError):
    """The gateway signature does not match the payment."""

    status_code = 400
    code = "PAYMENT_VERIFICATION_FAILED"

    def __init__(self, payment_id: str):
        super().__init__("Payment verification failed", {"payment_id": payment_id})


class NotFound(MarketplaceError):
    """Single-entity fetch found nothing the caller may see."""

    status_code = 404
    code = "NOT_FOUND"


class NotFoundOrUnauthorized(MarketplaceError):
    """Guarded mutation matched no row.

    Raised the same way for "does not exist" and "not yours".
    """

    status_code = 400
    code = "NOT_FOUND_OR_UNAUTHORIZED"

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found or unauthorized")


class NotCompletedOrUnauthorized(MarketplaceError):
    status_code = 400
    code = "NOT_COMPLETED_OR_UNAUTHORIZED"

    def __init__(self, entity: str = "Booking"):
        super().__init__(f"{entity} not found, not completed or unauthorized")


class ConflictError(MarketplaceError):
    """The resource is not in a state that allows the operation."""

    status_code = 409
    code = "CONFLICT"


class AlreadyAssigned(ConflictError):
    code = "ALREADY_ASSIGNED"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} already assigned: {entity_id}", {"id": entity_id})


class BookingNotClaimable(ConflictError):
    """The booking has already finished or been cancelled."""

    code = "NOT_CLAIMABLE"

    def __init__(self, entity: str, entity_id: str, status: str):
        self.status = status
        super().__init__(f"{entity} is {status} and cannot be claimed: {entity_id}", {"id": entity_id, "status": status})


class InvalidStatusTransition(ConflictError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, old_status: str, new_status: str):
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(
            f"Invalid status transition: {old_status} -> {new_status}",
            {"current_status": old_status, "requested_status": new_status},
        )


class EmailAlreadyRegistered(ConflictError):
    code = "EMAIL_ALREADY_REGISTERED"

    def __init__(self):
        super().__init__("Email already registered")


class NoActiveSubscription(ConflictError):
    code = "NO_ACTIVE_SUBSCRIPTION"

    def __init__(self):
        super().__init__("No active RSA subscription found")


class ServiceUnavailable(MarketplaceError):
    """Store unreachable or connection pool exhausted. Safe to retry."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"
