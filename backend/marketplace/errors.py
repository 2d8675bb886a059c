# Overview: Domain error taxonomy shared by services and routes.

"""
Marketplace error kinds.

Every error a service raises on purpose is a MarketplaceError. Routes catch it
and serialize it with to_dict(), using status_code as the HTTP status. The
kind string is what clients branch on; the message is for humans.

    ValidationFailed   400  malformed input, bad coupon, empty cart
    Unauthenticated    401  missing / invalid / expired / revoked token, banned user
    Forbidden          403  authenticated but wrong role or not owner / vendor
    NotFound           404  order / item / user id does not resolve
    InsufficientStock  409  checkout shortfall, one entry per short item
    InvalidTransition  409  order status precondition violated
    Conflict           409  concurrent transition race lost
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base class for errors that map onto an HTTP status."""
    kind = "Error"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": True, "kind": self.kind, "message": self.message}
        body.update(self.details)
        return body


class ValidationFailed(MarketplaceError):
    kind = "ValidationFailed"
    status_code = 400


class Unauthenticated(MarketplaceError):
    kind = "Unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required", details: dict | None = None):
        super().__init__(message, details)


class InvalidToken(Unauthenticated):
    """Token unknown, malformed, or revoked."""


class TokenExpired(Unauthenticated):
    """Token found but past its absolute expiry."""


class UserBanned(Unauthenticated):
    """Token belongs to a banned account."""


class Forbidden(MarketplaceError):
    kind = "Forbidden"
    status_code = 403

    def __init__(self, message: str = "Access denied", details: dict | None = None):
        super().__init__(message, details)


class NotFound(MarketplaceError):
    kind = "NotFound"
    status_code = 404


class InsufficientStock(MarketplaceError):
    kind = "InsufficientStock"
    status_code = 409

    def __init__(self, items: list[dict], message: str = "Order rejected: insufficient stock"):
        super().__init__(message, details={"items": items})
        self.items = items


class InvalidTransition(MarketplaceError):
    kind = "InvalidTransition"
    status_code = 409


class Conflict(MarketplaceError):
    kind = "Conflict"
    status_code = 409
