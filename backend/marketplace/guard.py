# Overview: Access guard checks; identity, role and ownership rules.

"""
Access Guard

The check chain for every privileged operation, in this order:

1. authenticate          token -> Identity            (401 on any failure)
2. authorize_role        Identity.role in allowed set (403)
3. authorize_order_*     Identity vs. the order rows  (403)

Step 1 lives in decorators.require_auth, step 2 in decorators.require_role,
step 3 is called by order_service after it has locked the order row, so the
ownership decision and the status check read the same row.

Role rules are spelled out per role below instead of being spread across
subclasses, so each role's behavior can be read and tested on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .errors import Forbidden, Unauthenticated
from .models import Order, Role, SessionToken, User
from .services import session_service


@dataclass(frozen=True)
class Identity:
    """
    The authenticated caller of one request.

    Built once by require_auth and passed explicitly to views and services.
    """
    user: User
    role: Role
    session: SessionToken

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role is Role.VENDOR


def authenticate(token: str | None) -> Identity:
    """
    Resolve a bearer token into an Identity.

    Every failure (missing, malformed, unknown, revoked, expired, banned)
    surfaces as the same generic Unauthenticated error.
    """
    try:
        context = session_service.validate_token(token)
    except Unauthenticated:
        raise Unauthenticated("Authentication required") from None
    return Identity(user=context.user, role=context.role, session=context.session)


def authorize_role(identity: Identity, allowed: Iterable[Role]) -> None:
    """Raise Forbidden unless the caller's role is one of allowed."""
    allowed = set(allowed)
    if identity.role not in allowed:
        names = ", ".join(sorted(r.value for r in allowed))
        raise Forbidden(f"Access denied: requires role {names}")


def authorize_order_owner(identity: Identity, order: Order) -> None:
    """Owner-gated operations (cancel). Admins are not owners."""
    if order.owner_id != identity.user_id:
        raise Forbidden("Access denied: not the owner of this order")


def authorize_order_fulfiller(identity: Identity, order: Order) -> None:
    """
    Vendor-gated operations (confirm, ship, status edit).

    admin  -> always allowed
    vendor -> allowed if they sell at least one line of the order
    client -> never
    """
    if identity.role is Role.ADMIN:
        return
    if identity.role is Role.VENDOR:
        if identity.user_id in order.vendor_ids:
            return
        raise Forbidden("Access denied: no line item of this order belongs to you")
    raise Forbidden("Access denied: requires role admin, vendor")


def authorize_order_viewer(identity: Identity, order: Order) -> None:
    """
    Read access to a single order.

    admin  -> always
    vendor -> their own purchases, or orders containing one of their lines
    client -> their own orders
    """
    if identity.role is Role.ADMIN:
        return
    if order.owner_id == identity.user_id:
        return
    if identity.role is Role.VENDOR and identity.user_id in order.vendor_ids:
        return
    raise Forbidden("Access denied: not allowed to view this order")
