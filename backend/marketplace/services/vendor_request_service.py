# Overview: Client-to-vendor upgrade requests and their admin review.

"""
Vendor Request Service

Self-signup only creates clients. A client asks to sell by filing a vendor
request; an admin approves it (the account becomes a vendor) or rejects it.

RULES:
1. Only clients may file a request.
2. A user has at most one PENDING request.
3. Only PENDING requests can be reviewed; approval and the role change
   commit together.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import Conflict, Forbidden, NotFound, ValidationFailed
from ..models import Role, User, VendorRequest
from ..models.users import REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED, REQUEST_STATUSES
from ..time_utils import utcnow
from . import moderation_service
from .concurrency import conditional_update, lock_for_update
from .security_service import log_security_event


def _optional_text(data: dict, key: str, max_length: int) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(f"{key} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationFailed(f"{key} must be at most {max_length} characters")
    return value or None


def parse_review_note(data: dict) -> str | None:
    return _optional_text(data, "note", 255)


def submit_request(user: User, data: dict) -> VendorRequest:
    """
    File a vendor request for user.

    Body: shop_name (required), message (optional)
    """
    if user.role_enum is not Role.CLIENT:
        raise Forbidden("Only client accounts can request vendor access")

    shop_name = _optional_text(data, "shop_name", 120)
    if not shop_name:
        raise ValidationFailed("shop_name is required")
    message = _optional_text(data, "message", 1000)

    pending = db.session.query(VendorRequest).filter_by(
        user_id=user.id, status=REQUEST_PENDING
    ).first()
    if pending:
        raise Conflict("A vendor request is already pending", details={"request_id": pending.id})

    request = VendorRequest(user_id=user.id, shop_name=shop_name, message=message)
    db.session.add(request)
    db.session.commit()

    current_app.logger.info("Vendor request %s filed by user %s", request.id, user.id)
    return request


def list_requests(status: str | None = REQUEST_PENDING, limit: int = 100) -> list[VendorRequest]:
    q = db.session.query(VendorRequest)
    if status:
        normalized = status.strip().upper()
        if normalized not in REQUEST_STATUSES:
            raise ValidationFailed(
                f"status must be one of: {', '.join(sorted(REQUEST_STATUSES))}"
            )
        q = q.filter_by(status=normalized)
    return q.order_by(VendorRequest.created_at.asc(), VendorRequest.id.asc()).limit(limit).all()


def list_user_requests(user_id: int) -> list[VendorRequest]:
    return (
        db.session.query(VendorRequest)
        .filter_by(user_id=user_id)
        .order_by(VendorRequest.id.desc())
        .all()
    )


def _review(request_id: int, actor_id: int, outcome: str, note: str | None) -> VendorRequest:
    request = lock_for_update(db.session.query(VendorRequest).filter_by(id=request_id)).first()
    if request is None:
        raise NotFound(f"Vendor request {request_id} not found")

    won = conditional_update(
        VendorRequest,
        VendorRequest.id == request_id,
        VendorRequest.status == REQUEST_PENDING,
        values={
            VendorRequest.status: outcome,
            VendorRequest.reviewed_at: utcnow(),
            VendorRequest.reviewed_by_user_id: actor_id,
            VendorRequest.review_note: note,
        },
    )
    if not won:
        raise Conflict(f"Vendor request {request_id} was already reviewed")
    return request


def approve_request(request_id: int, actor_id: int, note: str | None = None) -> VendorRequest:
    """Approve a pending request and promote its user to vendor."""
    try:
        request = _review(request_id, actor_id, REQUEST_APPROVED, note)
        user = db.session.get(User, request.user_id)
        if user is None or user.role_enum is not Role.CLIENT:
            raise Conflict(f"User {request.user_id} is no longer a client account")
        moderation_service.change_role(request.user_id, Role.VENDOR.value, actor_id, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Vendor request %s approved by admin %s", request_id, actor_id)
    return request


def reject_request(request_id: int, actor_id: int, note: str | None = None) -> VendorRequest:
    try:
        request = _review(request_id, actor_id, REQUEST_REJECTED, note)
        log_security_event(
            user_id=actor_id,
            event_type="VENDOR_REQUEST_REJECTED",
            success=True,
            resource=f"user:{request.user_id}",
            reason=note,
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return request
