# Overview: Coupon catalog and checkout-time discount resolution.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import ValidationFailed
from ..models import Coupon
from ..models.catalog import DISCOUNT_PERCENTAGE, DISCOUNT_FIXED_AMOUNT, VALID_DISCOUNT_TYPES
from ..time_utils import utcnow, parse_iso_datetime, is_past


# 100% in basis points
MAX_PERCENTAGE_BP = 10_000


def normalize_code(code: str | None) -> str:
    if code is not None and not isinstance(code, str):
        raise ValidationFailed("coupon code must be a string")
    return (code or "").strip().upper()


def _parse_window_value(data: dict, key: str) -> datetime | None:
    value = data.get(key)
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationFailed(f"{key} must be an ISO-8601 datetime")


def create_coupon(data: dict) -> Coupon:
    """
    Create a coupon from an admin payload.

    discount_value is basis points for PERCENTAGE (1..10000) and cents for
    FIXED_AMOUNT (> 0).
    """
    code = normalize_code(data.get("code"))
    if not code:
        raise ValidationFailed("code is required")

    discount_type = data.get("discount_type")
    discount_type = discount_type.strip().upper() if isinstance(discount_type, str) else ""
    if discount_type not in VALID_DISCOUNT_TYPES:
        raise ValidationFailed(
            f"discount_type must be one of: {', '.join(sorted(VALID_DISCOUNT_TYPES))}"
        )

    value = data.get("discount_value")
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailed("discount_value must be a positive integer")
    if discount_type == DISCOUNT_PERCENTAGE and value > MAX_PERCENTAGE_BP:
        raise ValidationFailed("PERCENTAGE discount_value is in basis points (max 10000)")

    min_subtotal = data.get("min_subtotal_cents")
    if min_subtotal is not None and (isinstance(min_subtotal, bool) or not isinstance(min_subtotal, int) or min_subtotal < 0):
        raise ValidationFailed("min_subtotal_cents must be a non-negative integer")

    starts_at = _parse_window_value(data, "starts_at")
    expires_at = _parse_window_value(data, "expires_at")
    if starts_at and expires_at and expires_at <= starts_at:
        raise ValidationFailed("expires_at must be after starts_at")

    if db.session.query(Coupon).filter_by(code=code).first():
        raise ValidationFailed(f"Coupon {code} already exists")

    coupon = Coupon(
        code=code,
        discount_type=discount_type,
        discount_value=value,
        min_subtotal_cents=min_subtotal,
        starts_at=starts_at,
        expires_at=expires_at,
        is_active=bool(data.get("is_active", True)),
    )
    db.session.add(coupon)
    db.session.commit()
    return coupon


def compute_discount(coupon: Coupon, subtotal_cents: int) -> int:
    """Discount in cents, half-up for percentages, never above the subtotal."""
    if coupon.discount_type == DISCOUNT_PERCENTAGE:
        discount = (subtotal_cents * coupon.discount_value + MAX_PERCENTAGE_BP // 2) // MAX_PERCENTAGE_BP
    elif coupon.discount_type == DISCOUNT_FIXED_AMOUNT:
        discount = coupon.discount_value
    else:
        discount = 0
    return max(0, min(discount, subtotal_cents))


def resolve_coupon(code: str, subtotal_cents: int, now: datetime | None = None) -> tuple[Coupon, int]:
    """
    Look a coupon up for checkout and price it against subtotal_cents.

    Raises ValidationFailed when the code is unknown, inactive, outside its
    validity window, or the subtotal is under the coupon minimum.
    """
    now = now or utcnow()
    code = normalize_code(code)
    coupon = db.session.query(Coupon).filter_by(code=code).first()

    if not coupon or not coupon.is_active:
        raise ValidationFailed("Invalid coupon")
    if coupon.starts_at and coupon.starts_at > now:
        raise ValidationFailed("Coupon is not valid yet")
    if is_past(coupon.expires_at, now):
        raise ValidationFailed("Coupon has expired")
    if coupon.min_subtotal_cents and subtotal_cents < coupon.min_subtotal_cents:
        raise ValidationFailed(
            "Order subtotal is below the coupon minimum",
            details={"min_subtotal_cents": coupon.min_subtotal_cents},
        )

    return coupon, compute_discount(coupon, subtotal_cents)
