from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class Role(str, enum.Enum):
    """Account type. Determines the authorization ceiling of a user."""
    CLIENT = "client"
    VENDOR = "vendor"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str | None) -> "Role | None":
        if value is not None and not isinstance(value, str):
            return None
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


class User(db.Model):
    """
    Marketplace account: client, vendor, or admin.

    Email is globally unique. Passwords are bcrypt hashes only.
    A banned user keeps their sessions on record but every one of them is
    rejected at the guard.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)

    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=Role.CLIENT.value, index=True)

    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_banned = db.Column(db.Boolean, nullable=False, default=False, index=True)
    banned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_verified": self.is_verified,
            "is_banned": self.is_banned,
            "banned_at": to_utc_z(self.banned_at),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    One entry in a user's list of active sessions (one per device / login).

    SECURITY NOTES:
    - Only the SHA-256 hash of the bearer token is stored
    - Absolute expiry, no idle timeout
    - Revocation is a flag so logout history stays auditable;
      cleanup_sessions() deletes old revoked rows
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    issued_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Optional device tag (user agent or client-supplied label)
    device_info = db.Column(db.String(512), nullable=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True, order_by="SessionToken.issued_at"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "issued_at": to_utc_z(self.issued_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "device_info": self.device_info,
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at),
        }


# Vendor request states
REQUEST_PENDING = "PENDING"
REQUEST_APPROVED = "APPROVED"
REQUEST_REJECTED = "REJECTED"
REQUEST_STATUSES = {REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED}


class VendorRequest(db.Model):
    """
    A client's request to become a vendor.

    Self-signup only creates clients. A client files one of these; an admin
    approves it (which promotes the account) or rejects it. At most one
    request per user is PENDING at a time.
    """
    __tablename__ = "vendor_requests"
    __table_args__ = (
        db.Index("ix_vendor_requests_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    shop_name = db.Column(db.String(120), nullable=False)
    message = db.Column(db.String(1000), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=REQUEST_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    review_note = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_email": self.user.email if self.user else None,
            "shop_name": self.shop_name,
            "message": self.message,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "reviewed_at": to_utc_z(self.reviewed_at),
            "reviewed_by_user_id": self.reviewed_by_user_id,
            "review_note": self.review_note,
        }
