# Overview: Session store; issues, validates and revokes bearer tokens.

"""
Session Token Store

WHY: Every privileged operation starts from a bearer token. A user may hold
any number of sessions at once (one per device or login); each is a row in
session_tokens and can be revoked on its own.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute expiry (SESSION_LIFETIME_HOURS, default 7 days)
- Revocation is read straight from the database on every validation,
  so a revoked token fails on the very next request
- Banned users are rejected even while their tokens are still on record
"""

from __future__ import annotations

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import InvalidToken, TokenExpired, UserBanned
from ..models import Role, SessionToken, User
from ..time_utils import utcnow


DEFAULT_SESSION_LIFETIME = timedelta(hours=168)


@dataclass
class SessionContext:
    """
    Result of a successful validate_token call.

    role is read from the user row at validation time, so a role change made
    by an admin applies to the next request without re-login.
    """
    user: User
    session: SessionToken
    role: Role

    @property
    def user_id(self) -> int:
        return self.user.id


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient here
    (unlike passwords, which go through bcrypt).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _session_lifetime() -> timedelta:
    hours = current_app.config.get("SESSION_LIFETIME_HOURS")
    if hours is None:
        return DEFAULT_SESSION_LIFETIME
    return timedelta(hours=int(hours))


def issue_token(
    user_id: int,
    device_info: str | None = None,
    *,
    commit: bool = True,
) -> tuple[SessionToken, str]:
    """
    Append a new session to the user's list and return (session, plaintext_token).

    No cap on concurrent sessions. The plaintext token is returned exactly once.

    Raises ValueError if the user does not exist.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        issued_at=now,
        last_used_at=now,
        expires_at=now + _session_lifetime(),
        device_info=device_info[:512] if device_info else None,
        is_revoked=False,
    )

    db.session.add(session)
    if commit:
        db.session.commit()

    return session, plaintext_token


def validate_token(token: str | None) -> SessionContext:
    """
    Resolve a bearer token to its user and role.

    Raises:
        InvalidToken: token empty, unknown, or revoked
        TokenExpired: token past its absolute expiry
        UserBanned: owning user is banned

    All three are Unauthenticated; the guard collapses them into one generic
    401 so callers cannot tell which check failed.

    Updates last_used_at on success (activity tracking).
    """
    if not token:
        raise InvalidToken()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        raise InvalidToken()

    now = utcnow()
    if session.expires_at < now:
        raise TokenExpired()

    user = session.user
    if not user:
        raise InvalidToken()
    if user.is_banned:
        raise UserBanned()

    role = Role.parse(user.role)
    if role is None:
        raise InvalidToken()

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, role=role)


def revoke_token(user_id: int, token: str, reason: str = "User logout") -> bool:
    """
    Revoke exactly one session of the user (logout from one device).

    Returns True if a session was revoked, False if the token was not an
    active session of this user.
    """
    session = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason

    db.session.commit()
    return True


def revoke_all(
    user_id: int,
    reason: str = "Revoke all sessions",
    *,
    except_session_id: int | None = None,
    commit: bool = True,
) -> int:
    """
    Revoke every active session of a user, optionally sparing one.

    Returns count of sessions revoked.

    WHY: Password change, ban, or explicit logout-all. Forces
    re-authentication on all devices.
    """
    now = utcnow()

    q = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    )
    if except_session_id is not None:
        q = q.filter(SessionToken.id != except_session_id)

    count = q.update(
        {
            SessionToken.is_revoked: True,
            SessionToken.revoked_at: now,
            SessionToken.revoked_reason: reason,
        },
        synchronize_session="fetch",
    )

    if commit:
        db.session.commit()
    return count


def refresh_token(current: SessionToken, device_info: str | None = None) -> tuple[SessionToken, str]:
    """Issue a fresh token for the owner of current and revoke current."""
    current.is_revoked = True
    current.revoked_at = utcnow()
    current.revoked_reason = "Token refreshed"

    session, token = issue_token(
        current.user_id,
        device_info or current.device_info,
        commit=False,
    )
    db.session.commit()
    return session, token


def list_sessions(user_id: int) -> list[SessionToken]:
    """Active (unrevoked, unexpired) sessions, oldest first."""
    return (
        db.session.query(SessionToken)
        .filter(
            SessionToken.user_id == user_id,
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        )
        .order_by(SessionToken.issued_at.asc(), SessionToken.id.asc())
        .all()
    )


def cleanup_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired and revoked sessions issued more than older_than_days ago.

    Returns count of sessions deleted. Run periodically (maintenance CLI).
    """
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True),
        ),
        SessionToken.issued_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
