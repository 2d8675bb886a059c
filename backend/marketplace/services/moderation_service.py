# Overview: Administrative account moderation; ban, unban and account type changes.

from __future__ import annotations

from ..extensions import db
from ..errors import Forbidden, NotFound, ValidationFailed
from ..models import Role, User
from ..time_utils import utcnow
from . import session_service
from .security_service import log_security_event


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


def list_users(*, role: str | None = None, banned: bool | None = None, limit: int = 100) -> list[User]:
    q = db.session.query(User)
    if role:
        parsed = Role.parse(role)
        if parsed is None:
            raise ValidationFailed("role must be client, vendor or admin")
        q = q.filter_by(role=parsed.value)
    if banned is not None:
        q = q.filter_by(is_banned=banned)
    return q.order_by(User.id.asc()).limit(limit).all()


def ban_user(user_id: int, actor_id: int, reason: str | None = None) -> User:
    """
    Ban an account and revoke every session it holds.

    The guard rejects banned users on its own; revoking as well means unbanning
    later does not bring old tokens back to life.
    """
    if user_id == actor_id:
        raise Forbidden("Admins cannot ban themselves")

    user = _get_user(user_id)
    if not user.is_banned:
        user.is_banned = True
        user.banned_at = utcnow()
    session_service.revoke_all(user.id, reason="User banned", commit=False)

    log_security_event(
        user_id=actor_id,
        event_type="USER_BANNED",
        success=True,
        resource=f"user:{user.id}",
        reason=reason,
        commit=False,
    )
    db.session.commit()
    return user


def unban_user(user_id: int, actor_id: int) -> User:
    user = _get_user(user_id)
    user.is_banned = False
    user.banned_at = None

    log_security_event(
        user_id=actor_id,
        event_type="USER_UNBANNED",
        success=True,
        resource=f"user:{user.id}",
        commit=False,
    )
    db.session.commit()
    return user


def change_role(user_id: int, role: str, actor_id: int, *, commit: bool = True) -> User:
    """
    Change a user's account type.

    Takes effect on the user's next request: validate_token reads the role
    from the user row, so existing sessions stay valid with the new ceiling.
    """
    new_role = Role.parse(role)
    if new_role is None:
        raise ValidationFailed("role must be client, vendor or admin")

    user = _get_user(user_id)
    if user.id == actor_id and new_role is not Role.ADMIN:
        raise Forbidden("Admins cannot demote themselves")

    previous = user.role
    user.role = new_role.value

    log_security_event(
        user_id=actor_id,
        event_type="ROLE_CHANGED",
        success=True,
        resource=f"user:{user.id}",
        reason=f"{previous} -> {new_role.value}",
        commit=False,
    )
    if commit:
        db.session.commit()
    return user


def revoke_user_sessions(user_id: int, actor_id: int) -> int:
    user = _get_user(user_id)
    count = session_service.revoke_all(user.id, reason=f"Revoked by admin {actor_id}", commit=False)
    log_security_event(
        user_id=actor_id,
        event_type="SESSIONS_REVOKED",
        success=True,
        resource=f"user:{user.id}",
        reason=f"{count} sessions",
        commit=False,
    )
    db.session.commit()
    return count
