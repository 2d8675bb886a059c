# Overview: Append-only security audit log.

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - AUTH_FAILED
    - ACCESS_DENIED
    - LOGIN_FAILED
    - LOGIN
    - LOGOUT
    - PASSWORD_CHANGED
    - USER_BANNED / USER_UNBANNED
    - ROLE_CHANGED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(event)
    if commit:
        db.session.commit()
    return event


def get_security_events(user_id: int | None = None, event_type: str | None = None, limit: int = 100) -> list[SecurityEvent]:
    q = db.session.query(SecurityEvent)
    if user_id is not None:
        q = q.filter_by(user_id=user_id)
    if event_type:
        q = q.filter_by(event_type=event_type)
    return q.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
