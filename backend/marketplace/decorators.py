# Overview: Request decorators enforcing authentication and role requirements.

from functools import wraps
from flask import request, jsonify, current_app

from . import guard
from .errors import Forbidden, Unauthenticated
from .models import Role
from .services import security_service


def extract_token() -> str | None:
    """
    Bearer token of the current request.

    Authorization header first ("Bearer <token>"), then the session cookie
    named by TOKEN_COOKIE_NAME.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token

    cookie_name = current_app.config.get("TOKEN_COOKIE_NAME", "userToken")
    return request.cookies.get(cookie_name) or None


def log_access_denied(identity: "guard.Identity | None", reason: str) -> None:
    security_service.log_security_event(
        user_id=identity.user_id if identity else None,
        event_type="ACCESS_DENIED",
        success=False,
        resource=request.path,
        action=request.method,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


def require_auth(f):
    """
    Require a valid session and hand the caller to the view.

    The view receives the resolved guard.Identity as the `identity` keyword
    argument. Nothing is stored on flask.g.

    SECURITY: Returns the same 401 body for every failure:
    - No token in header or cookie
    - Unknown, revoked or expired token
    - Banned user
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            identity = guard.authenticate(extract_token())
        except Unauthenticated as e:
            return jsonify(e.to_dict()), e.status_code

        return f(*args, identity=identity, **kwargs)

    return decorated_function


def require_role(*roles: Role):
    """
    Require the caller's role to be one of roles.

    Must sit below @require_auth. Wrong role is 403, distinct from the 401
    of a missing identity.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = kwargs.get("identity")
            if identity is None:
                return jsonify(Unauthenticated().to_dict()), 401

            try:
                guard.authorize_role(identity, roles)
            except Forbidden as e:
                log_access_denied(identity, e.message)
                return jsonify(e.to_dict()), e.status_code

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Shorthand for @require_role(Role.ADMIN)."""
    return require_role(Role.ADMIN)(f)
