# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/marketplace/routes/auth.py
"""
Authentication API routes

- Signup creates a client account and logs it in
- Login appends a session to the user's list (multi-device)
- Logout revokes only the presented token; logout-all revokes every session
- Password change revokes every session and returns one fresh token
- Clients ask to become vendors through a vendor request
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, extract_token
from ..errors import MarketplaceError
from ..services import auth_service, vendor_request_service
from ..services import session_service
from ..services.security_service import log_security_event


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _device_info(data: dict | None = None) -> str | None:
    device = (data or {}).get("device")
    if isinstance(device, str) and device:
        return device
    return request.headers.get("User-Agent")


def _missing_fields(data: dict, *keys: str) -> str | None:
    """Validation message when any of keys is absent, empty or not a string."""
    if any(not data.get(k) or not isinstance(data.get(k), str) for k in keys):
        return f"{', '.join(keys)} required as strings"
    return None


def _validation_error(message: str):
    return jsonify({"error": True, "kind": "ValidationFailed", "message": message}), 400


def _session_response(user, session, token, message: str, status: int):
    response = jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    })
    response.headers["X-Auth-Token"] = token
    return response, status


@auth_bp.post("/signup")
def signup_route():
    """Body: name, email, password, role (client only, default client)"""
    try:
        data = _json_body()
        problem = _missing_fields(data, "name", "email", "password")
        if problem:
            return _validation_error(problem)

        user, session, token = auth_service.signup(
            name=data["name"],
            email=data["email"],
            password=data["password"],
            role=data.get("role"),
            device_info=_device_info(data),
        )
        return _session_response(user, session, token, "Signup successful", 201)

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and append a new session to the user's list.

    Returns the token in the body and in the X-Auth-Token header.
    """
    try:
        data = _json_body()
        email = data.get("email")
        password = data.get("password")

        problem = _missing_fields(data, "email", "password")
        if problem:
            return _validation_error(problem)

        user = auth_service.authenticate(email, password)

        if not user:
            log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Invalid credentials",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": True, "kind": "Unauthenticated",
                            "message": "Invalid credentials"}), 401

        if user.is_banned:
            log_security_event(
                user_id=user.id,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Account banned",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": True, "kind": "Forbidden",
                            "message": "Account is banned"}), 403

        session, token = session_service.issue_token(user.id, _device_info(data))
        return _session_response(user, session, token, "Login successful", 200)

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route(identity):
    """Revoke the presented token only; other devices stay logged in."""
    try:
        session_service.revoke_token(identity.user_id, extract_token(), reason="User logout")
        response = jsonify({"message": "Logout successful"})
        response.delete_cookie(current_app.config.get("TOKEN_COOKIE_NAME", "userToken"))
        return response, 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout-all")
@require_auth
def logout_all_route(identity):
    """Query: keepCurrent=true spares the session making the request."""
    try:
        keep_current = request.args.get("keepCurrent", "").lower() == "true"
        count = session_service.revoke_all(
            identity.user_id,
            reason="Logout from all devices",
            except_session_id=identity.session.id if keep_current else None,
        )
        return jsonify({"message": "Logged out from all devices", "revoked": count}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user from all devices")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/refresh-token")
@require_auth
def refresh_token_route(identity):
    """Swap the presented token for a new one."""
    try:
        session, token = session_service.refresh_token(identity.session, request.headers.get("User-Agent"))
        return _session_response(identity.user, session, token, "Token refreshed", 200)

    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/sessions")
@require_auth
def list_sessions_route(identity):
    sessions = session_service.list_sessions(identity.user_id)
    return jsonify({
        "sessions": [
            dict(s.to_dict(), current=(s.id == identity.session.id)) for s in sessions
        ]
    }), 200


@auth_bp.get("/me")
@require_auth
def me_route(identity):
    return jsonify({"user": identity.user.to_dict()}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route(identity):
    """
    Body: current_password, new_password

    Every session of the user is revoked; the response carries the one
    replacement token for this device.
    """
    try:
        data = _json_body()
        problem = _missing_fields(data, "current_password", "new_password")
        if problem:
            return _validation_error(problem)

        session, token = auth_service.change_password(
            identity.user,
            data["current_password"],
            data["new_password"],
            device_info=_device_info(data),
        )
        log_security_event(
            user_id=identity.user_id,
            event_type="PASSWORD_CHANGED",
            success=True,
            resource=request.path,
            action=request.method,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return _session_response(identity.user, session, token, "Password changed", 200)

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/vendor-request")
@require_auth
def vendor_request_route(identity):
    """Body: shop_name, message (optional). Clients only; one pending at a time."""
    try:
        vendor_request = vendor_request_service.submit_request(identity.user, _json_body())
        return jsonify({"request": vendor_request.to_dict()}), 201

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to file vendor request")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/vendor-request")
@require_auth
def my_vendor_requests_route(identity):
    requests = vendor_request_service.list_user_requests(identity.user_id)
    return jsonify({"requests": [r.to_dict() for r in requests]}), 200
