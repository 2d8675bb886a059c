# Overview: Credentials; password hashing, signup, login and password change.

"""
Authentication Service

WHY: Sessions are only ever created from verified credentials. Uses bcrypt
for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- 8 to 72 bytes, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
- Self-signup only creates client accounts; vendors go through a vendor request
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import Forbidden, ValidationFailed
from ..models import Role, SessionToken, User
from ..time_utils import utcnow
from . import session_service


SIGNUP_ROLES = {Role.CLIENT}
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# bcrypt only reads the first 72 bytes; newer releases reject longer input
MAX_PASSWORD_BYTES = 72


class PasswordValidationError(ValidationFailed):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters, at most 72 bytes (bcrypt input limit)
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise PasswordValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(
    name: str,
    email: str,
    password: str,
    role: Role = Role.CLIENT,
    *,
    is_verified: bool = False,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationFailed: bad email, duplicate email, or weak password
    """
    email = normalize_email(email)
    if not EMAIL_RE.match(email):
        raise ValidationFailed("A valid email is required")

    name = (name or "").strip()
    if not name:
        raise ValidationFailed("name is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ValidationFailed("Email is already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=Role(role).value,
        is_verified=is_verified,
    )

    db.session.add(user)
    db.session.commit()
    return user


def signup(
    name: str,
    email: str,
    password: str,
    role: str | None = None,
    device_info: str | None = None,
) -> tuple[User, SessionToken, str]:
    """
    Self-service account creation. Logs the new user in on the creating device.

    Only client accounts can be self-created; vendors file a vendor request
    and admins are created from the CLI.
    """
    requested = Role.parse(role) if role else Role.CLIENT
    if requested is None:
        raise ValidationFailed("role must be client")
    if requested not in SIGNUP_ROLES:
        raise Forbidden(f"{requested.value.capitalize()} accounts cannot be created by signup")

    user = create_user(name, email, password, requested)
    session, token = session_service.issue_token(user.id, device_info)
    return user, session, token


def authenticate(email: str, password: str) -> User | None:
    """
    Check credentials. Returns the User on success, None otherwise.

    Banned users are returned too; the caller decides how to refuse them so
    that a wrong password and a banned account stay distinguishable in the
    audit log. Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def change_password(
    user: User,
    current_password: str,
    new_password: str,
    device_info: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Replace the user's password and invalidate every session.

    The caller receives one fresh session so the device that changed the
    password stays logged in; every other device must log in again.
    """
    if not verify_password(current_password, user.password_hash):
        raise ValidationFailed("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    session_service.revoke_all(user.id, reason="Password changed", commit=False)
    session, token = session_service.issue_token(user.id, device_info, commit=False)
    db.session.commit()
    return session, token
