"""
CLI command tests (flask users / coupons / maintenance / system).
"""

from datetime import timedelta

from marketplace.models import Coupon, SessionToken, User
from marketplace.services import session_service
from marketplace.time_utils import utcnow


def test_create_admin(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--name", "Root",
        "--email", "root@market.local",
        "--password", "Password123!",
        "--role", "admin",
    ])

    assert "PASS" in result.output
    user = db_session.query(User).filter_by(email="root@market.local").one()
    assert user.role == "admin"
    assert user.is_verified is True


def test_create_user_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--name", "Weak",
        "--email", "weak@market.local",
        "--password", "weak",
        "--role", "client",
    ])

    assert "FAIL" in result.output
    assert db_session.query(User).count() == 0


def test_list_users(app, customer, vendor):
    result = app.test_cli_runner().invoke(args=["users", "list", "--role", "vendor"])

    assert vendor.email in result.output
    assert customer.email not in result.output


def test_ban_user(app, db_session, customer, token_for):
    token_for(customer)

    result = app.test_cli_runner().invoke(args=["users", "ban", customer.email.upper()])

    assert "revoked 1 sessions" in result.output
    db_session.expire_all()
    assert db_session.get(User, customer.id).is_banned is True
    assert session_service.list_sessions(customer.id) == []


def test_create_coupon(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "coupons", "create", "--code", "welcome", "--type", "PERCENTAGE", "--value", "1500",
    ])

    assert "PASS Created coupon WELCOME" in result.output
    assert db_session.query(Coupon).filter_by(code="WELCOME").one().discount_value == 1500


def test_cleanup_sessions(app, db_session, customer):
    stale, _ = session_service.issue_token(customer.id)
    stale.issued_at = utcnow() - timedelta(days=90)
    stale.expires_at = utcnow() - timedelta(days=83)
    db_session.commit()
    session_service.issue_token(customer.id)

    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions", "--older-than-days", "30"])

    assert "Deleted 1 sessions" in result.output
    assert db_session.query(SessionToken).count() == 1


def test_reset_db_requires_confirmation(app, db_session, customer):
    result = app.test_cli_runner().invoke(args=["system", "reset-db"], input="n\n")

    assert result.exit_code != 0
    assert db_session.query(User).count() == 1
