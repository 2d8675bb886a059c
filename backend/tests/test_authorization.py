"""
Authorization tests for the access guard.

Verifies:
- Unauthenticated requests return 401 with one generic body
- Token is read from the Authorization header, then the session cookie
- Wrong role is 403 and is recorded as an ACCESS_DENIED security event
- Ownership: only the owner cancels, only vendors on the order confirm
"""

from datetime import timedelta

import pytest

from marketplace.models import SecurityEvent
from marketplace.services import session_service
from marketplace.time_utils import utcnow


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/orders"),
            ("GET", "/api/orders/1"),
            ("POST", "/api/orders/checkout"),
            ("POST", "/api/orders/1/cancel"),
            ("POST", "/api/orders/1/confirm"),
            ("POST", "/api/orders/1/ship"),
            ("PATCH", "/api/orders/1/status"),
            ("GET", "/api/cart"),
            ("POST", "/api/items"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["kind"] == "Unauthenticated"

    def test_every_failure_has_the_same_body(self, client, customer, token_for, db_session):
        missing = client.get("/api/orders")
        unknown = client.get("/api/orders", headers={"Authorization": "Bearer nope"})

        revoked_token = token_for(customer)
        session_service.revoke_token(customer.id, revoked_token)
        revoked = client.get("/api/orders", headers={"Authorization": f"Bearer {revoked_token}"})

        expired_token = token_for(customer)
        session = session_service.validate_token(expired_token).session
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        expired = client.get("/api/orders", headers={"Authorization": f"Bearer {expired_token}"})

        bodies = [r.json for r in (missing, unknown, revoked, expired)]
        assert all(r.status_code == 401 for r in (missing, unknown, revoked, expired))
        assert all(body == bodies[0] for body in bodies)

    def test_banned_user_is_unauthenticated(self, client, customer, token_for, db_session):
        token = token_for(customer)
        customer.is_banned = True
        db_session.commit()

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_malformed_header_is_unauthenticated(self, client, customer, token_for):
        token = token_for(customer)
        resp = client.get("/api/auth/me", headers={"Authorization": f"Token {token}"})
        assert resp.status_code == 401


class TestTokenSources:

    def test_cookie_fallback(self, app, client, customer, token_for):
        client.set_cookie(app.config["TOKEN_COOKIE_NAME"], token_for(customer))

        resp = client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == customer.id

    def test_header_wins_over_cookie(self, app, client, customer, other_customer, token_for):
        client.set_cookie(app.config["TOKEN_COOKIE_NAME"], token_for(other_customer))

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token_for(customer)}"})
        assert resp.json["user"]["id"] == customer.id


# =============================================================================
# WRONG ROLE (403)
# =============================================================================


class TestRoleDenied:

    def test_client_cannot_list_users(self, client, customer, headers_for, db_session):
        resp = client.get("/api/admin/users", headers=headers_for(customer))
        assert resp.status_code == 403
        assert resp.json["kind"] == "Forbidden"

        event = db_session.query(SecurityEvent).filter_by(event_type="ACCESS_DENIED").one()
        assert event.user_id == customer.id
        assert event.resource == "/api/admin/users"
        assert event.success is False

    def test_client_cannot_create_items(self, client, customer, headers_for):
        resp = client.post(
            "/api/items",
            json={"name": "Fake", "price_cents": 100},
            headers=headers_for(customer),
        )
        assert resp.status_code == 403

    def test_client_cannot_confirm(self, client, customer, item, place_order, headers_for):
        order = place_order(customer, [(item, 1)])
        resp = client.post(f"/api/orders/{order.id}/confirm", headers=headers_for(customer))
        assert resp.status_code == 403

    def test_vendor_cannot_use_admin_routes(self, client, vendor, headers_for):
        resp = client.post(
            "/api/admin/coupons",
            json={"code": "X", "discount_type": "PERCENTAGE", "discount_value": 100},
            headers=headers_for(vendor),
        )
        assert resp.status_code == 403


# =============================================================================
# OWNERSHIP (403)
# =============================================================================


class TestOwnership:

    def test_only_owner_cancels(self, client, customer, other_customer, item, place_order, headers_for):
        order = place_order(customer, [(item, 1)])

        resp = client.post(f"/api/orders/{order.id}/cancel", headers=headers_for(other_customer))
        assert resp.status_code == 403

        resp = client.post(f"/api/orders/{order.id}/cancel", headers=headers_for(customer))
        assert resp.status_code == 200

    def test_admin_is_not_owner(self, client, customer, admin, item, place_order, headers_for):
        order = place_order(customer, [(item, 1)])
        resp = client.post(f"/api/orders/{order.id}/cancel", headers=headers_for(admin))
        assert resp.status_code == 403

    def test_vendor_without_lines_cannot_confirm(
        self, client, customer, item, other_vendor, place_order, headers_for, db_session
    ):
        order = place_order(customer, [(item, 1)])

        resp = client.post(f"/api/orders/{order.id}/confirm", headers=headers_for(other_vendor))
        assert resp.status_code == 403

        denied = db_session.query(SecurityEvent).filter_by(
            event_type="ACCESS_DENIED", user_id=other_vendor.id
        ).count()
        assert denied == 1

    def test_stranger_cannot_view_order(self, client, customer, other_customer, item, place_order, headers_for):
        order = place_order(customer, [(item, 1)])
        resp = client.get(f"/api/orders/{order.id}", headers=headers_for(other_customer))
        assert resp.status_code == 403

    def test_unknown_order_is_404_after_auth(self, client, vendor, headers_for):
        resp = client.post("/api/orders/424242/confirm", headers=headers_for(vendor))
        assert resp.status_code == 404
