"""
Account moderation tests: ban, unban, role changes and session revocation.
"""

import pytest

from marketplace.errors import Forbidden, InvalidToken, NotFound, UserBanned, ValidationFailed
from marketplace.models import Role, SecurityEvent
from marketplace.services import moderation_service, session_service


class TestBan:

    def test_ban_revokes_sessions(self, db_session, admin, customer, token_for):
        token = token_for(customer)

        user = moderation_service.ban_user(customer.id, admin.id, reason="spam")

        assert user.is_banned is True
        assert user.banned_at is not None
        with pytest.raises(InvalidToken):
            session_service.validate_token(token)
        event = db_session.query(SecurityEvent).filter_by(event_type="USER_BANNED").one()
        assert event.user_id == admin.id
        assert event.resource == f"user:{customer.id}"

    def test_unban_does_not_revive_old_tokens(self, db_session, admin, customer, token_for):
        token = token_for(customer)
        moderation_service.ban_user(customer.id, admin.id)
        moderation_service.unban_user(customer.id, admin.id)

        with pytest.raises(InvalidToken):
            session_service.validate_token(token)
        assert session_service.validate_token(token_for(customer)).user_id == customer.id

    def test_banned_user_tokens_issued_later_still_rejected(self, db_session, admin, customer, token_for):
        moderation_service.ban_user(customer.id, admin.id)
        with pytest.raises(UserBanned):
            session_service.validate_token(token_for(customer))

    def test_admin_cannot_ban_self(self, db_session, admin):
        with pytest.raises(Forbidden):
            moderation_service.ban_user(admin.id, admin.id)

    def test_unknown_user(self, db_session, admin):
        with pytest.raises(NotFound):
            moderation_service.ban_user(4242, admin.id)

    def test_ban_over_http(self, client, admin, customer, headers_for):
        victim = headers_for(customer)

        resp = client.post(f"/api/admin/users/{customer.id}/ban", json={"reason": "fraud"}, headers=headers_for(admin))
        assert resp.status_code == 200
        assert resp.json["user"]["is_banned"] is True

        assert client.get("/api/auth/me", headers=victim).status_code == 401


class TestRoles:

    def test_promote_client_to_vendor(self, db_session, admin, customer, token_for):
        token = token_for(customer)

        moderation_service.change_role(customer.id, "vendor", admin.id)

        assert session_service.validate_token(token).role is Role.VENDOR
        event = db_session.query(SecurityEvent).filter_by(event_type="ROLE_CHANGED").one()
        assert event.reason == "client -> vendor"

    def test_admin_cannot_demote_self(self, db_session, admin):
        with pytest.raises(Forbidden):
            moderation_service.change_role(admin.id, "client", admin.id)

    def test_unknown_role(self, db_session, admin, customer):
        with pytest.raises(ValidationFailed):
            moderation_service.change_role(customer.id, "superuser", admin.id)

    def test_promoted_vendor_can_list_items_over_http(self, client, admin, customer, headers_for):
        headers = headers_for(customer)
        denied = client.post("/api/items", json={"name": "Vase", "price_cents": 900}, headers=headers)
        assert denied.status_code == 403

        client.post(f"/api/admin/users/{customer.id}/role", json={"role": "vendor"}, headers=headers_for(admin))

        allowed = client.post("/api/items", json={"name": "Vase", "price_cents": 900}, headers=headers)
        assert allowed.status_code == 201


class TestListingAndRevocation:

    def test_filter_users(self, client, admin, customer, vendor, headers_for):
        resp = client.get("/api/admin/users?role=vendor", headers=headers_for(admin))
        assert [u["id"] for u in resp.json["users"]] == [vendor.id]

        resp = client.get("/api/admin/users?role=wizard", headers=headers_for(admin))
        assert resp.status_code == 400

    def test_filter_banned(self, db_session, admin, customer, vendor):
        moderation_service.ban_user(vendor.id, admin.id)
        assert [u.id for u in moderation_service.list_users(banned=True)] == [vendor.id]

    def test_revoke_sessions(self, client, admin, customer, token_for, headers_for):
        tokens = [token_for(customer) for _ in range(2)]

        resp = client.post(f"/api/admin/users/{customer.id}/revoke-sessions", headers=headers_for(admin))
        assert resp.json["revoked"] == 2

        for token in tokens:
            assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


class TestCatalogAndAuditLog:

    def test_create_category_is_idempotent_by_title(self, client, admin, headers_for):
        headers = headers_for(admin)

        first = client.post("/api/admin/categories", json={"title": "Kitchen"}, headers=headers)
        second = client.post("/api/admin/categories", json={"title": " Kitchen "}, headers=headers)

        assert first.status_code == 201
        assert second.json["category"]["id"] == first.json["category"]["id"]

    def test_category_requires_title(self, client, admin, headers_for):
        resp = client.post("/api/admin/categories", json={}, headers=headers_for(admin))
        assert resp.status_code == 400

    def test_security_log_filters(self, client, admin, customer, vendor, headers_for):
        client.get("/api/admin/users", headers=headers_for(customer))
        moderation_service.ban_user(vendor.id, admin.id)

        resp = client.get("/api/admin/security-events?event_type=ACCESS_DENIED", headers=headers_for(admin))

        assert resp.status_code == 200
        assert [e["user_id"] for e in resp.json["events"]] == [customer.id]
        assert resp.json["events"][0]["success"] is False
