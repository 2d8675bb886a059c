"""
Auth API tests.

Verifies signup, login (multi-device), logout of one device, logout-all,
token refresh, session listing and password change over HTTP.
"""

import pytest

from marketplace.models import SecurityEvent, User


def _login(client, email="carla@example.com", password="Password123!", device="laptop"):
    return client.post("/api/auth/login", json={"email": email, "password": password, "device": device})


class TestSignup:

    def test_signup_client(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "New Person",
            "email": "New@Example.com",
            "password": "Password123!",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["email"] == "new@example.com"
        assert resp.json["user"]["role"] == "client"
        assert resp.headers["X-Auth-Token"] == resp.json["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {resp.json['token']}"})
        assert me.json["user"]["email"] == "new@example.com"

    def test_vendor_signup_forbidden(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "Shop", "email": "shop@example.com", "password": "Password123!", "role": "vendor",
        })
        assert resp.status_code == 403
        assert db_session.query(User).filter_by(email="shop@example.com").first() is None

    def test_admin_signup_forbidden(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "Sneaky", "email": "sneaky@example.com", "password": "Password123!", "role": "admin",
        })
        assert resp.status_code == 403
        assert db_session.query(User).filter_by(email="sneaky@example.com").first() is None

    def test_duplicate_email(self, client, customer):
        resp = client.post("/api/auth/signup", json={
            "name": "Again", "email": customer.email, "password": "Password123!",
        })
        assert resp.status_code == 400

    def test_weak_password(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "Weak", "email": "weak@example.com", "password": "password",
        })
        assert resp.status_code == 400
        assert resp.json["kind"] == "ValidationFailed"

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/signup", json={"email": "x@example.com"}).status_code == 400

    @pytest.mark.parametrize("field,value", [
        ("email", 123),
        ("password", ["Password123!"]),
        ("name", {"first": "Ann"}),
        ("role", 7),
    ])
    def test_non_string_fields(self, client, db_session, field, value):
        body = {"name": "Ann", "email": "ann@example.com", "password": "Password123!"}
        body[field] = value

        resp = client.post("/api/auth/signup", json=body)

        assert resp.status_code == 400
        assert resp.json["kind"] == "ValidationFailed"

    def test_password_over_bcrypt_limit(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "Long", "email": "long@example.com", "password": "Aa1!" + "x" * 100,
        })
        assert resp.status_code == 400
        assert resp.json["kind"] == "ValidationFailed"
        assert "72 bytes" in resp.json["message"]

    def test_non_object_body(self, client, db_session):
        assert client.post("/api/auth/signup", json=["ann@example.com"]).status_code == 400


class TestLogin:

    def test_login_returns_token(self, client, customer):
        resp = _login(client)
        assert resp.status_code == 200
        assert len(resp.json["token"]) == 64
        assert resp.json["session"]["device_info"] == "laptop"

    def test_wrong_password(self, client, customer, db_session):
        resp = _login(client, password="Wrong123!")
        assert resp.status_code == 401

        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.reason == "Invalid credentials"

    @pytest.mark.parametrize("body", [
        {"email": 123, "password": "Password123!"},
        {"email": "carla@example.com", "password": 123456789},
    ])
    def test_non_string_credentials(self, client, customer, body):
        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json["kind"] == "ValidationFailed"

    def test_overlong_password_is_just_wrong(self, client, customer):
        assert _login(client, password="Password123!" + "x" * 80).status_code == 401

    def test_unknown_email_same_answer(self, client, customer):
        unknown = _login(client, email="nobody@example.com")
        wrong = _login(client, password="Wrong123!")
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json == wrong.json

    def test_banned_user_cannot_login(self, client, customer, db_session):
        customer.is_banned = True
        db_session.commit()

        resp = _login(client)
        assert resp.status_code == 403

    def test_login_twice_keeps_both_sessions(self, client, customer):
        phone = _login(client, device="phone").json["token"]
        laptop = _login(client, device="laptop").json["token"]

        resp = client.get("/api/auth/sessions", headers={"Authorization": f"Bearer {laptop}"})
        sessions = resp.json["sessions"]
        assert len(sessions) == 2
        assert [s["current"] for s in sessions] == [False, True]

        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {phone}"}).status_code == 200


class TestLogout:

    def test_logout_revokes_only_presented_token(self, client, customer):
        phone = _login(client, device="phone").json["token"]
        laptop = _login(client, device="laptop").json["token"]

        resp = client.post("/api/auth/logout", headers={"Authorization": f"Bearer {phone}"})
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {phone}"}).status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {laptop}"}).status_code == 200

    def test_logout_all(self, client, customer):
        phone = _login(client, device="phone").json["token"]
        laptop = _login(client, device="laptop").json["token"]

        resp = client.post("/api/auth/logout-all", headers={"Authorization": f"Bearer {laptop}"})
        assert resp.json["revoked"] == 2

        for token in (phone, laptop):
            assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_refresh_token(self, client, customer):
        old = _login(client).json["token"]

        resp = client.get("/api/auth/refresh-token", headers={"Authorization": f"Bearer {old}"})
        assert resp.status_code == 200
        new = resp.json["token"]

        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {old}"}).status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {new}"}).status_code == 200


class TestChangePassword:

    def test_change_password_logs_out_other_devices(self, client, customer, db_session):
        phone = _login(client, device="phone").json["token"]
        laptop = _login(client, device="laptop").json["token"]

        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": "Password123!", "new_password": "Br4ndNew!pass"},
            headers={"Authorization": f"Bearer {laptop}"},
        )
        assert resp.status_code == 200
        fresh = resp.json["token"]

        for token in (phone, laptop):
            assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {fresh}"}).status_code == 200
        assert _login(client, password="Br4ndNew!pass").status_code == 200
        assert db_session.query(SecurityEvent).filter_by(event_type="PASSWORD_CHANGED").count() == 1

    def test_wrong_current_password(self, client, customer):
        token = _login(client).json["token"]
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": "Nope123!", "new_password": "Br4ndNew!pass"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 400
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_new_password_over_bcrypt_limit(self, client, customer):
        token = _login(client).json["token"]
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": "Password123!", "new_password": "Br4nd!" + "é" * 40},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 400
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_non_string_new_password(self, client, customer):
        token = _login(client).json["token"]
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": "Password123!", "new_password": 12345678},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 400
        assert resp.json["kind"] == "ValidationFailed"
