"""
tests/test_api_auth.py -- The /api/v1/auth blueprint through Flask's test client.

OTP emails are captured with Flask-Mail's record_messages() (the outbox
fixture) and the refresh token is read back from the client's cookie jar.

Coverage:
  - register -> verify-otp -> profile, with the uniform success envelope
  - marshmallow validation renders 422 with per-field details
  - refresh rotates the cookie; the old value is rejected as reuse
  - logout revokes the bearer token and clears the cookie
  - forgot-password answers identically for known and unknown emails
  - outside development, OTP codes are mailed or fail, never logged
"""

from __future__ import annotations

import logging

import pytest

from api import create_app, mail
from models import storage
from services.errors import DeliveryFailed

from conftest import PASSWORD, bearer, otp_from

API = "/api/v1/auth"
COOKIE = "refresh_token"


def _register(client, email="a@x.com", **overrides):
    body = {
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "first_name": "Ada",
        "last_name": "Lovelace",
    }
    body.update(overrides)
    return client.post(f"{API}/register", json=body)


def _verify(client, outbox, email="a@x.com"):
    return client.post(f"{API}/verify-otp", json={"email": email, "otp": otp_from(outbox, email)})


def _signed_in(client, outbox, email="a@x.com"):
    assert _register(client, email).status_code == 201
    resp = _verify(client, outbox, email)
    assert resp.status_code == 200
    return resp.get_json()["data"]["access_token"]


class TestRegistration:
    def test_register_verify_profile(self, client, outbox) -> None:
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["role"] == "EMPLOYEE"
        assert body["data"]["is_verified"] is False
        assert "password_hash" not in body["data"]
        assert outbox[-1].recipients == ["a@x.com"]
        assert outbox[-1].subject == "Verify your account"

        resp = _verify(client, outbox)
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert data["user"]["is_verified"] is True
        assert "refresh_token" not in data
        assert client.get_cookie(COOKIE) is not None

        resp = client.get(f"{API}/profile", headers=bearer(data["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["email"] == "a@x.com"

    def test_email_is_normalized(self, client, outbox) -> None:
        assert _register(client, email="  Mixed@X.com ").status_code == 201
        assert outbox[-1].recipients == ["mixed@x.com"]

    def test_requested_role_is_ignored(self, client, outbox) -> None:
        resp = _register(client, role="ADMIN")
        assert resp.status_code == 201
        assert resp.get_json()["data"]["role"] == "EMPLOYEE"

    def test_duplicate_email(self, client, outbox) -> None:
        _register(client)
        resp = _register(client)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "CONFLICT"

    def test_weak_password_is_rejected(self, client, outbox) -> None:
        resp = _register(client, password="weak", confirm_password="weak")
        assert resp.status_code == 422
        body = resp.get_json()
        assert body["success"] is False
        assert body["error"] == "VALIDATION_ERROR"
        assert "password" in body["details"]
        assert outbox == []

    def test_name_with_special_characters(self, client, outbox) -> None:
        resp = _register(client, first_name="Ada!")
        assert resp.status_code == 422
        assert "first_name" in resp.get_json()["details"]

    def test_password_mismatch(self, client, outbox) -> None:
        resp = _register(client, confirm_password="Different1!")
        assert resp.status_code == 422
        assert "confirm_password" in resp.get_json()["details"]

    def test_wrong_otp(self, client, outbox) -> None:
        _register(client)
        code = otp_from(outbox, "a@x.com")
        wrong = "000000" if code != "000000" else "111111"
        resp = client.post(f"{API}/verify-otp", json={"email": "a@x.com", "otp": wrong})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "INVALID_OTP"


class TestLogin:
    def test_login_then_verify(self, client, outbox) -> None:
        _signed_in(client, outbox)
        resp = client.post(f"{API}/login", json={"email": "a@x.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert "data" not in resp.get_json()
        assert _verify(client, outbox).status_code == 200

    def test_bad_credentials_are_indistinguishable(self, client, outbox) -> None:
        _signed_in(client, outbox)
        wrong = client.post(f"{API}/login", json={"email": "a@x.com", "password": "Wrong1!pass"})
        unknown = client.post(f"{API}/login", json={"email": "nobody@x.com", "password": PASSWORD})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()


class TestRefreshAndLogout:
    def test_refresh_rotates_cookie(self, client, outbox) -> None:
        _signed_in(client, outbox)
        first = client.get_cookie(COOKIE).value

        resp = client.post(f"{API}/refresh")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["access_token"]
        second = client.get_cookie(COOKIE).value
        assert second != first

        # Replaying the consumed token through the body is reuse
        client.delete_cookie(COOKIE)
        resp = client.post(f"{API}/refresh", json={"refresh_token": first})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "REFRESH_TOKEN_REUSED"

        resp = client.post(f"{API}/refresh", json={"refresh_token": second})
        assert resp.status_code == 200

    def test_refresh_without_token(self, client) -> None:
        resp = client.post(f"{API}/refresh")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "UNAUTHORIZED"

    def test_refresh_with_non_object_body(self, client) -> None:
        resp = client.post(f"{API}/refresh", json=["x"])
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "UNAUTHORIZED"

    def test_logout_with_non_object_body(self, client, outbox) -> None:
        access = _signed_in(client, outbox)
        resp = client.post(f"{API}/logout", json=["x"], headers=bearer(access))
        assert resp.status_code == 200

    def test_non_object_body_is_a_validation_error(self, client) -> None:
        resp = client.post(f"{API}/login", json=["x"])
        assert resp.status_code == 422

    def test_logout_revokes_access_token(self, client, outbox) -> None:
        access = _signed_in(client, outbox)
        refresh_token = client.get_cookie(COOKIE).value

        resp = client.post(f"{API}/logout", headers=bearer(access))
        assert resp.status_code == 200
        assert client.get_cookie(COOKIE) is None

        resp = client.get(f"{API}/profile", headers=bearer(access))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "TOKEN_REVOKED"

        resp = client.post(f"{API}/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 401

    def test_logout_all(self, client, outbox) -> None:
        access = _signed_in(client, outbox)
        refresh_token = client.get_cookie(COOKIE).value

        resp = client.post(f"{API}/logout-all", headers=bearer(access))
        assert resp.status_code == 200

        resp = client.post(f"{API}/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 401

    def test_profile_requires_token(self, client) -> None:
        resp = client.get(f"{API}/profile")
        assert resp.status_code == 401
        body = resp.get_json()
        assert body["error"] == "UNAUTHENTICATED"
        assert body["message"] == "No token provided"


class TestPasswordReset:
    def test_forgot_password_is_uniform(self, client, outbox) -> None:
        _signed_in(client, outbox)
        mails_before = len(outbox)
        known = client.post(f"{API}/forgot-password", json={"email": "a@x.com"})
        unknown = client.post(f"{API}/forgot-password", json={"email": "nobody@x.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.get_json() == unknown.get_json()
        assert len(outbox) == mails_before + 1

    def test_forgot_password_is_uniform_when_mail_fails(self, app, client, outbox, monkeypatch) -> None:
        _signed_in(client, outbox)

        def broken(address, code):
            raise DeliveryFailed()

        monkeypatch.setattr(app.extensions["session_engine"].mailer, "deliver", broken)
        known = client.post(f"{API}/forgot-password", json={"email": "a@x.com"})
        unknown = client.post(f"{API}/forgot-password", json={"email": "nobody@x.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.get_json() == unknown.get_json()

    def test_reset_flow(self, client, outbox) -> None:
        _signed_in(client, outbox)
        client.post(f"{API}/forgot-password", json={"email": "a@x.com"})
        resp = client.post(
            f"{API}/reset-password",
            json={"email": "a@x.com", "otp": otp_from(outbox, "a@x.com"), "password": "Bb2@bbbb"},
        )
        assert resp.status_code == 200

        old = client.post(f"{API}/login", json={"email": "a@x.com", "password": PASSWORD})
        assert old.status_code == 401
        new = client.post(f"{API}/login", json={"email": "a@x.com", "password": "Bb2@bbbb"})
        assert new.status_code == 200

    def test_reset_unknown_email(self, client) -> None:
        resp = client.post(
            f"{API}/reset-password",
            json={"email": "nobody@x.com", "otp": "123456", "password": "Bb2@bbbb"},
        )
        assert resp.status_code == 404


class TestProductionMail:
    """Outside development, OTP codes go to the mail server and never to the log."""

    @pytest.fixture
    def prod_client(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MAIL_USERNAME", raising=False)
        app = create_app(
            "production",
            overrides={
                "DATABASE_URL": f"sqlite:///{tmp_path / 'prod.db'}",
                "MAIL_USERNAME": None,
                "BLACKLIST_SWEEP_ENABLED": False,
            },
        )
        yield app, app.test_client()
        storage.dispose()

    def test_console_fallback_is_off(self, prod_client) -> None:
        app, _ = prod_client
        assert app.config["MAIL_CONSOLE_FALLBACK"] is False
        assert app.extensions["session_engine"].mailer.console_fallback is False

    def test_undeliverable_code_fails_instead_of_logging(self, prod_client, monkeypatch, caplog) -> None:
        app, client = prod_client

        def smtp_down(message):
            raise ConnectionRefusedError("no mail server")

        monkeypatch.setattr(mail, "send", smtp_down)
        caplog.set_level(logging.INFO)

        resp = _register(client)
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "DELIVERY_FAILED"
        assert "[EMAIL DEV]" not in caplog.text
        assert "Your verification OTP" not in caplog.text


def test_development_logs_codes_without_smtp(tmp_path, monkeypatch, caplog) -> None:
    monkeypatch.delenv("MAIL_USERNAME", raising=False)
    app = create_app(
        "development",
        overrides={
            "DATABASE_URL": f"sqlite:///{tmp_path / 'dev.db'}",
            "MAIL_USERNAME": None,
            "BLACKLIST_SWEEP_ENABLED": False,
        },
    )
    try:
        caplog.set_level(logging.INFO, logger="services.mailer")
        assert _register(app.test_client()).status_code == 201
        assert "[EMAIL DEV] To: a@x.com" in caplog.text
    finally:
        storage.dispose()
