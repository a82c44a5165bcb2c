"""
tests/conftest.py -- Shared fixtures.

Every test gets its own file-backed SQLite database under tmp_path. A file
(not :memory:) is used because the concurrency tests run the engine from
several threads, each with its own scoped session and pooled connection;
an in-memory database would be private to one connection.

Two entry points:
  - engine: a SessionEngine wired to a RecordingMailer and a FakeClock for
    direct service-level tests.
  - client/outbox: the Flask app built by create_app("testing"), with
    Flask-Mail's record_messages() capturing outgoing OTP emails.
"""

from __future__ import annotations

import re
from datetime import timedelta

import pytest

from api import create_app, mail
from models import storage
from models.base_model import utcnow
from models.role import Role
from services.credentials import CredentialStore
from services.guard import AccessGuard
from services.otp import OtpEngine
from services.revocation import RevocationStore
from services.sessions import SessionEngine
from services.tokens import TokenCodec
from utils.security import hash_password

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"
PASSWORD = "Aa1!aaaa"

# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class RecordingMailer:
    """Captures (address, code) pairs instead of sending mail."""

    def __init__(self):
        self.sent = []

    def deliver(self, address, code):
        self.sent.append((address, code))

    def last_code(self, address):
        for to, code in reversed(self.sent):
            if to == address:
                return code
        raise AssertionError(f"no code delivered to {address}")


class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Service-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db(tmp_path):
    storage.configure(f"sqlite:///{tmp_path / 'auth.db'}")
    storage.reload()
    yield storage
    storage.dispose()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tokens():
    return TokenCodec(secret=TEST_SECRET)


@pytest.fixture
def credentials(db):
    return CredentialStore(db)


@pytest.fixture
def revocations(db):
    return RevocationStore(db)


@pytest.fixture
def engine(credentials, revocations, tokens, mailer, clock):
    return SessionEngine(
        credentials=credentials,
        otp=OtpEngine(clock=clock),
        tokens=tokens,
        revocations=revocations,
        mailer=mailer,
        forgot_password_delay=0,
    )


@pytest.fixture
def guard(tokens, revocations):
    return AccessGuard(tokens, revocations)


@pytest.fixture
def logged_in(engine, mailer):
    """Register and verify a@x.com; returns the verify_otp result."""
    engine.register("a@x.com", PASSWORD, PASSWORD, "Ada", "Lovelace")
    return engine.verify_otp("a@x.com", mailer.last_code("a@x.com"))


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={"DATABASE_URL": f"sqlite:///{tmp_path / 'api.db'}"})
    yield app
    storage.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    with mail.record_messages() as outbox:
        yield outbox


def otp_from(outbox, address):
    """Pull the most recent code mailed to address out of the recorded outbox."""
    for message in reversed(outbox):
        if address in message.recipients:
            match = re.search(r"(\d{6})", message.body)
            assert match, message.body
            return match.group(1)
    raise AssertionError(f"no email sent to {address}")


@pytest.fixture
def make_user(app):
    """Create a verified user with a role and return (user_id, access_token)."""

    def _make(email, role=Role.EMPLOYEE, password=PASSWORD):
        with app.app_context():
            engine = app.extensions["session_engine"]
            user = engine.credentials.create(
                email=email,
                password_hash=hash_password(password),
                first_name="Test",
                last_name=role.value.title(),
                role=role,
                verified=True,
            )
            return user.id, engine.tokens.sign_access(user)

    return _make


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
