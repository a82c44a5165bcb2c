"""
Auth services: credential store, OTP engine, token codec, revocation store,
the session engine that composes them, and the access guard.
"""
from datetime import timedelta

from services.credentials import CredentialStore
from services.guard import AccessGuard
from services.otp import OtpEngine
from services.revocation import RevocationStore
from services.sessions import SessionEngine
from services.tokens import TokenCodec


def build_services(config, storage, mailer):
    """Wire the engine and guard from a Flask-style config mapping."""
    tokens = TokenCodec(
        secret=config["JWT_SECRET"],
        algorithm=config.get("JWT_ALGORITHM", "HS256"),
        issuer=config.get("JWT_ISSUER", "course-auth-api"),
        access_ttl=config.get("JWT_ACCESS_EXPIRES", timedelta(hours=1)),
        refresh_ttl=config.get("JWT_REFRESH_EXPIRES", timedelta(days=3)),
    )
    revocations = RevocationStore(storage)
    engine = SessionEngine(
        credentials=CredentialStore(storage),
        otp=OtpEngine(
            length=config.get("OTP_LENGTH", 6),
            ttl=config.get("OTP_TTL", timedelta(minutes=10)),
        ),
        tokens=tokens,
        revocations=revocations,
        mailer=mailer,
        forgot_password_delay=config.get("FORGOT_PASSWORD_DELAY_SECONDS", 1.0),
    )
    return engine, AccessGuard(tokens, revocations)
