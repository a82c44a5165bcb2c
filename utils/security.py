"""
security helpers:
- Argon2 password hashing via argon2-cffi, shared by passwords and OTP codes
- SHA-256 digests for bearer tokens stored at rest
"""
from __future__ import annotations

import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext secret (password or OTP) using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext secret against an Argon2 hash
    """
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


# Verified against when the account does not exist so that an unknown email
# costs the same Argon2 work as a wrong password.
DUMMY_HASH = hash_password("course-auth-timing-dummy")


def digest_token(raw_token: str) -> str:
    """Stable SHA-256 hex digest of a raw bearer token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
