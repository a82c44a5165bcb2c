"""
OTP Engine: numeric one-time codes, stored only as Argon2 hashes.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from models.base_model import utcnow
from utils.security import hash_password, verify_password

DEFAULT_LENGTH = 6
DEFAULT_TTL = timedelta(minutes=10)


class OtpEngine:
    def __init__(
        self,
        length: int = DEFAULT_LENGTH,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        if length < 4:
            raise ValueError("OTP length must be at least 4 digits")
        self.length = length
        self.ttl = ttl
        self.clock = clock

    def generate(self, length: int | None = None) -> str:
        """Cryptographically random numeric code, zero-padded to length."""
        length = length or self.length
        return str(secrets.randbelow(10 ** length)).zfill(length)

    def issue(self) -> Tuple[str, str, datetime]:
        """Return (raw code, hash, expires_at); the caller persists hash and expiry."""
        raw = self.generate()
        return raw, hash_password(raw), self.clock() + self.ttl

    def is_expired(self, expires_at: Optional[datetime]) -> bool:
        return expires_at is None or self.clock() >= expires_at

    def verify(self, stored_hash: Optional[str], stored_expiry: Optional[datetime], submitted: str) -> bool:
        # Fail closed before doing any hash work
        if not stored_hash or self.is_expired(stored_expiry):
            return False
        return verify_password(submitted, stored_hash)
