"""
Access Guard: bearer-token authentication and the role gate.

Framework-free so it can be exercised directly; utils.decorators adapts it
to Flask routes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from models.role import Role
from services.errors import Forbidden, InvalidToken, TokenRevoked, Unauthenticated
from services.tokens import ACCESS

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    role: Role
    exp: int
    iat: int


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AccessGuard:
    def __init__(self, tokens, revocations):
        self.tokens = tokens
        self.revocations = revocations

    def authenticate(self, authorization: Optional[str]) -> tuple[Identity, str]:
        """Return (identity, raw token) for a valid, unrevoked access token."""
        token = extract_bearer(authorization)
        if token is None:
            raise Unauthenticated("No token provided")
        # Blacklist first: cheaper than a signature check and closes the
        # window between logout and natural expiry.
        if self.revocations.is_blacklisted(token):
            raise TokenRevoked()
        try:
            claims = self.tokens.verify(token, expected_type=ACCESS)
        except InvalidToken as exc:
            logger.debug("Rejected bearer token: %s", exc)
            raise Unauthenticated()
        identity = Identity(id=claims.id, email=claims.email, role=claims.role, exp=claims.exp, iat=claims.iat)
        return identity, token

    @staticmethod
    def authorize(identity: Optional[Identity], allowed: Iterable[Role]) -> Identity:
        allowed = frozenset(allowed)
        if not allowed:
            raise ValueError("role gate needs at least one allowed role")
        if identity is None:
            raise Unauthenticated("Unauthorized")
        if identity.role not in allowed:
            raise Forbidden()
        return identity
