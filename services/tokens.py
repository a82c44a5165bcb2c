"""
Token Codec: access and refresh JWTs via PyJWT.

Both token kinds carry the same fixed claim set and are told apart by the
`type` claim, so a refresh token is never accepted as a bearer credential and
vice versa. Every token gets a random `jti`, which keeps two tokens minted for
the same user in the same second distinct (their storage hashes must differ).
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from models.role import Role
from services.errors import InvalidToken, TokenExpired
from utils.security import digest_token

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    first_name: str | None
    last_name: str | None
    role: Role
    type: str
    jti: str
    iat: int
    exp: int

    @property
    def id(self) -> str:
        return self.sub

    @property
    def expires_at(self) -> datetime:
        """exp as a naive UTC datetime, the storage convention."""
        return datetime.fromtimestamp(self.exp, tz=timezone.utc).replace(tzinfo=None)


class TokenCodec:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "course-auth-api",
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=3),
    ):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _sign(self, user, token_type: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        role = Role.parse(user.role)
        payload = {
            "iss": self.issuer,
            "sub": str(user.id),
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": role.value,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def sign_access(self, user) -> str:
        """user: anything with id, email, first_name, last_name and role (a User or TokenClaims)."""
        return self._sign(user, ACCESS, self.access_ttl)

    def sign_refresh(self, user) -> str:
        return self._sign(user, REFRESH, self.refresh_ttl)

    def verify(self, token: str, expected_type: str = ACCESS) -> TokenClaims:
        """
        Decode and validate a JWT into TokenClaims.
        Raises TokenExpired on a lapsed exp, InvalidToken on anything else.
        """
        try:
            decoded: Dict[str, Any] = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "jti"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired("Token expired")
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(f"Invalid token: {exc}")

        if decoded.get("type") != expected_type:
            raise InvalidToken("Wrong token type")
        try:
            return TokenClaims(
                sub=str(decoded["sub"]),
                email=decoded["email"],
                first_name=decoded.get("first_name"),
                last_name=decoded.get("last_name"),
                role=Role.parse(decoded["role"]),
                type=decoded["type"],
                jti=decoded["jti"],
                iat=int(decoded["iat"]),
                exp=int(decoded["exp"]),
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise InvalidToken(f"Malformed claims: {exc}")

    @staticmethod
    def hash(raw_token: str) -> str:
        """Storage key for a token, so the database never holds a usable bearer secret."""
        return digest_token(raw_token)
