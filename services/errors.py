"""
Typed failures raised by the services layer.

Each AuthError carries a stable machine code, the HTTP status the API layer
renders it with, and a user-safe message. Messages never reveal whether an
account exists on the login and forgot-password paths.
"""
from __future__ import annotations


class AuthError(Exception):
    code = "INTERNAL_ERROR"
    status = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class Conflict(AuthError):
    code = "CONFLICT"
    status = 409
    message = "User already exists"


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    status = 401
    message = "Invalid credentials"


class OtpExpired(AuthError):
    code = "OTP_EXPIRED"
    status = 400
    message = "OTP expired"


class InvalidOtp(AuthError):
    code = "INVALID_OTP"
    status = 400
    message = "Invalid OTP"


class NotFound(AuthError):
    code = "NOT_FOUND"
    status = 404
    message = "User not found"


class Unauthorized(AuthError):
    code = "UNAUTHORIZED"
    status = 401
    message = "Unauthorized"


class Unauthenticated(Unauthorized):
    code = "UNAUTHENTICATED"
    message = "Invalid or expired token"


class TokenRevoked(Unauthorized):
    code = "TOKEN_REVOKED"
    message = "Token has been revoked"


class RefreshTokenReused(Unauthorized):
    """A refresh token whose row is gone: already rotated, logged out, or forged."""
    code = "REFRESH_TOKEN_REUSED"
    message = "Refresh token reused or invalid"


class InvalidSession(Unauthorized):
    code = "INVALID_SESSION"
    message = "Invalid session"


class Forbidden(AuthError):
    code = "FORBIDDEN"
    status = 403
    message = "Forbidden: Insufficient permissions"


class InvalidInput(AuthError):
    code = "VALIDATION_ERROR"
    status = 422
    message = "Invalid input"


class DeliveryFailed(AuthError):
    code = "DELIVERY_FAILED"
    status = 502
    message = "Could not deliver the verification code, please request a new one"


# Token codec failures. The engine and guard translate these into Unauthorized
# variants; they never reach the HTTP layer on their own.

class InvalidToken(Exception):
    """Bad signature, wrong issuer or type, or malformed claims."""


class TokenExpired(InvalidToken):
    """Signature is fine but the exp claim has passed."""
