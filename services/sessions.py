"""
Session Engine: the per-user session/token lifecycle.

    Unregistered --register--> PendingVerification --verify_otp--> Verified

Every login is two steps: login() checks the password and mails a code,
verify_otp() checks the code and is the only place tokens are minted from
credentials. The same verify_otp() call also completes a fresh registration,
so `is_verified` flips on the first successful code and login() does not gate
on it.

Refresh tokens are single use. refresh() rotates: the presented token's row is
deleted and the replacement inserted in one transaction, and a token whose
row is already gone is reported as reuse.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from models.base_model import utcnow
from models.role import Role
from models.schemas.user import UserOutSchema
from services.errors import (
    Conflict,
    DeliveryFailed,
    InvalidCredentials,
    InvalidInput,
    InvalidOtp,
    InvalidSession,
    InvalidToken,
    NotFound,
    OtpExpired,
    RefreshTokenReused,
    Unauthorized,
)
from services.tokens import REFRESH
from utils.security import DUMMY_HASH, hash_password, verify_password

logger = logging.getLogger(__name__)

user_out_schema = UserOutSchema()


class SessionEngine:
    def __init__(
        self,
        credentials,
        otp,
        tokens,
        revocations,
        mailer,
        forgot_password_delay: float = 1.0,
    ):
        self.credentials = credentials
        self.otp = otp
        self.tokens = tokens
        self.revocations = revocations
        self.mailer = mailer
        self.forgot_password_delay = forgot_password_delay

    # -- helpers ------------------------------------------------------------

    def _issue_otp(self, user) -> None:
        """Overwrite the user's OTP slot and mail the new code."""
        raw, otp_hash, expires_at = self.otp.issue()
        self.credentials.update_otp(user.id, otp_hash, expires_at)
        # Raises DeliveryFailed; the stored code stays valid for a resend
        self.mailer.deliver(user.email, raw)

    def _check_otp(self, user, submitted: str) -> str:
        """Raise OtpExpired / InvalidOtp; return the hash that matched."""
        if self.otp.is_expired(user.otp_expires_at):
            raise OtpExpired()
        if not self.otp.verify(user.otp_hash, user.otp_expires_at, submitted):
            raise InvalidOtp()
        return user.otp_hash

    def _consume_otp(self, user, matched_hash: str) -> None:
        # A newer code issued since the check wins; this one is spent
        if not self.credentials.clear_otp(user.id, expected_hash=matched_hash):
            raise InvalidOtp()

    def _mint_pair(self, subject) -> tuple[str, str]:
        return self.tokens.sign_access(subject), self.tokens.sign_refresh(subject)

    def _refresh_expiry(self) -> datetime:
        return utcnow() + self.tokens.refresh_ttl

    # -- operations -----------------------------------------------------------

    def register(self, email: str, password: str, confirm_password: str, first_name: str, last_name: str) -> dict:
        if self.credentials.find_by_email(email) is not None:
            raise Conflict()
        if password != confirm_password:
            raise InvalidInput(
                "Passwords do not match",
                details={"confirm_password": ["Passwords do not match"]},
            )
        user = self.credentials.create(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=Role.EMPLOYEE,
            verified=False,
        )
        logger.info("Registered user %s, pending verification", user.id)
        self._issue_otp(user)
        return user_out_schema.dump(user)

    def login(self, email: str, password: str) -> None:
        user = self.credentials.find_by_email(email)
        if user is None:
            # Same Argon2 cost as a wrong password
            verify_password(password, DUMMY_HASH)
            logger.warning("Login attempt for unknown account")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.warning("Failed password check for user %s", user.id)
            raise InvalidCredentials()
        self._issue_otp(user)

    def verify_otp(self, email: str, otp: str) -> dict:
        user = self.credentials.find_by_email(email)
        if user is None:
            raise InvalidCredentials()
        matched = self._check_otp(user, otp)
        self._consume_otp(user, matched)
        if not user.is_verified:
            self.credentials.set_verified(user.id)
            logger.info("User %s verified", user.id)

        access_token, refresh_token = self._mint_pair(user)
        self.revocations.store_refresh(self.tokens.hash(refresh_token), user.id, self._refresh_expiry())
        logger.info("Issued session tokens for user %s", user.id)
        return {
            "user": user_out_schema.dump(user),
            "access_token": access_token,
            "refresh_token": refresh_token,
        }

    def resend_otp(self, email: str) -> None:
        user = self.credentials.find_by_email(email)
        if user is None:
            raise InvalidCredentials()
        self._issue_otp(user)

    def forgot_password(self, email: str) -> None:
        """Same outcome whether or not the account exists."""
        user = self.credentials.find_by_email(email)
        if user is None:
            # Stand-in for the hashing and mail work of the found path
            time.sleep(self.forgot_password_delay)
            return
        try:
            self._issue_otp(user)
        except DeliveryFailed:
            # A 502 here would reveal that the account exists
            logger.error("Password reset OTP for user %s could not be delivered", user.id)

    def reset_password(self, email: str, otp: str, new_password: str) -> None:
        user = self.credentials.find_by_email(email)
        if user is None:
            raise NotFound()
        matched = self._check_otp(user, otp)
        self._consume_otp(user, matched)
        self.credentials.update_password(user.id, hash_password(new_password))
        revoked = self.revocations.delete_all_refresh_for(user.id)
        logger.info("Password reset for user %s, revoked %d refresh tokens", user.id, revoked)

    def refresh(self, raw_refresh_token: Optional[str]) -> dict:
        if not raw_refresh_token:
            raise Unauthorized("Refresh token is required")
        try:
            claims = self.tokens.verify(raw_refresh_token, expected_type=REFRESH)
        except InvalidToken:
            raise Unauthorized("Invalid or expired refresh token")

        access_token, refresh_token = self._mint_pair(claims)
        rotated = self.revocations.rotate_refresh(
            self.tokens.hash(raw_refresh_token),
            self.tokens.hash(refresh_token),
            claims.id,
            self._refresh_expiry(),
        )
        if not rotated:
            logger.warning(
                "Refresh token reuse detected for user %s (jti=%s)", claims.id, claims.jti
            )
            raise RefreshTokenReused()
        return {"access_token": access_token, "refresh_token": refresh_token}

    def logout(
        self,
        access_token: Optional[str],
        user_id: Optional[str],
        exp: Optional[int],
        refresh_token: Optional[str] = None,
    ) -> None:
        if not access_token or not user_id or not exp:
            raise InvalidSession()
        self.revocations.blacklist_access(access_token, _exp_to_datetime(exp), user_id)
        if refresh_token:
            self.revocations.delete_refresh(self.tokens.hash(refresh_token), user_id)
        logger.info("User %s logged out", user_id)

    def logout_all(self, access_token: Optional[str], user_id: Optional[str], exp: Optional[int]) -> None:
        if not access_token or not user_id or not exp:
            raise InvalidSession()
        self.revocations.blacklist_access(access_token, _exp_to_datetime(exp), user_id)
        revoked = self.revocations.delete_all_refresh_for(user_id)
        logger.info("User %s logged out everywhere, revoked %d refresh tokens", user_id, revoked)

    def get_profile(self, user_id: str) -> dict:
        user = self.credentials.find_by_id(user_id)
        if user is None:
            raise NotFound()
        return user_out_schema.dump(user)


def _exp_to_datetime(exp: int) -> datetime:
    return datetime.fromtimestamp(int(exp), tz=timezone.utc).replace(tzinfo=None)
