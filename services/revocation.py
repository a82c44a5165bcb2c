"""
Revocation Store: the refresh-token table and the access-token blacklist.

consume_refresh / rotate_refresh are the linchpin of rotation: a single
conditional DELETE whose rowcount says whether the token was still live.
Two callers racing on the same token are serialized by the database row (or
file) lock, so exactly one of them sees rowcount == 1. Never replace this with
a SELECT followed by a DELETE.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models.base_model import utcnow
from models.blacklisted_token import BlacklistedToken
from models.refresh_token import RefreshToken
from utils.security import digest_token

logger = logging.getLogger(__name__)


class RevocationStore:
    def __init__(self, storage):
        self.storage = storage

    def _session(self):
        return self.storage.get_session()

    # -- refresh tokens ---------------------------------------------------

    def store_refresh(self, token_hash: str, user_id: str, expires_at: datetime) -> None:
        self.storage.new(RefreshToken(token_hash=token_hash, user_id=user_id, expires_at=expires_at))
        self.storage.save()

    def _delete_refresh(self, session, token_hash: str) -> int:
        return (
            session.query(RefreshToken)
            .filter(RefreshToken.token_hash == token_hash)
            .delete(synchronize_session=False)
        )

    def consume_refresh(self, token_hash: str) -> bool:
        """Delete the row for token_hash; True only if it existed."""
        session = self._session()
        try:
            deleted = self._delete_refresh(session, token_hash)
            session.commit()
        except Exception:
            session.rollback()
            raise
        return deleted == 1

    def rotate_refresh(self, old_hash: str, new_hash: str, user_id: str, expires_at: datetime) -> bool:
        """Consume old_hash and store new_hash in one transaction.

        Returns False (and writes nothing) when old_hash was already gone.
        """
        session = self._session()
        try:
            if self._delete_refresh(session, old_hash) != 1:
                session.rollback()
                return False
            session.add(RefreshToken(token_hash=new_hash, user_id=user_id, expires_at=expires_at))
            session.commit()
        except Exception:
            session.rollback()
            raise
        return True

    def delete_refresh(self, token_hash: str, user_id: str) -> int:
        """Scoped logout: drop one token, and only if it belongs to user_id."""
        session = self._session()
        try:
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.token_hash == token_hash, RefreshToken.user_id == user_id)
                .delete(synchronize_session=False)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        return deleted

    def delete_all_refresh_for(self, user_id: str) -> int:
        session = self._session()
        try:
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.user_id == user_id)
                .delete(synchronize_session=False)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        return deleted

    def count_refresh_for(self, user_id: str) -> int:
        return self._session().query(RefreshToken).filter(RefreshToken.user_id == user_id).count()

    # -- access-token blacklist -------------------------------------------

    def blacklist_access(self, raw_token: str, expires_at: datetime, user_id: str | None = None) -> None:
        """Revoke an access token until its natural expiry. Idempotent."""
        self.storage.new(
            BlacklistedToken(token_hash=digest_token(raw_token), user_id=user_id, expires_at=expires_at)
        )
        try:
            self.storage.save()
        except IntegrityError:
            # Unique token_hash: the token is already on the list
            logger.debug("Access token for user %s was already blacklisted", user_id)

    def is_blacklisted(self, raw_token: str) -> bool:
        token_hash = digest_token(raw_token)
        return (
            self._session().query(BlacklistedToken.id)
            .filter(BlacklistedToken.token_hash == token_hash)
            .first()
            is not None
        )

    # -- housekeeping -------------------------------------------------------

    def _sweep(self, model) -> int:
        session = self._session()
        try:
            removed = (
                session.query(model)
                .filter(model.expires_at < utcnow())
                .delete(synchronize_session=False)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        return removed

    def sweep_expired_blacklist(self) -> int:
        """Drop blacklist rows whose token has expired on its own. Safe to run at any time."""
        removed = self._sweep(BlacklistedToken)
        logger.info("Cleaned up %d expired blacklisted tokens", removed)
        return removed

    def sweep_expired_refresh(self) -> int:
        removed = self._sweep(RefreshToken)
        logger.info("Cleaned up %d expired refresh tokens", removed)
        return removed
