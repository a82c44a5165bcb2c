"""
Credential Store: persisted user records.

Pattern: a thin repository over the shared DBStorage scoped session. Route
and engine code never builds user queries directly.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from models.base_model import utcnow
from models.role import Role
from models.user import User
from services.errors import Conflict

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, storage):
        self.storage = storage

    def _session(self):
        return self.storage.get_session()

    def find_by_email(self, email: str) -> Optional[User]:
        # populate_existing: the scoped session may already hold a stale copy
        return self._session().query(User).populate_existing().filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._session().query(User).populate_existing().filter(User.id == user_id).first()

    def create(
        self,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: Role = Role.EMPLOYEE,
        verified: bool = False,
    ) -> User:
        """Insert a new user. Raises Conflict when the email is taken.

        The pre-check gives the common case a clean error; the unique index on
        email decides the race between two concurrent registrations.
        """
        if self.find_by_email(email) is not None:
            raise Conflict()
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_verified=verified,
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError:
            logger.info("Duplicate registration lost the race for %s", email)
            raise Conflict()
        return user

    def _update(self, user_id: str, *criteria, **values) -> int:
        values["updated_at"] = utcnow()
        session = self._session()
        try:
            count = (
                session.query(User)
                .filter(User.id == user_id, *criteria)
                .update(values)
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        return count

    def update_otp(self, user_id: str, otp_hash: str, expires_at: datetime) -> None:
        """Overwrite the single OTP slot; the newest code is the only live one."""
        self._update(user_id, otp_hash=otp_hash, otp_expires_at=expires_at)

    def clear_otp(self, user_id: str, expected_hash: str | None = None) -> bool:
        """Empty the OTP slot.

        With expected_hash the update only applies while the slot still holds
        that hash, so a code that was superseded by a newer issuance between
        verification and consumption is refused. Returns whether a row changed.
        """
        criteria = [User.otp_hash == expected_hash] if expected_hash is not None else []
        return self._update(user_id, *criteria, otp_hash=None, otp_expires_at=None) == 1

    def set_verified(self, user_id: str) -> None:
        self._update(user_id, is_verified=True)

    def update_password(self, user_id: str, new_hash: str) -> None:
        self._update(user_id, password_hash=new_hash)

    def list_users(self, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        """Newest first, with the total row count for pagination metadata."""
        query = self._session().query(User)
        total = query.count()
        rows = (
            query.order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total
