from sqlalchemy import Column, String, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class BlacklistedToken(BaseModel, Base):
    __tablename__ = "blacklisted_tokens"

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    # Audit only; nulled when the user is deleted
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<BlacklistedToken user={self.user_id} expires_at={self.expires_at}>"
