from models.base_model import Base, BaseModel
from models.role import Role
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum, String
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    first_name = Column(String(64), nullable=True)
    last_name = Column(String(64), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role, name="role"), nullable=False, default=Role.EMPLOYEE)
    is_verified = Column(Boolean, nullable=False, default=False)
    # Single pending OTP slot; both set or both null
    otp_hash = Column(String(255), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)

    courses = relationship("Course", back_populates="instructor", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "(otp_hash IS NULL AND otp_expires_at IS NULL) OR "
            "(otp_hash IS NOT NULL AND otp_expires_at IS NOT NULL)",
            name="ck_users_otp_pair",
        ),
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User {self.email} role={self.role.value if self.role else None}>"
