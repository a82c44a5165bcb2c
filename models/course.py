from sqlalchemy import Column, String, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Course(BaseModel, Base):
    __tablename__ = "courses"

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    instructor_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    instructor = relationship("User", back_populates="courses")

    __table_args__ = (
        Index("ix_courses_instructor_id", "instructor_id"),
    )
