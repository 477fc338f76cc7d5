"""Domain 1: Accounts and role profiles"""

from sqlalchemy import Column, String, ForeignKey, Uuid, Enum
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, StatusMixin
from app.models.enums import UserRole, enum_values


class User(BaseModel, StatusMixin):
    """
    Account record shared by every role.
    Exactly one role-specific profile row hangs off each account.
    """
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        index=True,
    )

    director_profile = relationship("Director", back_populates="user", uselist=False)
    instructor_profile = relationship("Instructor", back_populates="user", uselist=False)
    student_profile = relationship("Student", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        """Get user's full name"""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"


class Director(BaseModel):
    """Director profile. Directors override grades and see global stats."""
    __tablename__ = "directors"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    phone = Column(String(50), nullable=True)

    user = relationship("User", back_populates="director_profile")

    def __repr__(self) -> str:
        return f"<Director {self.user_id}>"


class Instructor(BaseModel):
    """Instructor profile. Creates works, forms groups and grades."""
    __tablename__ = "instructors"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    specialty = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)

    user = relationship("User", back_populates="instructor_profile")

    def __repr__(self) -> str:
        return f"<Instructor {self.user_id}>"


class Student(BaseModel):
    """Student profile, attached to the cohort the student was admitted with."""
    __tablename__ = "students"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    cohort_id = Column(Uuid(as_uuid=True), ForeignKey("cohorts.id", ondelete="SET NULL"), nullable=True, index=True)
    student_number = Column(String(20), nullable=True)

    user = relationship("User", back_populates="student_profile")
    cohort = relationship("Cohort", back_populates="students")

    def __repr__(self) -> str:
        return f"<Student {self.user_id}>"
