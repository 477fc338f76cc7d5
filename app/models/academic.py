from sqlalchemy import Column, String, Integer, Table, ForeignKey, DateTime, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.utils.time import get_utc_now


class Cohort(BaseModel):
    """
    A named intake of students sharing a program and timeframe.
    """
    __tablename__ = "cohorts"

    name = Column(String(255), nullable=False)
    year = Column(Integer, nullable=True)

    students = relationship("Student", back_populates="cohort")
    spaces = relationship("LearningSpace", back_populates="cohort")

    def __repr__(self) -> str:
        return f"<Cohort {self.name}>"


class Subject(BaseModel):
    """Subject taught across cohorts (e.g. "Algorithms")."""
    __tablename__ = "subjects"

    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(255), nullable=False)

    spaces = relationship("LearningSpace", back_populates="subject")

    def __repr__(self) -> str:
        return f"<Subject {self.code}>"


class LearningSpace(BaseModel):
    """
    Binding of one subject to one cohort and one primary instructor.
    Works are published inside a space; enrolled students form its roster.
    """
    __tablename__ = "learning_spaces"

    name = Column(String(255), nullable=False)
    subject_id = Column(Uuid(as_uuid=True), ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False, index=True)
    cohort_id = Column(Uuid(as_uuid=True), ForeignKey("cohorts.id", ondelete="CASCADE"), nullable=False, index=True)
    instructor_id = Column(Uuid(as_uuid=True), ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True, index=True)

    subject = relationship("Subject", back_populates="spaces")
    cohort = relationship("Cohort", back_populates="spaces")
    works = relationship("AssignableWork", back_populates="space")

    def __repr__(self) -> str:
        return f"<LearningSpace {self.name}>"


# Association table for LearningSpace <-> Student roster
space_enrollments = Table(
    "space_enrollments",
    BaseModel.metadata,
    Column("space_id", Uuid(as_uuid=True), ForeignKey("learning_spaces.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("enrolled_at", DateTime, default=get_utc_now, nullable=False),
)
