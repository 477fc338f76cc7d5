"""Domain 2: Coursework Models (Works, Distribution, Submissions, Evaluations)"""

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from sqlalchemy import (
    Column, String, Text, DateTime, Float, ForeignKey, Uuid, Enum,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, SoftDeleteMixin, StatusMixin
from app.models.enums import DistributionType, GroupFormationMode, SubmissionStatus, enum_values
from app.utils.time import get_utc_now


@dataclass(frozen=True)
class IndividualOwner:
    """Submission owned by one student's individual assignment"""
    assignment_id: UUID


@dataclass(frozen=True)
class GroupOwner:
    """Submission owned by a group of a collective work"""
    group_id: UUID


Owner = Union[IndividualOwner, GroupOwner]


class AssignableWork(BaseModel, StatusMixin):
    """
    One piece of coursework published inside a learning space.
    Distributed either per student (individual) or per team (collective).
    """
    __tablename__ = "works"
    __table_args__ = (
        CheckConstraint(
            "(distribution_type = 'individual' AND group_formation_mode = 'not_applicable') OR "
            "(distribution_type = 'collective' AND group_formation_mode <> 'not_applicable')",
            name="ck_works_distribution_mode",
        ),
        CheckConstraint("end_at > start_at", name="ck_works_window"),
    )

    space_id = Column(Uuid(as_uuid=True), ForeignKey("learning_spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(Uuid(as_uuid=True), ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    instructions = Column(Text, nullable=False)
    instructions_url = Column(Text, nullable=True)  # externally hosted brief
    distribution_type = Column(
        Enum(DistributionType, name="distribution_type", values_callable=enum_values),
        nullable=False,
    )
    group_formation_mode = Column(
        Enum(GroupFormationMode, name="group_formation_mode", values_callable=enum_values),
        nullable=False,
        default=GroupFormationMode.NOT_APPLICABLE,
    )
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    # Relationships
    space = relationship("LearningSpace", back_populates="works")
    creator = relationship("Instructor")
    assignments = relationship("IndividualAssignment", back_populates="work")
    groups = relationship("Group", back_populates="work")

    @property
    def is_individual(self) -> bool:
        return self.distribution_type == DistributionType.INDIVIDUAL

    @property
    def is_collective(self) -> bool:
        return self.distribution_type == DistributionType.COLLECTIVE

    def __repr__(self) -> str:
        return f"<AssignableWork {self.title} ({self.distribution_type})>"


class IndividualAssignment(BaseModel, SoftDeleteMixin):
    """One student tied to one individual work."""
    __tablename__ = "individual_assignments"
    __table_args__ = (
        UniqueConstraint("work_id", "student_id", name="uq_individual_assignments_work_student"),
    )

    work_id = Column(Uuid(as_uuid=True), ForeignKey("works.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    work = relationship("AssignableWork", back_populates="assignments")
    student = relationship("Student")
    submission = relationship("Submission", back_populates="assignment", uselist=False)

    def __repr__(self) -> str:
        return f"<IndividualAssignment {self.student_id} for {self.work_id}>"


class Group(BaseModel):
    """A student team tied to one collective work."""
    __tablename__ = "groups"

    work_id = Column(Uuid(as_uuid=True), ForeignKey("works.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    formation_mode = Column(
        Enum(GroupFormationMode, name="group_formation_mode", values_callable=enum_values),
        nullable=False,
    )
    creator_id = Column(Uuid(as_uuid=True), ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True)

    work = relationship("AssignableWork", back_populates="groups")
    memberships = relationship("GroupMembership", back_populates="group", order_by="GroupMembership.created_at")
    submission = relationship("Submission", back_populates="group", uselist=False)

    @property
    def member_ids(self) -> list:
        return [m.student_id for m in self.memberships]

    def __repr__(self) -> str:
        return f"<Group {self.name}>"


class GroupMembership(BaseModel):
    """A student's membership in a group."""
    __tablename__ = "group_memberships"
    __table_args__ = (
        UniqueConstraint("group_id", "student_id", name="uq_group_memberships_group_student"),
    )

    group_id = Column(Uuid(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    group = relationship("Group", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<GroupMembership {self.student_id} in {self.group_id}>"


class Submission(BaseModel):
    """
    Deliverable for exactly one owner: an individual assignment or a group.
    Status is derived from submitted_at against the work window, never client-supplied.
    """
    __tablename__ = "submissions"
    __table_args__ = (
        CheckConstraint(
            "(assignment_id IS NOT NULL AND group_id IS NULL) OR "
            "(assignment_id IS NULL AND group_id IS NOT NULL)",
            name="ck_submissions_single_owner",
        ),
    )

    assignment_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("individual_assignments.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    group_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )

    content = Column(Text, nullable=True)
    artifact_url = Column(Text, nullable=True)  # externally hosted file
    submitted_at = Column(DateTime, default=get_utc_now, nullable=False)
    status = Column(
        Enum(SubmissionStatus, name="submission_status", values_callable=enum_values),
        nullable=False,
    )

    # Relationships
    assignment = relationship("IndividualAssignment", back_populates="submission")
    group = relationship("Group", back_populates="submission")
    evaluation = relationship("Evaluation", back_populates="submission", uselist=False)

    @property
    def owner(self) -> Owner:
        if self.assignment_id is not None:
            return IndividualOwner(assignment_id=self.assignment_id)
        return GroupOwner(group_id=self.group_id)

    def __repr__(self) -> str:
        return f"<Submission {self.owner} ({self.status})>"


class Evaluation(BaseModel):
    """
    The single grade of a submission.
    Override fields are stamped together by a director and never individually.
    """
    __tablename__ = "evaluations"
    __table_args__ = (
        CheckConstraint(
            "(modified_by_id IS NULL AND modified_at IS NULL AND override_reason IS NULL) OR "
            "(modified_by_id IS NOT NULL AND modified_at IS NOT NULL AND override_reason IS NOT NULL)",
            name="ck_evaluations_override_fields",
        ),
    )

    submission_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    score = Column(Float, nullable=False)
    comment = Column(Text, nullable=True)
    grader_id = Column(Uuid(as_uuid=True), ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True)
    evaluated_at = Column(DateTime, default=get_utc_now, nullable=False)

    # Director override audit trail
    modified_by_id = Column(Uuid(as_uuid=True), ForeignKey("directors.id", ondelete="RESTRICT"), nullable=True)
    modified_at = Column(DateTime, nullable=True)
    override_reason = Column(Text, nullable=True)

    submission = relationship("Submission", back_populates="evaluation")
    grader = relationship("Instructor")
    modified_by = relationship("Director")

    @property
    def is_overridden(self) -> bool:
        return self.modified_at is not None

    def __repr__(self) -> str:
        return f"<Evaluation {self.score} for {self.submission_id}>"
