"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, SoftDeleteMixin, StatusMixin
from app.models.enums import *
from app.models.user import User, Director, Instructor, Student
from app.models.academic import Cohort, Subject, LearningSpace, space_enrollments
from app.models.assessment import (
    AssignableWork,
    IndividualAssignment,
    Group,
    GroupMembership,
    Submission,
    Evaluation,
    IndividualOwner,
    GroupOwner,
    Owner,
)


__all__ = [
    # Base classes
    "BaseModel",
    "SoftDeleteMixin",
    "StatusMixin",

    # Accounts & profiles
    "User",
    "Director",
    "Instructor",
    "Student",

    # Directory
    "Cohort",
    "Subject",
    "LearningSpace",
    "space_enrollments",

    # Coursework
    "AssignableWork",
    "IndividualAssignment",
    "Group",
    "GroupMembership",
    "Submission",
    "Evaluation",
    "IndividualOwner",
    "GroupOwner",
    "Owner",
]
