"""Centralized Enum Definitions"""

import enum


# Domain 1: Accounts & Directory
class UserRole(str, enum.Enum):
    """Account roles for RBAC"""
    DIRECTOR = "director"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


# Domain 2: Coursework distribution
class DistributionType(str, enum.Enum):
    """Whether a work is assigned per student or per team"""
    INDIVIDUAL = "individual"
    COLLECTIVE = "collective"


class GroupFormationMode(str, enum.Enum):
    """Who may create teams for a collective work"""
    NOT_APPLICABLE = "not_applicable"
    INSTRUCTOR_FORMED = "instructor_formed"
    STUDENT_FORMED = "student_formed"


# Domain 3: Submissions
class SubmissionStatus(str, enum.Enum):
    """Derived from submitted_at against the work window"""
    ON_TIME = "on_time"
    LATE = "late"


def enum_values(enum_cls):
    """Persist enum values (not member names) in the database"""
    return [e.value for e in enum_cls]
