"""Authenticated principal and role profiles"""

from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import UserRole


class Principal(BaseModel):
    """Authenticated caller as supplied by the identity service."""
    account_id: UUID
    role: UserRole

    model_config = ConfigDict(frozen=True)


class DirectorProfile(BaseModel):
    role: Literal["director"] = "director"
    account_id: UUID
    profile_id: UUID

    model_config = ConfigDict(frozen=True)


class InstructorProfile(BaseModel):
    role: Literal["instructor"] = "instructor"
    account_id: UUID
    profile_id: UUID

    model_config = ConfigDict(frozen=True)


class StudentProfile(BaseModel):
    role: Literal["student"] = "student"
    account_id: UUID
    profile_id: UUID
    cohort_id: Optional[UUID] = None

    model_config = ConfigDict(frozen=True)


Profile = Annotated[
    Union[DirectorProfile, InstructorProfile, StudentProfile],
    Field(discriminator="role"),
]
