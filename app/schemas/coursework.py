from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from uuid import UUID
from datetime import datetime

from app.models.enums import DistributionType, GroupFormationMode
from app.utils.time import to_naive_utc


class WorkBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    instructions: str = Field(..., min_length=1)
    instructions_url: Optional[str] = None


class WorkCreate(WorkBase):
    distribution_type: DistributionType
    group_formation_mode: Optional[GroupFormationMode] = None
    start_at: datetime
    end_at: datetime

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_window(self) -> "WorkCreate":
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class WorkUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    instructions: Optional[str] = Field(None, min_length=1)
    instructions_url: Optional[str] = None
    distribution_type: Optional[DistributionType] = None
    group_formation_mode: Optional[GroupFormationMode] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else v


class WorkResponse(WorkBase):
    id: UUID
    space_id: UUID
    creator_id: Optional[UUID] = None
    distribution_type: DistributionType
    group_formation_mode: GroupFormationMode
    start_at: datetime
    end_at: datetime
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignIndividualRequest(BaseModel):
    student_ids: List[UUID]


class AssignmentResponse(BaseModel):
    id: UUID
    work_id: UUID
    student_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignmentResult(BaseModel):
    """Outcome of a duplicate-tolerant bulk assignment."""
    assigned_count: int
    assignments: List[AssignmentResponse] = []
    skipped_ids: List[UUID] = []


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    member_ids: List[UUID] = []


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    member_ids: Optional[List[UUID]] = None


class GroupResponse(BaseModel):
    id: UUID
    work_id: UUID
    name: str
    formation_mode: GroupFormationMode
    creator_id: Optional[UUID] = None
    member_ids: List[UUID] = []

    model_config = ConfigDict(from_attributes=True)


class StudentWorks(BaseModel):
    """Everything a student has been given, individually or through a group."""
    individual: List[AssignmentResponse] = []
    groups: List[GroupResponse] = []
