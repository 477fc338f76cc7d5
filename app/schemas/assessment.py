from typing import Optional, List, Dict, Literal
from pydantic import BaseModel, Field, ConfigDict, model_validator
from uuid import UUID
from datetime import datetime

from app.models.enums import SubmissionStatus


class SubmissionContent(BaseModel):
    """Deliverable payload: inline content and/or an externally hosted artifact."""
    content: Optional[str] = None
    artifact_url: Optional[str] = Field(None, max_length=2048)

    @model_validator(mode="after")
    def require_content_or_artifact(self) -> "SubmissionContent":
        if not self.content and not self.artifact_url:
            raise ValueError("content or artifact_url is required")
        return self


class SubmissionAmend(BaseModel):
    content: Optional[str] = None
    artifact_url: Optional[str] = Field(None, max_length=2048)


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    content: Optional[str] = None
    artifact_url: Optional[str] = None
    submitted_at: datetime
    status: SubmissionStatus

    model_config = ConfigDict(from_attributes=True)


class GradeRequest(BaseModel):
    submission_id: UUID
    score: float
    comment: Optional[str] = None


class OverrideRequest(BaseModel):
    score: Optional[float] = None
    comment: Optional[str] = None
    reason: Optional[str] = None


class EvaluationResponse(BaseModel):
    id: UUID
    submission_id: UUID
    score: float
    comment: Optional[str] = None
    grader_id: Optional[UUID] = None
    evaluated_at: datetime
    modified_by_id: Optional[UUID] = None
    modified_at: Optional[datetime] = None
    override_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class WorkSubmissionEntry(BaseModel):
    """One owner of a work with its submission and evaluation, if any."""
    owner_type: Literal["individual", "collective"]
    assignment_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    group_name: Optional[str] = None
    member_ids: List[UUID] = []
    submission: Optional[SubmissionResponse] = None
    evaluation: Optional[EvaluationResponse] = None


class SubmissionStats(BaseModel):
    total: int = 0
    submitted: int = 0
    evaluated: int = 0
    late: int = 0


class WorkSubmissionReport(BaseModel):
    work_id: UUID
    entries: List[WorkSubmissionEntry] = []
    stats: SubmissionStats


class StudentSubmissions(BaseModel):
    submissions: List[SubmissionResponse] = []
    stats: SubmissionStats


class ScoreSummary(BaseModel):
    count: int = 0
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0


class ScopeStats(ScoreSummary):
    distribution: Dict[str, int]
    pass_rate: float = 0.0


class StudentGrades(BaseModel):
    evaluations: List[EvaluationResponse] = []
    stats: ScoreSummary


class SubjectGrades(BaseModel):
    subject_id: UUID
    subject_name: str
    scores: List[float]
    mean: float


class GradesBySubject(BaseModel):
    subjects: List[SubjectGrades] = []
    overall_mean: float = 0.0
