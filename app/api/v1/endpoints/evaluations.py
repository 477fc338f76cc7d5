"""Evaluation endpoints - grading, director overrides and grade statistics"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api import deps
from app.schemas.assessment import GradeRequest, OverrideRequest, EvaluationResponse
from app.schemas.principal import Principal
from app.schemas.responses import SuccessResponse
from app.services.grading_service import GradingService

router = APIRouter()


@router.post("", response_model=SuccessResponse)
async def grade_submission(
    grade_in: GradeRequest,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Grade a submission once. Instructor or director; corrections go through an override."""
    evaluation = await GradingService.grade(
        db, grade_in.submission_id, principal, grade_in.score, grade_in.comment
    )
    return SuccessResponse(
        data=EvaluationResponse.model_validate(evaluation),
        message="Evaluation recorded",
    )


@router.get("/me", response_model=SuccessResponse)
async def my_grades(
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    grades = await GradingService.student_grades(db, principal)
    return SuccessResponse(data=grades)


@router.get("/me/by-subject", response_model=SuccessResponse)
async def my_grades_by_subject(
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    grades = await GradingService.grades_by_subject(db, principal)
    return SuccessResponse(data=grades)


@router.get("/stats", response_model=SuccessResponse)
async def grade_stats(
    cohort_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Director: count, mean, min, max, bucket distribution and pass rate."""
    stats = await GradingService.stats_for_scope(db, principal, cohort_id=cohort_id, subject_id=subject_id)
    return SuccessResponse(data=stats)


@router.get("/{evaluation_id}", response_model=SuccessResponse)
async def get_evaluation(
    evaluation_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    evaluation = await GradingService.get_evaluation(db, evaluation_id, principal)
    return SuccessResponse(data=EvaluationResponse.model_validate(evaluation))


@router.put("/{evaluation_id}", response_model=SuccessResponse)
async def override_evaluation(
    evaluation_id: UUID,
    override_in: OverrideRequest,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Director override. A reason is mandatory and recorded with the change."""
    evaluation = await GradingService.override(
        db,
        evaluation_id,
        principal,
        score=override_in.score,
        comment=override_in.comment,
        reason=override_in.reason,
    )
    return SuccessResponse(
        data=EvaluationResponse.model_validate(evaluation),
        message="Evaluation overridden",
    )
