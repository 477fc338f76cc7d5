"""Submission endpoints - deliverables for assignments and groups"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api import deps
from app.schemas.assessment import SubmissionContent, SubmissionAmend, SubmissionResponse
from app.schemas.principal import Principal
from app.schemas.responses import SuccessResponse
from app.services.submission_service import SubmissionService

router = APIRouter()


@router.post("/assignments/{assignment_id}/submission", response_model=SuccessResponse)
async def submit_individual(
    assignment_id: UUID,
    submission_in: SubmissionContent,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Submit (or resubmit) the deliverable of the caller's own assignment."""
    submission = await SubmissionService.submit_individual(db, assignment_id, principal, submission_in)
    return SuccessResponse(
        data=SubmissionResponse.model_validate(submission),
        message="Submission recorded",
    )


@router.post("/groups/{group_id}/submission", response_model=SuccessResponse)
async def submit_group(
    group_id: UUID,
    submission_in: SubmissionContent,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Submit (or resubmit) the deliverable of a group the caller belongs to."""
    submission = await SubmissionService.submit_group(db, group_id, principal, submission_in)
    return SuccessResponse(
        data=SubmissionResponse.model_validate(submission),
        message="Submission recorded",
    )


@router.get("/works/{work_id}/submissions", response_model=SuccessResponse)
async def list_work_submissions(
    work_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Instructor or director: every owner of the work with submission, evaluation and counts."""
    report = await SubmissionService.list_for_work(db, work_id, principal)
    return SuccessResponse(data=report)


@router.get("/submissions/me", response_model=SuccessResponse)
async def my_submissions(
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    submissions = await SubmissionService.list_for_student(db, principal)
    return SuccessResponse(data=submissions)


@router.get("/submissions/{submission_id}", response_model=SuccessResponse)
async def get_submission(
    submission_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    submission = await SubmissionService.get_submission(db, submission_id, principal)
    return SuccessResponse(data=SubmissionResponse.model_validate(submission))


@router.patch("/submissions/{submission_id}", response_model=SuccessResponse)
async def amend_submission(
    submission_id: UUID,
    submission_in: SubmissionAmend,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    submission = await SubmissionService.amend(db, submission_id, principal, submission_in)
    return SuccessResponse(
        data=SubmissionResponse.model_validate(submission),
        message="Submission updated",
    )


@router.delete("/submissions/{submission_id}", response_model=SuccessResponse)
async def withdraw_submission(
    submission_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Withdraw a submission. Not possible once it has been evaluated."""
    await SubmissionService.withdraw(db, submission_id, principal)
    return SuccessResponse(message="Submission withdrawn")
