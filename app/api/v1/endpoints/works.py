"""Work endpoints - publishing coursework and distributing it individually"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api import deps
from app.schemas.coursework import (
    WorkCreate, WorkUpdate, WorkResponse, AssignIndividualRequest,
)
from app.schemas.principal import Principal
from app.schemas.responses import SuccessResponse
from app.services.work_service import WorkService

router = APIRouter()


@router.post("/spaces/{space_id}/works", response_model=SuccessResponse)
async def create_work(
    space_id: UUID,
    work_in: WorkCreate,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Publish a work in a learning space. Instructor or director."""
    work = await WorkService.create_work(db, space_id, principal, work_in)
    return SuccessResponse(
        data=WorkResponse.model_validate(work),
        message="Work created successfully",
    )


@router.get("/works", response_model=SuccessResponse)
async def list_works(
    space_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """List works visible to the caller, optionally filtered by space and active flag."""
    works = await WorkService.list_works(db, principal, space_id=space_id, is_active=is_active)
    return SuccessResponse(data=[WorkResponse.model_validate(w) for w in works])


@router.get("/works/me", response_model=SuccessResponse)
async def my_works(
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Student: individual assignments and groups the caller belongs to."""
    works = await WorkService.list_student_works(db, principal)
    return SuccessResponse(data=works)


@router.get("/works/{work_id}", response_model=SuccessResponse)
async def get_work(
    work_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    work = await WorkService.get_work(db, work_id)
    return SuccessResponse(data=WorkResponse.model_validate(work))


@router.patch("/works/{work_id}", response_model=SuccessResponse)
async def update_work(
    work_id: UUID,
    work_in: WorkUpdate,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    work = await WorkService.update_work(db, work_id, principal, work_in)
    return SuccessResponse(
        data=WorkResponse.model_validate(work),
        message="Work updated successfully",
    )


@router.delete("/works/{work_id}", response_model=SuccessResponse)
async def delete_work(
    work_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Delete a work together with its assignments, groups and submissions."""
    await WorkService.delete_work(db, work_id, principal)
    return SuccessResponse(message="Work deleted successfully")


@router.post("/works/{work_id}/assignments", response_model=SuccessResponse)
async def assign_individually(
    work_id: UUID,
    assign_in: AssignIndividualRequest,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Assign an individual work to students.
    Students that already hold the work are reported in skipped_ids.
    """
    result = await WorkService.assign_individually(db, work_id, assign_in.student_ids, principal)
    return SuccessResponse(
        data=result,
        message=f"{result.assigned_count} assignment(s) created",
    )


@router.delete("/assignments/{assignment_id}", response_model=SuccessResponse)
async def unassign(
    assignment_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    await WorkService.unassign(db, assignment_id, principal)
    return SuccessResponse(message="Assignment removed")
