"""Group endpoints - teams for collective work"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api import deps
from app.schemas.coursework import GroupCreate, GroupUpdate, GroupResponse
from app.schemas.principal import Principal
from app.schemas.responses import SuccessResponse
from app.services.group_service import GroupService

router = APIRouter()


@router.post("/works/{work_id}/groups", response_model=SuccessResponse)
async def create_group(
    work_id: UUID,
    group_in: GroupCreate,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Form a group for a collective work.
    Students may only do so when the work is student-formed.
    """
    group = await GroupService.create_group(db, work_id, principal, group_in.name, group_in.member_ids)
    return SuccessResponse(
        data=GroupResponse.model_validate(group),
        message="Group created successfully",
    )


@router.get("/works/{work_id}/groups", response_model=SuccessResponse)
async def list_groups(
    work_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    groups = await GroupService.list_groups(db, work_id)
    return SuccessResponse(data=[GroupResponse.model_validate(g) for g in groups])


@router.get("/groups/{group_id}", response_model=SuccessResponse)
async def get_group(
    group_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    group = await GroupService.get_group(db, group_id)
    return SuccessResponse(data=GroupResponse.model_validate(group))


@router.patch("/groups/{group_id}", response_model=SuccessResponse)
async def update_group(
    group_id: UUID,
    group_in: GroupUpdate,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Rename a group and/or replace its whole membership. Instructor or director."""
    group = await GroupService.update_group(db, group_id, principal, group_in)
    return SuccessResponse(
        data=GroupResponse.model_validate(group),
        message="Group updated successfully",
    )


@router.delete("/groups/{group_id}", response_model=SuccessResponse)
async def delete_group(
    group_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    await GroupService.delete_group(db, group_id, principal)
    return SuccessResponse(message="Group deleted successfully")
