"""Group Service - forming and editing teams for collective work"""

from typing import List, Sequence
from uuid import UUID
from sqlalchemy import select, delete, insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from app.core.exceptions import Forbidden, NotFound, WrongWorkType
from app.models.assessment import Group, GroupMembership, Submission, Evaluation
from app.models.enums import GroupFormationMode, UserRole
from app.schemas.coursework import GroupUpdate
from app.schemas.principal import Principal, InstructorProfile, StudentProfile
from app.services.directory_service import DirectoryService
from app.services.work_service import WorkService

logger = logging.getLogger(__name__)


class GroupService:
    @staticmethod
    async def get_group(db: AsyncSession, group_id: UUID) -> Group:
        """Group with memberships and work loaded, refreshed from the database."""
        result = await db.execute(
            select(Group)
            .options(selectinload(Group.memberships), selectinload(Group.work))
            .where(Group.id == group_id)
            .execution_options(populate_existing=True)
        )
        group = result.scalar_one_or_none()
        if not group:
            raise NotFound("Group not found", field="group_id", value=group_id)
        return group

    @staticmethod
    async def list_groups(db: AsyncSession, work_id: UUID) -> List[Group]:
        await WorkService.get_work(db, work_id)
        result = await db.execute(
            select(Group)
            .options(selectinload(Group.memberships))
            .where(Group.work_id == work_id)
            .order_by(Group.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _insert_members(db: AsyncSession, group_id: UUID, member_ids: Sequence[UUID]) -> None:
        for student_id in member_ids:
            await db.execute(
                insert(GroupMembership).values(group_id=group_id, student_id=student_id)
            )

    @staticmethod
    async def create_group(
        db: AsyncSession,
        work_id: UUID,
        principal: Principal,
        name: str,
        member_ids: Sequence[UUID],
    ) -> Group:
        """
        Create a group and its memberships in one transaction.

        Instructors and directors may always form groups. Students may only
        when the work is student-formed, and are added to their own group.
        """
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        work = await WorkService.get_work(db, work_id)
        if not work.is_collective:
            raise WrongWorkType(
                "Work is not collective",
                field="distribution_type",
                value=work.distribution_type.value,
            )

        members = list(dict.fromkeys(member_ids))
        creator_id = None
        if isinstance(profile, StudentProfile):
            if work.group_formation_mode != GroupFormationMode.STUDENT_FORMED:
                raise Forbidden(
                    "Students may not form groups for this work",
                    field="group_formation_mode",
                    value=work.group_formation_mode.value,
                )
            formation_mode = GroupFormationMode.STUDENT_FORMED
            if profile.profile_id not in members:
                members.insert(0, profile.profile_id)
        else:
            formation_mode = GroupFormationMode.INSTRUCTOR_FORMED
            if isinstance(profile, InstructorProfile):
                creator_id = profile.profile_id

        await DirectoryService.require_students(db, members)

        group = Group(
            work_id=work_id,
            name=name,
            formation_mode=formation_mode,
            creator_id=creator_id,
        )
        db.add(group)
        await db.flush()
        group_id = group.id
        await GroupService._insert_members(db, group_id, members)
        await db.commit()

        logger.info(
            "Group formed",
            extra={
                "group_id": str(group_id),
                "work_id": str(work_id),
                "formation_mode": formation_mode.value,
                "members": len(members),
            },
        )
        return await GroupService.get_group(db, group_id)

    @staticmethod
    async def update_group(
        db: AsyncSession,
        group_id: UUID,
        principal: Principal,
        data: GroupUpdate,
    ) -> Group:
        """Rename and/or replace the full membership set (not a diff)."""
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        group = await GroupService.get_group(db, group_id)

        if data.name:
            group.name = data.name

        if data.member_ids is not None:
            members = list(dict.fromkeys(data.member_ids))
            await DirectoryService.require_students(db, members)
            await db.execute(
                delete(GroupMembership)
                .where(GroupMembership.group_id == group_id)
                .execution_options(synchronize_session=False)
            )
            await GroupService._insert_members(db, group_id, members)

        await db.commit()
        logger.info(
            "Group updated",
            extra={"group_id": str(group_id), "members_replaced": data.member_ids is not None},
        )
        return await GroupService.get_group(db, group_id)

    @staticmethod
    async def delete_group(db: AsyncSession, group_id: UUID, principal: Principal) -> None:
        """Hard delete; memberships, the submission and its evaluation go with it."""
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        await GroupService.get_group(db, group_id)

        submission_ids = select(Submission.id).where(Submission.group_id == group_id)
        for stmt in (
            delete(Evaluation).where(Evaluation.submission_id.in_(submission_ids)),
            delete(Submission).where(Submission.group_id == group_id),
            delete(GroupMembership).where(GroupMembership.group_id == group_id),
            delete(Group).where(Group.id == group_id),
        ):
            await db.execute(stmt.execution_options(synchronize_session=False))

        await db.commit()
        logger.info("Group deleted", extra={"group_id": str(group_id)})

    @staticmethod
    async def is_member(db: AsyncSession, group_id: UUID, student_id: UUID) -> bool:
        membership = await db.scalar(
            select(GroupMembership.id).where(
                GroupMembership.group_id == group_id,
                GroupMembership.student_id == student_id,
            )
        )
        return membership is not None
