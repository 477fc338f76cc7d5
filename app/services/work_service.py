"""Work Service - publishing coursework and distributing it to students"""

from typing import Optional, List, Sequence, Tuple
from uuid import UUID
from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from app.core.exceptions import InvalidConfiguration, NotFound, WrongWorkType
from app.models.assessment import (
    AssignableWork, IndividualAssignment, Group, GroupMembership, Submission, Evaluation,
)
from app.models.enums import DistributionType, GroupFormationMode, UserRole
from app.schemas.coursework import (
    WorkCreate, WorkUpdate, AssignmentResult, AssignmentResponse, GroupResponse, StudentWorks,
)
from app.schemas.principal import Principal, InstructorProfile
from app.services.directory_service import DirectoryService

logger = logging.getLogger(__name__)

# Columns a partial update may never null out
_REQUIRED_FIELDS = {"title", "instructions", "distribution_type", "start_at", "end_at", "is_active"}


class WorkService:
    @staticmethod
    def resolve_formation_mode(
        distribution_type: DistributionType,
        group_formation_mode: Optional[GroupFormationMode],
    ) -> GroupFormationMode:
        """
        Enforce individual => not_applicable, collective => a real formation mode.
        Individual work carrying a mode is normalized rather than rejected.
        """
        if distribution_type == DistributionType.INDIVIDUAL:
            return GroupFormationMode.NOT_APPLICABLE
        if group_formation_mode in (None, GroupFormationMode.NOT_APPLICABLE):
            raise InvalidConfiguration(
                "A group formation mode is required for collective work",
                field="group_formation_mode",
                value=group_formation_mode.value if group_formation_mode else None,
            )
        return group_formation_mode

    @staticmethod
    async def get_work(db: AsyncSession, work_id: UUID) -> AssignableWork:
        work = await db.get(AssignableWork, work_id, populate_existing=True)
        if not work:
            raise NotFound("Work not found", field="work_id", value=work_id)
        return work

    @staticmethod
    async def create_work(
        db: AsyncSession,
        space_id: UUID,
        principal: Principal,
        data: WorkCreate,
    ) -> AssignableWork:
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        DirectoryService.require_role(profile, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        await DirectoryService.get_space(db, space_id)

        mode = WorkService.resolve_formation_mode(data.distribution_type, data.group_formation_mode)
        work = AssignableWork(
            space_id=space_id,
            creator_id=profile.profile_id if isinstance(profile, InstructorProfile) else None,
            title=data.title,
            instructions=data.instructions,
            instructions_url=data.instructions_url,
            distribution_type=data.distribution_type,
            group_formation_mode=mode,
            start_at=data.start_at,
            end_at=data.end_at,
            is_active=True,
        )
        db.add(work)
        await db.commit()
        await db.refresh(work)

        logger.info(
            "Work created",
            extra={
                "work_id": str(work.id),
                "space_id": str(space_id),
                "distribution_type": work.distribution_type.value,
                "group_formation_mode": mode.value,
            },
        )
        return work

    @staticmethod
    async def list_works(
        db: AsyncSession,
        principal: Principal,
        space_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
    ) -> List[AssignableWork]:
        """Instructors see their own works, students those of their spaces, directors all."""
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        query = select(AssignableWork)

        if space_id:
            query = query.where(AssignableWork.space_id == space_id)
        if is_active is not None:
            query = query.where(AssignableWork.is_active == is_active)

        if profile.role == UserRole.INSTRUCTOR:
            query = query.where(AssignableWork.creator_id == profile.profile_id)
        elif profile.role == UserRole.STUDENT:
            space_ids = await DirectoryService.enrolled_space_ids(db, profile.profile_id)
            query = query.where(AssignableWork.space_id.in_(space_ids))

        result = await db.execute(query.order_by(AssignableWork.start_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def _has_distribution(db: AsyncSession, work_id: UUID) -> bool:
        assignment = await db.scalar(
            select(IndividualAssignment.id).where(IndividualAssignment.work_id == work_id).limit(1)
        )
        group = await db.scalar(select(Group.id).where(Group.work_id == work_id).limit(1))
        return assignment is not None or group is not None

    @staticmethod
    async def update_work(
        db: AsyncSession,
        work_id: UUID,
        principal: Principal,
        data: WorkUpdate,
    ) -> AssignableWork:
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        work = await WorkService.get_work(db, work_id)

        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_FIELDS
        }

        distribution_type = changes.get("distribution_type", work.distribution_type)
        requested_mode = changes.get("group_formation_mode", work.group_formation_mode)
        changes["group_formation_mode"] = WorkService.resolve_formation_mode(distribution_type, requested_mode)

        if distribution_type != work.distribution_type and await WorkService._has_distribution(db, work_id):
            raise InvalidConfiguration(
                "Distribution type cannot change once the work has been distributed",
                field="distribution_type",
                value=distribution_type.value,
            )

        start_at = changes.get("start_at", work.start_at)
        end_at = changes.get("end_at", work.end_at)
        if end_at <= start_at:
            raise InvalidConfiguration("end_at must be after start_at", field="end_at", value=end_at.isoformat())

        for field, value in changes.items():
            setattr(work, field, value)

        await db.commit()
        await db.refresh(work)
        logger.info("Work updated", extra={"work_id": str(work_id), "fields": sorted(changes)})
        return work

    @staticmethod
    async def delete_work(db: AsyncSession, work_id: UUID, principal: Principal) -> None:
        """Hard delete; removes assignments, groups, submissions and evaluations with it."""
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        await WorkService.get_work(db, work_id)

        assignment_ids = select(IndividualAssignment.id).where(IndividualAssignment.work_id == work_id)
        group_ids = select(Group.id).where(Group.work_id == work_id)
        submission_ids = select(Submission.id).where(
            or_(Submission.assignment_id.in_(assignment_ids), Submission.group_id.in_(group_ids))
        )

        for stmt in (
            delete(Evaluation).where(Evaluation.submission_id.in_(submission_ids)),
            delete(Submission).where(
                or_(Submission.assignment_id.in_(assignment_ids), Submission.group_id.in_(group_ids))
            ),
            delete(GroupMembership).where(GroupMembership.group_id.in_(group_ids)),
            delete(Group).where(Group.work_id == work_id),
            delete(IndividualAssignment).where(IndividualAssignment.work_id == work_id),
            delete(AssignableWork).where(AssignableWork.id == work_id),
        ):
            await db.execute(stmt.execution_options(synchronize_session=False))

        await db.commit()
        logger.info("Work deleted", extra={"work_id": str(work_id)})

    @staticmethod
    async def _stage_assignments(
        db: AsyncSession,
        work_id: UUID,
        student_ids: Sequence[UUID],
    ) -> Tuple[List[IndividualAssignment], List[UUID]]:
        """Add assignments for new students; returns (assigned, skipped_ids)."""
        result = await db.execute(
            select(IndividualAssignment).where(
                IndividualAssignment.work_id == work_id,
                IndividualAssignment.student_id.in_(set(student_ids)),
            )
        )
        existing = {a.student_id: a for a in result.scalars().all()}

        assigned: List[IndividualAssignment] = []
        skipped: List[UUID] = []
        seen = set()
        for student_id in student_ids:
            if student_id in seen:
                skipped.append(student_id)
                continue
            seen.add(student_id)

            current = existing.get(student_id)
            if current is None:
                assignment = IndividualAssignment(work_id=work_id, student_id=student_id)
                db.add(assignment)
                assigned.append(assignment)
            elif current.is_deleted:
                current.restore()
                assigned.append(current)
            else:
                skipped.append(student_id)

        await db.flush()
        return assigned, skipped

    @staticmethod
    async def assign_individually(
        db: AsyncSession,
        work_id: UUID,
        student_ids: Sequence[UUID],
        principal: Principal,
    ) -> AssignmentResult:
        """
        Bulk-assign an individual work.

        Students already holding an assignment are skipped rather than failing
        the batch; everything else commits in one transaction. A concurrent
        duplicate insert is rolled back and the batch recomputed once, turning
        the conflict into a skip.
        """
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        work = await WorkService.get_work(db, work_id)
        if not work.is_individual:
            raise WrongWorkType(
                "Work is not individual",
                field="distribution_type",
                value=work.distribution_type.value,
            )
        await DirectoryService.require_students(db, student_ids)

        for attempt in range(2):
            try:
                assigned, skipped = await WorkService._stage_assignments(db, work_id, student_ids)
                await db.commit()
                break
            except IntegrityError:
                await db.rollback()
                if attempt:
                    raise
                logger.warning("Assignment conflict, recomputing batch", extra={"work_id": str(work_id)})

        logger.info(
            "Individual assignments created",
            extra={"work_id": str(work_id), "assigned": len(assigned), "skipped": len(skipped)},
        )
        return AssignmentResult(
            assigned_count=len(assigned),
            assignments=[AssignmentResponse.model_validate(a) for a in assigned],
            skipped_ids=skipped,
        )

    @staticmethod
    async def get_assignment(db: AsyncSession, assignment_id: UUID) -> IndividualAssignment:
        """Active (not soft-deleted) assignment with its work loaded."""
        result = await db.execute(
            select(IndividualAssignment)
            .options(selectinload(IndividualAssignment.work))
            .where(
                IndividualAssignment.id == assignment_id,
                IndividualAssignment.deleted_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFound("Assignment not found", field="assignment_id", value=assignment_id)
        return assignment

    @staticmethod
    async def unassign(db: AsyncSession, assignment_id: UUID, principal: Principal) -> None:
        """Retire an assignment by soft delete; its submission history stays."""
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        assignment = await WorkService.get_assignment(db, assignment_id)
        assignment.soft_delete()
        await db.commit()
        logger.info("Assignment retired", extra={"assignment_id": str(assignment_id)})

    @staticmethod
    async def list_student_works(db: AsyncSession, principal: Principal) -> StudentWorks:
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        DirectoryService.require_role(profile, UserRole.STUDENT)

        assignments = await db.execute(
            select(IndividualAssignment).where(
                IndividualAssignment.student_id == profile.profile_id,
                IndividualAssignment.deleted_at.is_(None),
            )
        )
        groups = await db.execute(
            select(Group)
            .join(GroupMembership, GroupMembership.group_id == Group.id)
            .where(GroupMembership.student_id == profile.profile_id)
            .options(selectinload(Group.memberships))
            .execution_options(populate_existing=True)
        )
        return StudentWorks(
            individual=[AssignmentResponse.model_validate(a) for a in assignments.scalars().all()],
            groups=[GroupResponse.model_validate(g) for g in groups.scalars().unique().all()],
        )
