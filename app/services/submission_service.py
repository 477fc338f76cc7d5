"""Submission Service - deliverables, windows and lateness"""

from datetime import datetime
from typing import Dict, Any, List
from uuid import UUID
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from app.core.exceptions import AlreadyEvaluated, Forbidden, MissingContent, NotFound, NotStarted
from app.models.assessment import (
    AssignableWork, IndividualAssignment, Group, GroupMembership, Submission,
)
from app.models.enums import SubmissionStatus, UserRole
from app.schemas.assessment import (
    SubmissionContent, SubmissionAmend, SubmissionResponse, EvaluationResponse,
    WorkSubmissionEntry, WorkSubmissionReport, SubmissionStats, StudentSubmissions,
)
from app.schemas.principal import Principal, Profile, StudentProfile
from app.services.directory_service import DirectoryService
from app.services.group_service import GroupService
from app.services.work_service import WorkService
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)


class SubmissionService:
    @staticmethod
    def derive_status(start_at: datetime, end_at: datetime, submitted_at: datetime) -> SubmissionStatus:
        """On time inside [start_at, end_at], late after end_at; before start_at is refused."""
        if submitted_at < start_at:
            raise NotStarted(
                "The work has not started yet",
                field="start_at",
                value=start_at.isoformat(),
            )
        if submitted_at > end_at:
            return SubmissionStatus.LATE
        return SubmissionStatus.ON_TIME

    @staticmethod
    async def _record(
        db: AsyncSession,
        owner: Dict[str, UUID],
        data: SubmissionContent,
        work: AssignableWork,
    ) -> Submission:
        """
        Create or overwrite the owner's submission (last write wins, no history).
        A concurrent first submission for the same owner hits the unique key;
        the loser retries once as an update.
        """
        (owner_field, owner_id), = owner.items()
        owner_column = getattr(Submission, owner_field)
        # A rollback expires the work; keep its window in locals for the retry
        start_at, end_at = work.start_at, work.end_at

        for attempt in range(2):
            now = get_utc_now()
            status = SubmissionService.derive_status(start_at, end_at, now)
            result = await db.execute(
                select(Submission)
                .options(selectinload(Submission.evaluation))
                .where(owner_column == owner_id)
                .execution_options(populate_existing=True)
            )
            submission = result.scalar_one_or_none()

            if submission is None:
                submission = Submission(**owner)
                db.add(submission)
            elif submission.evaluation is not None:
                raise AlreadyEvaluated(field="submission_id", value=submission.id)

            submission.content = data.content
            submission.artifact_url = data.artifact_url
            submission.submitted_at = now
            submission.status = status
            try:
                await db.commit()
                return submission
            except IntegrityError:
                await db.rollback()
                if attempt:
                    raise
                logger.warning("Concurrent submission, retrying as update", extra={owner_field: str(owner_id)})

    @staticmethod
    async def submit_individual(
        db: AsyncSession,
        assignment_id: UUID,
        principal: Principal,
        data: SubmissionContent,
    ) -> Submission:
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        assignment = await WorkService.get_assignment(db, assignment_id)
        if not isinstance(profile, StudentProfile) or assignment.student_id != profile.profile_id:
            raise Forbidden("Not allowed to submit for this assignment", field="assignment_id", value=assignment_id)

        submission = await SubmissionService._record(
            db, {"assignment_id": assignment_id}, data, assignment.work
        )
        logger.info(
            "Submission recorded",
            extra={
                "submission_id": str(submission.id),
                "assignment_id": str(assignment_id),
                "status": submission.status.value,
            },
        )
        return submission

    @staticmethod
    async def submit_group(
        db: AsyncSession,
        group_id: UUID,
        principal: Principal,
        data: SubmissionContent,
    ) -> Submission:
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        group = await GroupService.get_group(db, group_id)
        if not isinstance(profile, StudentProfile) or profile.profile_id not in group.member_ids:
            raise Forbidden("Not a member of this group", field="group_id", value=group_id)

        submission = await SubmissionService._record(db, {"group_id": group_id}, data, group.work)
        logger.info(
            "Submission recorded",
            extra={
                "submission_id": str(submission.id),
                "group_id": str(group_id),
                "status": submission.status.value,
            },
        )
        return submission

    @staticmethod
    async def _load(db: AsyncSession, submission_id: UUID) -> Submission:
        result = await db.execute(
            select(Submission)
            .options(
                selectinload(Submission.evaluation),
                selectinload(Submission.assignment).selectinload(IndividualAssignment.work),
                selectinload(Submission.group).selectinload(Group.memberships),
                selectinload(Submission.group).selectinload(Group.work),
            )
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        submission = result.scalar_one_or_none()
        if not submission:
            raise NotFound("Submission not found", field="submission_id", value=submission_id)
        return submission

    @staticmethod
    def _is_owner(submission: Submission, profile: Profile) -> bool:
        if not isinstance(profile, StudentProfile):
            return False
        if submission.assignment is not None:
            return submission.assignment.student_id == profile.profile_id
        return profile.profile_id in submission.group.member_ids

    @staticmethod
    async def _load_for_owner(db: AsyncSession, submission_id: UUID, principal: Principal) -> Submission:
        """Load a submission the principal owns and may still change."""
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        submission = await SubmissionService._load(db, submission_id)
        # Graded submissions are frozen for everyone, owner or not
        if submission.evaluation is not None:
            raise AlreadyEvaluated(field="submission_id", value=submission_id)
        if not SubmissionService._is_owner(submission, profile):
            raise Forbidden("Not allowed to access this submission", field="submission_id", value=submission_id)
        return submission

    @staticmethod
    async def amend(
        db: AsyncSession,
        submission_id: UUID,
        principal: Principal,
        data: SubmissionAmend,
    ) -> Submission:
        submission = await SubmissionService._load_for_owner(db, submission_id, principal)
        work = submission.assignment.work if submission.assignment is not None else submission.group.work

        now = get_utc_now()
        status = SubmissionService.derive_status(work.start_at, work.end_at, now)
        content = submission.content if data.content is None else data.content
        artifact_url = submission.artifact_url if data.artifact_url is None else data.artifact_url
        if not content and not artifact_url:
            raise MissingContent(field="content", value=submission_id)

        submission.content = content
        submission.artifact_url = artifact_url
        submission.submitted_at = now
        submission.status = status

        await db.commit()
        logger.info(
            "Submission amended",
            extra={"submission_id": str(submission_id), "status": status.value},
        )
        return submission

    @staticmethod
    async def withdraw(db: AsyncSession, submission_id: UUID, principal: Principal) -> None:
        await SubmissionService._load_for_owner(db, submission_id, principal)
        await db.execute(
            delete(Submission)
            .where(Submission.id == submission_id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info("Submission withdrawn", extra={"submission_id": str(submission_id)})

    @staticmethod
    async def get_submission(db: AsyncSession, submission_id: UUID, principal: Principal) -> Submission:
        """Staff see any submission; students only their own."""
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        submission = await SubmissionService._load(db, submission_id)
        if profile.role == UserRole.STUDENT and not SubmissionService._is_owner(submission, profile):
            raise Forbidden("Not allowed to access this submission", field="submission_id", value=submission_id)
        return submission

    @staticmethod
    def _entry_payload(submission: Submission) -> Dict[str, Any]:
        if submission is None:
            return {"submission": None, "evaluation": None}
        evaluation = submission.evaluation
        return {
            "submission": SubmissionResponse.model_validate(submission),
            "evaluation": EvaluationResponse.model_validate(evaluation) if evaluation else None,
        }

    @staticmethod
    def _stats(submissions: List[Submission], total: int) -> SubmissionStats:
        present = [s for s in submissions if s is not None]
        return SubmissionStats(
            total=total,
            submitted=len(present),
            evaluated=sum(1 for s in present if s.evaluation is not None),
            late=sum(1 for s in present if s.status == SubmissionStatus.LATE),
        )

    @staticmethod
    async def list_for_work(db: AsyncSession, work_id: UUID, principal: Principal) -> WorkSubmissionReport:
        """Every owner of a work with its submission/evaluation, plus aggregate counts."""
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        work = await WorkService.get_work(db, work_id)

        entries: List[WorkSubmissionEntry] = []
        submissions: List[Submission] = []
        if work.is_individual:
            result = await db.execute(
                select(IndividualAssignment)
                .options(selectinload(IndividualAssignment.submission).selectinload(Submission.evaluation))
                .where(
                    IndividualAssignment.work_id == work_id,
                    IndividualAssignment.deleted_at.is_(None),
                )
                .order_by(IndividualAssignment.created_at)
                .execution_options(populate_existing=True)
            )
            for assignment in result.scalars().all():
                submissions.append(assignment.submission)
                entries.append(WorkSubmissionEntry(
                    owner_type="individual",
                    assignment_id=assignment.id,
                    student_id=assignment.student_id,
                    **SubmissionService._entry_payload(assignment.submission),
                ))
        else:
            result = await db.execute(
                select(Group)
                .options(
                    selectinload(Group.memberships),
                    selectinload(Group.submission).selectinload(Submission.evaluation),
                )
                .where(Group.work_id == work_id)
                .order_by(Group.created_at)
                .execution_options(populate_existing=True)
            )
            for group in result.scalars().all():
                submissions.append(group.submission)
                entries.append(WorkSubmissionEntry(
                    owner_type="collective",
                    group_id=group.id,
                    group_name=group.name,
                    member_ids=group.member_ids,
                    **SubmissionService._entry_payload(group.submission),
                ))

        return WorkSubmissionReport(
            work_id=work_id,
            entries=entries,
            stats=SubmissionService._stats(submissions, total=len(entries)),
        )

    @staticmethod
    async def list_for_student(db: AsyncSession, principal: Principal) -> StudentSubmissions:
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        DirectoryService.require_role(profile, UserRole.STUDENT)

        own_assignments = select(IndividualAssignment.id).where(
            IndividualAssignment.student_id == profile.profile_id,
            IndividualAssignment.deleted_at.is_(None),
        )
        own_groups = select(GroupMembership.group_id).where(GroupMembership.student_id == profile.profile_id)
        result = await db.execute(
            select(Submission)
            .options(selectinload(Submission.evaluation))
            .where(
                Submission.assignment_id.in_(own_assignments) | Submission.group_id.in_(own_groups)
            )
            .order_by(Submission.submitted_at.desc())
            .execution_options(populate_existing=True)
        )
        submissions = list(result.scalars().all())
        return StudentSubmissions(
            submissions=[SubmissionResponse.model_validate(s) for s in submissions],
            stats=SubmissionService._stats(submissions, total=len(submissions)),
        )
