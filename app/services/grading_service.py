"""Grading Service - single-shot evaluations, audited overrides and score statistics"""

from typing import Optional, List, Dict, Tuple
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.config import settings
from app.core.exceptions import AlreadyGraded, MissingReason, NotFound, OutOfRange
from app.models.academic import LearningSpace, Subject
from app.models.assessment import (
    AssignableWork, IndividualAssignment, Group, GroupMembership, Submission, Evaluation,
)
from app.models.enums import UserRole
from app.schemas.assessment import (
    EvaluationResponse, ScoreSummary, ScopeStats, StudentGrades, SubjectGrades, GradesBySubject,
)
from app.schemas.principal import InstructorProfile, Principal, StudentProfile
from app.services.directory_service import DirectoryService
from app.services.submission_service import SubmissionService
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)

# [lower, upper) buckets; scores are capped at SCORE_MAX so the last one is open-ended
DISTRIBUTION_BUCKETS: Tuple[Tuple[str, float], ...] = (
    ("0-5", 5),
    ("5-10", 10),
    ("10-15", 15),
    ("15-20", float("inf")),
)


def summarize(scores: List[float]) -> ScoreSummary:
    if not scores:
        return ScoreSummary()
    return ScoreSummary(
        count=len(scores),
        mean=round(sum(scores) / len(scores), 2),
        min=min(scores),
        max=max(scores),
    )


def distribution(scores: List[float]) -> Dict[str, int]:
    buckets = {label: 0 for label, _ in DISTRIBUTION_BUCKETS}
    for score in scores:
        for label, upper in DISTRIBUTION_BUCKETS:
            if score < upper:
                buckets[label] += 1
                break
    return buckets


def _scoped(query):
    """Join an Evaluation query through its submission owner to the work's learning space."""
    return (
        query.join(Submission, Evaluation.submission_id == Submission.id)
        .outerjoin(IndividualAssignment, Submission.assignment_id == IndividualAssignment.id)
        .outerjoin(Group, Submission.group_id == Group.id)
        .join(
            AssignableWork,
            AssignableWork.id == func.coalesce(IndividualAssignment.work_id, Group.work_id),
        )
        .join(LearningSpace, LearningSpace.id == AssignableWork.space_id)
    )


class GradingService:
    @staticmethod
    def check_score(score: float, field: str = "score") -> None:
        if not settings.SCORE_MIN <= score <= settings.SCORE_MAX:
            raise OutOfRange(
                f"Score must be between {settings.SCORE_MIN:g} and {settings.SCORE_MAX:g}",
                field=field,
                value=score,
            )

    @staticmethod
    async def get_evaluation(
        db: AsyncSession,
        evaluation_id: UUID,
        principal: Optional[Principal] = None,
    ) -> Evaluation:
        """Students may only read the evaluation of their own submission."""
        evaluation = await db.get(Evaluation, evaluation_id, populate_existing=True)
        if not evaluation:
            raise NotFound("Evaluation not found", field="evaluation_id", value=evaluation_id)
        if principal is not None and principal.role == UserRole.STUDENT:
            await SubmissionService.get_submission(db, evaluation.submission_id, principal)
        return evaluation

    @staticmethod
    async def grade(
        db: AsyncSession,
        submission_id: UUID,
        principal: Principal,
        score: float,
        comment: Optional[str] = None,
    ) -> Evaluation:
        """
        Record the one evaluation of a submission.

        Grading is single-shot: a second attempt fails with AlreadyGraded,
        including the loser of a concurrent race on the unique submission key.
        A director grading directly is recorded with no grader.
        """
        DirectoryService.require_role(principal, UserRole.INSTRUCTOR, UserRole.DIRECTOR)
        GradingService.check_score(score)

        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        grader_id = profile.profile_id if isinstance(profile, InstructorProfile) else None

        submission = await db.get(Submission, submission_id, populate_existing=True)
        if not submission:
            raise NotFound("Submission not found", field="submission_id", value=submission_id)

        existing = await db.scalar(select(Evaluation.id).where(Evaluation.submission_id == submission_id))
        if existing is not None:
            raise AlreadyGraded(field="submission_id", value=submission_id)

        evaluation = Evaluation(
            submission_id=submission_id,
            score=score,
            comment=comment,
            grader_id=grader_id,
            evaluated_at=get_utc_now(),
        )
        db.add(evaluation)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise AlreadyGraded(field="submission_id", value=submission_id)

        logger.info(
            "Grade recorded",
            extra={
                "evaluation_id": str(evaluation.id),
                "submission_id": str(submission_id),
                "score": score,
                "grader_id": str(grader_id) if grader_id else None,
            },
        )
        return evaluation

    @staticmethod
    async def override(
        db: AsyncSession,
        evaluation_id: UUID,
        principal: Principal,
        score: Optional[float] = None,
        comment: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Evaluation:
        """Director-only correction; the original grader is kept next to the overriding director."""
        DirectoryService.require_role(principal, UserRole.DIRECTOR)
        if not reason or not reason.strip():
            raise MissingReason(field="reason")
        if score is not None:
            GradingService.check_score(score)

        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        evaluation = await GradingService.get_evaluation(db, evaluation_id)
        previous_score = evaluation.score

        if score is not None:
            evaluation.score = score
        if comment is not None:
            evaluation.comment = comment
        evaluation.modified_by_id = profile.profile_id
        evaluation.modified_at = get_utc_now()
        evaluation.override_reason = reason.strip()

        await db.commit()
        logger.info(
            "Grade overridden",
            extra={
                "evaluation_id": str(evaluation_id),
                "previous_score": previous_score,
                "score": evaluation.score,
                "director_id": str(profile.profile_id),
                "reason": evaluation.override_reason,
            },
        )
        return evaluation

    @staticmethod
    async def stats_for_scope(
        db: AsyncSession,
        principal: Principal,
        cohort_id: Optional[UUID] = None,
        subject_id: Optional[UUID] = None,
    ) -> ScopeStats:
        """Score aggregates over every evaluation, optionally narrowed to a cohort and/or subject."""
        DirectoryService.require_role(principal, UserRole.DIRECTOR)

        query = select(Evaluation.score)
        if cohort_id or subject_id:
            query = _scoped(query)
            if cohort_id:
                query = query.where(LearningSpace.cohort_id == cohort_id)
            if subject_id:
                query = query.where(LearningSpace.subject_id == subject_id)

        result = await db.execute(query)
        scores = list(result.scalars().all())

        summary = summarize(scores)
        passed = sum(1 for s in scores if s >= settings.PASS_MARK)
        return ScopeStats(
            **summary.model_dump(),
            distribution=distribution(scores),
            pass_rate=round(100 * passed / len(scores), 2) if scores else 0.0,
        )

    @staticmethod
    def _own_submission_filter(student_id: UUID):
        own_assignments = select(IndividualAssignment.id).where(
            IndividualAssignment.student_id == student_id,
            IndividualAssignment.deleted_at.is_(None),
        )
        own_groups = select(GroupMembership.group_id).where(GroupMembership.student_id == student_id)
        return Submission.assignment_id.in_(own_assignments) | Submission.group_id.in_(own_groups)

    @staticmethod
    async def _student_profile(db: AsyncSession, principal: Principal) -> StudentProfile:
        profile = await DirectoryService.resolve_profile(db, principal.account_id)
        DirectoryService.require_role(profile, UserRole.STUDENT)
        return profile

    @staticmethod
    async def student_grades(db: AsyncSession, principal: Principal) -> StudentGrades:
        profile = await GradingService._student_profile(db, principal)
        result = await db.execute(
            select(Evaluation)
            .join(Submission, Evaluation.submission_id == Submission.id)
            .where(GradingService._own_submission_filter(profile.profile_id))
            .order_by(Evaluation.evaluated_at.desc())
        )
        evaluations = list(result.scalars().all())
        return StudentGrades(
            evaluations=[EvaluationResponse.model_validate(e) for e in evaluations],
            stats=summarize([e.score for e in evaluations]),
        )

    @staticmethod
    async def grades_by_subject(db: AsyncSession, principal: Principal) -> GradesBySubject:
        """Per-subject means of the student's scores; overall mean is the mean of subject means."""
        profile = await GradingService._student_profile(db, principal)
        query = _scoped(select(Evaluation.score, Subject.id, Subject.name))
        result = await db.execute(
            query.join(Subject, Subject.id == LearningSpace.subject_id)
            .where(GradingService._own_submission_filter(profile.profile_id))
            .order_by(Subject.name, Evaluation.evaluated_at)
        )

        by_subject: Dict[UUID, SubjectGrades] = {}
        for score, subject_id, subject_name in result.all():
            entry = by_subject.setdefault(
                subject_id,
                SubjectGrades(subject_id=subject_id, subject_name=subject_name, scores=[], mean=0.0),
            )
            entry.scores.append(score)

        subjects = list(by_subject.values())
        for entry in subjects:
            entry.mean = round(sum(entry.scores) / len(entry.scores), 2)

        overall = round(sum(s.mean for s in subjects) / len(subjects), 2) if subjects else 0.0
        return GradesBySubject(subjects=subjects, overall_mean=overall)
