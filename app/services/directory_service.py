"""Directory Service - read-side lookups the coursework engine depends on"""

from typing import List, Optional, Sequence, Set, Union
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden, NotFound
from app.models.academic import LearningSpace, space_enrollments
from app.models.enums import UserRole
from app.models.user import User, Director, Instructor, Student
from app.schemas.principal import (
    Principal, Profile, DirectorProfile, InstructorProfile, StudentProfile,
)


class DirectoryService:
    """Accounts, profiles and learning spaces as seen by the coursework engine"""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def resolve_profile(db: AsyncSession, account_id: UUID) -> Profile:
        """
        Turn an account into its role-specific profile.

        Raises:
            NotFound: unknown or inactive account, or no profile for its role
        """
        user = await DirectoryService.get_user_by_id(db, account_id)
        if not user or not user.is_active:
            raise NotFound("Account not found", field="account_id", value=account_id)

        if user.role == UserRole.DIRECTOR:
            profile = await db.scalar(select(Director).where(Director.user_id == user.id))
            if profile:
                return DirectorProfile(account_id=user.id, profile_id=profile.id)
        elif user.role == UserRole.INSTRUCTOR:
            profile = await db.scalar(select(Instructor).where(Instructor.user_id == user.id))
            if profile:
                return InstructorProfile(account_id=user.id, profile_id=profile.id)
        else:
            profile = await db.scalar(select(Student).where(Student.user_id == user.id))
            if profile:
                return StudentProfile(
                    account_id=user.id, profile_id=profile.id, cohort_id=profile.cohort_id
                )

        raise NotFound(f"{user.role.value.capitalize()} profile not found", field="account_id", value=account_id)

    @staticmethod
    def require_role(actor: Union[Principal, Profile], *roles: UserRole) -> None:
        """Forbidden unless the principal or resolved profile holds one of roles."""
        role = UserRole(actor.role)
        if role not in roles:
            raise Forbidden(
                f"Role {role.value} may not perform this operation",
                field="role",
                value=role.value,
            )

    @staticmethod
    async def get_space(db: AsyncSession, space_id: UUID) -> LearningSpace:
        space = await db.get(LearningSpace, space_id)
        if not space:
            raise NotFound("Learning space not found", field="space_id", value=space_id)
        return space

    @staticmethod
    async def existing_student_ids(db: AsyncSession, student_ids: Sequence[UUID]) -> Set[UUID]:
        if not student_ids:
            return set()
        result = await db.execute(select(Student.id).where(Student.id.in_(set(student_ids))))
        return set(result.scalars().all())

    @staticmethod
    async def require_students(db: AsyncSession, student_ids: Sequence[UUID]) -> None:
        """Fail with NotFound listing every id that is not a student profile."""
        found = await DirectoryService.existing_student_ids(db, student_ids)
        missing = [sid for sid in dict.fromkeys(student_ids) if sid not in found]
        if missing:
            raise NotFound(
                "Student(s) not found",
                field="student_ids",
                value=", ".join(str(sid) for sid in missing),
            )

    @staticmethod
    async def space_roster(db: AsyncSession, space_id: UUID) -> List[UUID]:
        """Student profile ids enrolled in a learning space"""
        result = await db.execute(
            select(space_enrollments.c.student_id).where(space_enrollments.c.space_id == space_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def enrolled_space_ids(db: AsyncSession, student_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(space_enrollments.c.space_id).where(space_enrollments.c.student_id == student_id)
        )
        return list(result.scalars().all())
