#!/usr/bin/env python3
"""
Populate a demo directory and a few works.

Usage:
  python scripts/seed_demo.py
  # Requires DATABASE_URL and SECRET_KEY in .env (or export)

Wipes every coursework and directory table first. Prints a bearer token per
demo account so the API can be exercised right away.
"""
import asyncio
import os
import sys
from datetime import timedelta

# Load .env from project root
try:
    from dotenv import load_dotenv
    _root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    load_dotenv(os.path.join(_root, ".env"))
except ImportError:
    pass

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete, insert

from app.core.security import create_access_token
from app.database import AsyncSessionLocal, init_db, close_db
from app.models import (
    User, Director, Instructor, Student, Cohort, Subject, LearningSpace, space_enrollments,
    AssignableWork, IndividualAssignment, Group, GroupMembership, Submission, Evaluation,
)
from app.models.enums import DistributionType, GroupFormationMode, UserRole
from app.schemas.coursework import WorkCreate
from app.schemas.principal import Principal
from app.services.directory_service import DirectoryService
from app.services.work_service import WorkService
from app.utils.time import get_utc_now

SUBJECTS = [
    ("INFO301", "Object-Oriented Programming"),
    ("INFO302", "Advanced Databases"),
    ("INFO303", "Advanced Algorithms"),
]

WORKS = [
    ("Lab 1 - Classes and Objects", "Model a library management system as a class hierarchy.",
     DistributionType.INDIVIDUAL, None),
    ("Project - Management System", "Build a complete management system with a graphical interface as a team.",
     DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED),
    ("Lab 2 - SQL Queries", "Write complex SQL queries to analyse a database.",
     DistributionType.INDIVIDUAL, None),
]

# Delete order respects foreign keys
TABLES = [
    Evaluation, Submission, GroupMembership, Group, IndividualAssignment, AssignableWork,
    space_enrollments, LearningSpace, Student, Instructor, Director, Subject, Cohort, User,
]


def _account(email: str, first_name: str, last_name: str, role: UserRole) -> User:
    return User(email=email, first_name=first_name, last_name=last_name, role=role, is_active=True)


async def seed() -> None:
    await init_db()
    try:
        await _populate()
    finally:
        await close_db()


async def _populate() -> None:
    async with AsyncSessionLocal() as db:
        for table in TABLES:
            await db.execute(delete(table))
        await db.commit()
        print("Database cleared")

        director_account = _account("director@coursework.example", "Dana", "Director", UserRole.DIRECTOR)
        db.add(director_account)
        await db.flush()
        db.add(Director(user_id=director_account.id, phone="+229 97 00 00 00"))

        instructor_accounts = []
        instructors = []
        for i, specialty in enumerate(("Mathematics", "Computer Science", "Physics"), start=1):
            account = _account(f"instructor{i}@coursework.example", f"Prof{i}", f"Instructor{i}", UserRole.INSTRUCTOR)
            db.add(account)
            await db.flush()
            instructor = Instructor(user_id=account.id, specialty=specialty, department="Sciences")
            db.add(instructor)
            instructor_accounts.append(account)
            instructors.append(instructor)

        undergrad = Cohort(name="BSc 3 Computer Science", year=2024)
        masters = Cohort(name="MSc 1 Data Science", year=2025)
        db.add_all([undergrad, masters])
        await db.flush()

        students = []
        for i in range(1, 11):
            account = _account(f"student{i}@coursework.example", f"Pupil{i}", f"Student{i}", UserRole.STUDENT)
            db.add(account)
            await db.flush()
            student = Student(
                user_id=account.id,
                cohort_id=undergrad.id if i <= 7 else masters.id,
                student_number=f"STU2024{i:04d}",
            )
            db.add(student)
            students.append(student)

        subjects = [Subject(code=code, name=name) for code, name in SUBJECTS]
        db.add_all(subjects)
        await db.flush()

        spaces = []
        undergrads = [s for s in students if s.cohort_id == undergrad.id]
        for i, subject in enumerate(subjects):
            space = LearningSpace(
                name=f"{subject.name} - {undergrad.name}",
                subject_id=subject.id,
                cohort_id=undergrad.id,
                instructor_id=instructors[i % len(instructors)].id,
            )
            db.add(space)
            await db.flush()
            for student in undergrads:
                await db.execute(insert(space_enrollments).values(space_id=space.id, student_id=student.id))
            spaces.append(space)

        await db.commit()
        print(f"Directory seeded: 1 director, {len(instructors)} instructors, {len(students)} students, "
              f"{len(spaces)} learning spaces")

        now = get_utc_now()
        for i, (title, instructions, distribution_type, mode) in enumerate(WORKS):
            space = spaces[i % len(spaces)]
            account = instructor_accounts[i % len(instructor_accounts)]
            principal = Principal(account_id=account.id, role=UserRole.INSTRUCTOR)
            work = await WorkService.create_work(
                db,
                space.id,
                principal,
                WorkCreate(
                    title=title,
                    instructions=instructions,
                    distribution_type=distribution_type,
                    group_formation_mode=mode,
                    start_at=now - timedelta(days=1),
                    end_at=now + timedelta(days=14),
                ),
            )
            if work.is_individual:
                roster = await DirectoryService.space_roster(db, space.id)
                await WorkService.assign_individually(db, work.id, roster, principal)
        print(f"{len(WORKS)} works published")

    print("\nBearer tokens:")
    print(f"  director    {create_access_token(director_account.id, UserRole.DIRECTOR)}")
    for account in instructor_accounts:
        print(f"  {account.email}  {create_access_token(account.id, UserRole.INSTRUCTOR)}")


def main():
    asyncio.run(seed())


if __name__ == "__main__":
    main()
