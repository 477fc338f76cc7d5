"""Unit tests for SubmissionService (windows, lateness, ownership, frozen once graded)."""

from datetime import datetime, timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import select, func

from app.core.exceptions import AlreadyEvaluated, Forbidden, MissingContent, NotFound, NotStarted
from app.models.assessment import Submission, IndividualOwner, GroupOwner
from app.models.enums import DistributionType, GroupFormationMode, SubmissionStatus
from app.schemas.assessment import SubmissionContent, SubmissionAmend
from app.services.grading_service import GradingService
from app.services.group_service import GroupService
from app.services.submission_service import SubmissionService
from app.services.work_service import WorkService
from app.utils.time import get_utc_now

NOW = "app.services.submission_service.get_utc_now"


async def _assign(db, directory, work, student):
    result = await WorkService.assign_individually(db, work.id, [student.profile_id], directory.instructor.principal)
    return result.assignments[0].id


@pytest.fixture
async def window_work(make_work):
    """Individual work open 2024-10-01 .. 2024-11-01."""
    return await make_work(start_at=datetime(2024, 10, 1), end_at=datetime(2024, 11, 1))


@pytest.mark.asyncio
async def test_submission_status_follows_window(db, directory, window_work):
    """Assigned early, submitted mid-window is on time; another student submitting after the end is late."""
    s1, s2 = directory.students[0], directory.students[1]
    a1 = await _assign(db, directory, window_work, s1)
    a2 = await _assign(db, directory, window_work, s2)

    with patch(NOW, return_value=datetime(2024, 10, 15)):
        on_time = await SubmissionService.submit_individual(db, a1, s1.principal, SubmissionContent(content="v1"))
    with patch(NOW, return_value=datetime(2024, 11, 5)):
        late = await SubmissionService.submit_individual(db, a2, s2.principal, SubmissionContent(content="v1"))

    assert on_time.status == SubmissionStatus.ON_TIME
    assert late.status == SubmissionStatus.LATE
    assert late.submitted_at == datetime(2024, 11, 5)


@pytest.mark.asyncio
async def test_window_bounds_are_on_time(db, directory, window_work):
    student = directory.students[0]
    assignment_id = await _assign(db, directory, window_work, student)

    for moment in (datetime(2024, 10, 1), datetime(2024, 11, 1)):
        with patch(NOW, return_value=moment):
            submission = await SubmissionService.submit_individual(
                db, assignment_id, student.principal, SubmissionContent(content="edge")
            )
        assert submission.status == SubmissionStatus.ON_TIME


@pytest.mark.asyncio
async def test_submit_before_start_fails(db, directory, window_work):
    student = directory.students[0]
    assignment_id = await _assign(db, directory, window_work, student)

    with patch(NOW, return_value=datetime(2024, 9, 30, 23, 59)):
        with pytest.raises(NotStarted) as exc_info:
            await SubmissionService.submit_individual(
                db, assignment_id, student.principal, SubmissionContent(content="early")
            )

    assert exc_info.value.field == "start_at"
    assert await db.scalar(select(func.count()).select_from(Submission)) == 0


@pytest.mark.asyncio
async def test_resubmission_updates_in_place(db, directory, window_work):
    student = directory.students[0]
    assignment_id = await _assign(db, directory, window_work, student)

    with patch(NOW, return_value=datetime(2024, 10, 15)):
        first = await SubmissionService.submit_individual(
            db, assignment_id, student.principal, SubmissionContent(content="v1")
        )
    first_id = first.id
    with patch(NOW, return_value=datetime(2024, 11, 2)):
        second = await SubmissionService.submit_individual(
            db, assignment_id, student.principal, SubmissionContent(artifact_url="https://files.example.com/v2.zip")
        )

    assert second.id == first_id
    assert second.content is None
    assert second.artifact_url == "https://files.example.com/v2.zip"
    assert second.status == SubmissionStatus.LATE
    assert second.owner == IndividualOwner(assignment_id=assignment_id)
    assert await db.scalar(select(func.count()).select_from(Submission)) == 1


@pytest.mark.asyncio
async def test_submit_for_someone_elses_assignment_forbidden(db, directory, make_work):
    work = await make_work()
    owner, other = directory.students[0], directory.students[1]
    assignment_id = await _assign(db, directory, work, owner)

    with pytest.raises(Forbidden):
        await SubmissionService.submit_individual(db, assignment_id, other.principal, SubmissionContent(content="x"))
    with pytest.raises(Forbidden):
        await SubmissionService.submit_individual(
            db, assignment_id, directory.instructor.principal, SubmissionContent(content="x")
        )


@pytest.mark.asyncio
async def test_submit_to_retired_assignment_not_found(db, directory, make_work):
    work = await make_work()
    student = directory.students[0]
    assignment_id = await _assign(db, directory, work, student)
    await WorkService.unassign(db, assignment_id, directory.instructor.principal)

    with pytest.raises(NotFound):
        await SubmissionService.submit_individual(db, assignment_id, student.principal, SubmissionContent(content="x"))


@pytest.mark.asyncio
async def test_group_submission_by_member(db, directory, make_work):
    work = await make_work(DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED)
    s1, s2, s3 = directory.students
    group = await GroupService.create_group(
        db, work.id, directory.instructor.principal, "Team", [s1.profile_id, s2.profile_id]
    )

    submission = await SubmissionService.submit_group(db, group.id, s2.principal, SubmissionContent(content="team report"))

    assert submission.owner == GroupOwner(group_id=group.id)
    assert submission.status == SubmissionStatus.ON_TIME
    with pytest.raises(Forbidden):
        await SubmissionService.submit_group(db, group.id, s3.principal, SubmissionContent(content="not mine"))


@pytest.mark.asyncio
async def test_group_submission_unknown_group(db, directory):
    with pytest.raises(NotFound):
        await SubmissionService.submit_group(db, uuid4(), directory.students[0].principal, SubmissionContent(content="x"))


@pytest.mark.asyncio
async def test_amend_refreshes_time_and_status(db, directory, window_work):
    student = directory.students[0]
    assignment_id = await _assign(db, directory, window_work, student)
    with patch(NOW, return_value=datetime(2024, 10, 15)):
        submission = await SubmissionService.submit_individual(
            db, assignment_id, student.principal, SubmissionContent(content="v1")
        )

    with patch(NOW, return_value=datetime(2024, 11, 3)):
        amended = await SubmissionService.amend(db, submission.id, student.principal, SubmissionAmend(content="v2"))

    assert amended.content == "v2"
    assert amended.submitted_at == datetime(2024, 11, 3)
    assert amended.status == SubmissionStatus.LATE


@pytest.mark.asyncio
async def test_amend_by_non_owner_forbidden(db, directory, make_work):
    work = await make_work()
    owner, other = directory.students[0], directory.students[1]
    assignment_id = await _assign(db, directory, work, owner)
    submission = await SubmissionService.submit_individual(db, assignment_id, owner.principal, SubmissionContent(content="v1"))

    with pytest.raises(Forbidden):
        await SubmissionService.amend(db, submission.id, other.principal, SubmissionAmend(content="v2"))


@pytest.mark.asyncio
async def test_amend_cannot_empty_submission(db, directory, make_work):
    work = await make_work()
    student = directory.students[0]
    assignment_id = await _assign(db, directory, work, student)
    submission = await SubmissionService.submit_individual(
        db, assignment_id, student.principal, SubmissionContent(content="x")
    )

    with pytest.raises(MissingContent):
        await SubmissionService.amend(
            db, submission.id, student.principal, SubmissionAmend(content="", artifact_url="")
        )

    kept = await SubmissionService.get_submission(db, submission.id, student.principal)
    assert kept.content == "x"


@pytest.mark.asyncio
async def test_amend_swaps_content_for_artifact(db, directory, make_work):
    work = await make_work()
    student = directory.students[0]
    assignment_id = await _assign(db, directory, work, student)
    submission = await SubmissionService.submit_individual(
        db, assignment_id, student.principal, SubmissionContent(content="x")
    )

    amended = await SubmissionService.amend(
        db,
        submission.id,
        student.principal,
        SubmissionAmend(content="", artifact_url="https://git.example.com/s1/lab"),
    )

    assert amended.content == ""
    assert amended.artifact_url == "https://git.example.com/s1/lab"


def test_derive_status_from_window():
    start, end = datetime(2024, 10, 1), datetime(2024, 11, 1)
    assert SubmissionService.derive_status(start, end, start) == SubmissionStatus.ON_TIME
    assert SubmissionService.derive_status(start, end, end) == SubmissionStatus.ON_TIME
    assert SubmissionService.derive_status(start, end, end + timedelta(seconds=1)) == SubmissionStatus.LATE
    with pytest.raises(NotStarted):
        SubmissionService.derive_status(start, end, start - timedelta(seconds=1))


@pytest.mark.asyncio
async def test_graded_submission_is_frozen_for_everyone(db, directory, make_work):
    work = await make_work()
    owner, other = directory.students[0], directory.students[1]
    assignment_id = await _assign(db, directory, work, owner)
    submission = await SubmissionService.submit_individual(db, assignment_id, owner.principal, SubmissionContent(content="v1"))
    await GradingService.grade(db, submission.id, directory.instructor.principal, 14, "good")

    for principal in (owner.principal, other.principal, directory.instructor.principal):
        with pytest.raises(AlreadyEvaluated):
            await SubmissionService.amend(db, submission.id, principal, SubmissionAmend(content="v2"))
        with pytest.raises(AlreadyEvaluated):
            await SubmissionService.withdraw(db, submission.id, principal)
    with pytest.raises(AlreadyEvaluated):
        await SubmissionService.submit_individual(db, assignment_id, owner.principal, SubmissionContent(content="v3"))

    stored = await SubmissionService.get_submission(db, submission.id, owner.principal)
    assert stored.content == "v1"


@pytest.mark.asyncio
async def test_withdraw_deletes_submission(db, directory, make_work):
    work = await make_work()
    student = directory.students[0]
    assignment_id = await _assign(db, directory, work, student)
    submission = await SubmissionService.submit_individual(db, assignment_id, student.principal, SubmissionContent(content="v1"))

    await SubmissionService.withdraw(db, submission.id, student.principal)

    with pytest.raises(NotFound):
        await SubmissionService.get_submission(db, submission.id, student.principal)
    # The assignment stays and can be submitted again
    again = await SubmissionService.submit_individual(db, assignment_id, student.principal, SubmissionContent(content="v2"))
    assert again.id != submission.id


@pytest.mark.asyncio
async def test_get_submission_visibility(db, directory, make_work):
    work = await make_work()
    owner, other = directory.students[0], directory.students[1]
    assignment_id = await _assign(db, directory, work, owner)
    submission = await SubmissionService.submit_individual(db, assignment_id, owner.principal, SubmissionContent(content="v1"))

    assert (await SubmissionService.get_submission(db, submission.id, directory.instructor.principal)).id == submission.id
    assert (await SubmissionService.get_submission(db, submission.id, directory.director.principal)).id == submission.id
    with pytest.raises(Forbidden):
        await SubmissionService.get_submission(db, submission.id, other.principal)


@pytest.mark.asyncio
async def test_list_for_work_individual(db, directory, make_work):
    now = get_utc_now()
    work = await make_work(start_at=now - timedelta(days=10), end_at=now + timedelta(days=10))
    s1, s2, s3 = directory.students
    result = await WorkService.assign_individually(
        db, work.id, [s.profile_id for s in directory.students], directory.instructor.principal
    )
    by_student = {a.student_id: a.id for a in result.assignments}

    first = await SubmissionService.submit_individual(db, by_student[s1.profile_id], s1.principal, SubmissionContent(content="a"))
    with patch(NOW, return_value=now + timedelta(days=11)):
        await SubmissionService.submit_individual(db, by_student[s2.profile_id], s2.principal, SubmissionContent(content="b"))
    await GradingService.grade(db, first.id, directory.instructor.principal, 12)

    report = await SubmissionService.list_for_work(db, work.id, directory.instructor.principal)

    assert report.stats.total == 3
    assert report.stats.submitted == 2
    assert report.stats.evaluated == 1
    assert report.stats.late == 1
    entries = {e.student_id: e for e in report.entries}
    assert entries[s1.profile_id].evaluation.score == 12
    assert entries[s3.profile_id].submission is None
    assert all(e.owner_type == "individual" for e in report.entries)


@pytest.mark.asyncio
async def test_list_for_work_collective(db, directory, make_work):
    work = await make_work(DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED)
    s1, s2, s3 = directory.students
    team_a = await GroupService.create_group(db, work.id, directory.instructor.principal, "A", [s1.profile_id, s2.profile_id])
    await GroupService.create_group(db, work.id, directory.instructor.principal, "B", [s3.profile_id])
    await SubmissionService.submit_group(db, team_a.id, s1.principal, SubmissionContent(content="ours"))

    report = await SubmissionService.list_for_work(db, work.id, directory.director.principal)

    assert report.stats.total == 2
    assert report.stats.submitted == 1
    entries = {e.group_name: e for e in report.entries}
    assert set(entries["A"].member_ids) == {s1.profile_id, s2.profile_id}
    assert entries["A"].submission is not None
    assert entries["B"].submission is None


@pytest.mark.asyncio
async def test_list_for_work_student_forbidden(db, directory, make_work):
    work = await make_work()
    with pytest.raises(Forbidden):
        await SubmissionService.list_for_work(db, work.id, directory.students[0].principal)


@pytest.mark.asyncio
async def test_list_for_student_includes_group_submissions(db, directory, make_work):
    individual = await make_work()
    collective = await make_work(DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED, title="Project")
    s1, s2 = directory.students[0], directory.students[1]
    assignment_id = await _assign(db, directory, individual, s1)
    group = await GroupService.create_group(db, collective.id, directory.instructor.principal, "A", [s1.profile_id, s2.profile_id])

    await SubmissionService.submit_individual(db, assignment_id, s1.principal, SubmissionContent(content="solo"))
    await SubmissionService.submit_group(db, group.id, s2.principal, SubmissionContent(content="team"))

    mine = await SubmissionService.list_for_student(db, s1.principal)
    theirs = await SubmissionService.list_for_student(db, s2.principal)

    assert mine.stats.total == 2
    assert {s.content for s in mine.submissions} == {"solo", "team"}
    assert [s.content for s in theirs.submissions] == ["team"]
