"""Unit tests for WorkService (distribution of assignable work)."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select, func

from app.core.exceptions import Forbidden, InvalidConfiguration, NotFound, WrongWorkType
from app.models.assessment import AssignableWork, IndividualAssignment, Group, Submission
from app.models.enums import DistributionType, GroupFormationMode
from app.schemas.assessment import SubmissionContent
from app.schemas.coursework import WorkCreate, WorkUpdate
from app.services.group_service import GroupService
from app.services.submission_service import SubmissionService
from app.services.work_service import WorkService
from app.utils.time import get_utc_now


def _spec(**overrides) -> WorkCreate:
    now = get_utc_now()
    fields = {
        "title": "TP1",
        "instructions": "Build it",
        "distribution_type": DistributionType.INDIVIDUAL,
        "start_at": now - timedelta(days=1),
        "end_at": now + timedelta(days=7),
    }
    fields.update(overrides)
    return WorkCreate(**fields)


async def _count(db, model, *criteria) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*criteria))


def test_resolve_formation_mode_individual_is_normalized():
    for mode in (None, GroupFormationMode.STUDENT_FORMED, GroupFormationMode.INSTRUCTOR_FORMED):
        assert WorkService.resolve_formation_mode(DistributionType.INDIVIDUAL, mode) == GroupFormationMode.NOT_APPLICABLE


def test_resolve_formation_mode_collective_requires_mode():
    for mode in (None, GroupFormationMode.NOT_APPLICABLE):
        with pytest.raises(InvalidConfiguration) as exc_info:
            WorkService.resolve_formation_mode(DistributionType.COLLECTIVE, mode)
        assert exc_info.value.field == "group_formation_mode"


def test_resolve_formation_mode_collective_keeps_mode():
    mode = WorkService.resolve_formation_mode(DistributionType.COLLECTIVE, GroupFormationMode.STUDENT_FORMED)
    assert mode == GroupFormationMode.STUDENT_FORMED


@pytest.mark.asyncio
async def test_create_work_by_instructor_records_creator(db, directory):
    work = await WorkService.create_work(db, directory.space_id, directory.instructor.principal, _spec())
    assert work.id is not None
    assert work.creator_id == directory.instructor.profile_id
    assert work.group_formation_mode == GroupFormationMode.NOT_APPLICABLE
    assert work.is_active is True


@pytest.mark.asyncio
async def test_create_work_by_director_has_no_creator(db, directory):
    work = await WorkService.create_work(db, directory.space_id, directory.director.principal, _spec())
    assert work.creator_id is None


@pytest.mark.asyncio
async def test_create_individual_work_with_mode_is_normalized(db, directory):
    work = await WorkService.create_work(
        db,
        directory.space_id,
        directory.instructor.principal,
        _spec(group_formation_mode=GroupFormationMode.STUDENT_FORMED),
    )
    assert work.group_formation_mode == GroupFormationMode.NOT_APPLICABLE


@pytest.mark.asyncio
async def test_create_collective_work_without_mode_fails(db, directory):
    with pytest.raises(InvalidConfiguration):
        await WorkService.create_work(
            db,
            directory.space_id,
            directory.instructor.principal,
            _spec(distribution_type=DistributionType.COLLECTIVE),
        )
    assert await _count(db, AssignableWork) == 0


@pytest.mark.asyncio
async def test_create_work_unknown_space(db, directory):
    with pytest.raises(NotFound) as exc_info:
        await WorkService.create_work(db, uuid4(), directory.instructor.principal, _spec())
    assert exc_info.value.field == "space_id"


@pytest.mark.asyncio
async def test_create_work_student_forbidden(db, directory):
    with pytest.raises(Forbidden):
        await WorkService.create_work(db, directory.space_id, directory.students[0].principal, _spec())


@pytest.mark.asyncio
async def test_assign_individually_is_idempotent(db, directory, make_work):
    work = await make_work()
    s1, s2 = directory.students[0].profile_id, directory.students[1].profile_id

    first = await WorkService.assign_individually(db, work.id, [s1, s2], directory.instructor.principal)
    second = await WorkService.assign_individually(db, work.id, [s1, s2], directory.instructor.principal)

    assert first.assigned_count == 2
    assert first.skipped_ids == []
    assert second.assigned_count == 0
    assert set(second.skipped_ids) == {s1, s2}
    assert await _count(db, IndividualAssignment, IndividualAssignment.work_id == work.id) == 2


@pytest.mark.asyncio
async def test_assign_individually_skips_repeated_ids_in_request(db, directory, make_work):
    work = await make_work()
    s1 = directory.students[0].profile_id

    result = await WorkService.assign_individually(db, work.id, [s1, s1], directory.instructor.principal)

    assert result.assigned_count == 1
    assert result.skipped_ids == [s1]


@pytest.mark.asyncio
async def test_assign_individually_unknown_students(db, directory, make_work):
    work = await make_work()
    missing = uuid4()

    with pytest.raises(NotFound) as exc_info:
        await WorkService.assign_individually(
            db, work.id, [directory.students[0].profile_id, missing], directory.instructor.principal
        )

    assert exc_info.value.field == "student_ids"
    assert str(missing) in exc_info.value.value
    # All-or-nothing: the known student was not assigned either
    assert await _count(db, IndividualAssignment) == 0


@pytest.mark.asyncio
async def test_assign_individually_rejects_collective_work(db, directory, make_work):
    work = await make_work(DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED)
    with pytest.raises(WrongWorkType):
        await WorkService.assign_individually(
            db, work.id, [directory.students[0].profile_id], directory.instructor.principal
        )


@pytest.mark.asyncio
async def test_assign_individually_student_forbidden(db, directory, make_work):
    work = await make_work()
    with pytest.raises(Forbidden):
        await WorkService.assign_individually(
            db, work.id, [directory.students[0].profile_id], directory.students[0].principal
        )


@pytest.mark.asyncio
async def test_unassign_then_reassign_restores(db, directory, make_work):
    work = await make_work()
    s1 = directory.students[0].profile_id
    result = await WorkService.assign_individually(db, work.id, [s1], directory.instructor.principal)
    assignment_id = result.assignments[0].id

    await WorkService.unassign(db, assignment_id, directory.instructor.principal)
    with pytest.raises(NotFound):
        await WorkService.get_assignment(db, assignment_id)

    again = await WorkService.assign_individually(db, work.id, [s1], directory.instructor.principal)
    assert again.assigned_count == 1
    assert again.assignments[0].id == assignment_id
    assert (await WorkService.get_assignment(db, assignment_id)).student_id == s1


@pytest.mark.asyncio
async def test_list_works_by_role(db, directory, make_work):
    own = await make_work(title="Own")
    await WorkService.create_work(db, directory.space_id, directory.director.principal, _spec(title="Director's"))

    instructor_view = await WorkService.list_works(db, directory.instructor.principal)
    director_view = await WorkService.list_works(db, directory.director.principal)
    student_view = await WorkService.list_works(db, directory.students[0].principal)
    outsider_view = await WorkService.list_works(db, directory.outsider.principal)

    assert [w.id for w in instructor_view] == [own.id]
    assert len(director_view) == 2
    assert len(student_view) == 2
    assert outsider_view == []


@pytest.mark.asyncio
async def test_list_works_filters_active(db, directory, make_work):
    work = await make_work()
    await WorkService.update_work(db, work.id, directory.instructor.principal, WorkUpdate(is_active=False))

    assert await WorkService.list_works(db, directory.director.principal, is_active=True) == []
    assert len(await WorkService.list_works(db, directory.director.principal, is_active=False)) == 1


@pytest.mark.asyncio
async def test_update_work_fields(db, directory, make_work):
    work = await make_work()
    new_end = work.end_at + timedelta(days=3)

    updated = await WorkService.update_work(
        db, work.id, directory.instructor.principal, WorkUpdate(title="TP1 bis", end_at=new_end)
    )

    assert updated.title == "TP1 bis"
    assert updated.end_at == new_end


@pytest.mark.asyncio
async def test_update_work_rejects_inverted_window(db, directory, make_work):
    work = await make_work()
    with pytest.raises(InvalidConfiguration):
        await WorkService.update_work(
            db, work.id, directory.instructor.principal, WorkUpdate(end_at=work.start_at - timedelta(hours=1))
        )


@pytest.mark.asyncio
async def test_update_work_to_collective_requires_mode(db, directory, make_work):
    work = await make_work()
    with pytest.raises(InvalidConfiguration):
        await WorkService.update_work(
            db, work.id, directory.instructor.principal, WorkUpdate(distribution_type=DistributionType.COLLECTIVE)
        )

    updated = await WorkService.update_work(
        db,
        work.id,
        directory.instructor.principal,
        WorkUpdate(
            distribution_type=DistributionType.COLLECTIVE,
            group_formation_mode=GroupFormationMode.STUDENT_FORMED,
        ),
    )
    assert updated.is_collective
    assert updated.group_formation_mode == GroupFormationMode.STUDENT_FORMED


@pytest.mark.asyncio
async def test_update_work_type_locked_once_distributed(db, directory, make_work):
    work = await make_work()
    await WorkService.assign_individually(
        db, work.id, [directory.students[0].profile_id], directory.instructor.principal
    )

    with pytest.raises(InvalidConfiguration) as exc_info:
        await WorkService.update_work(
            db,
            work.id,
            directory.instructor.principal,
            WorkUpdate(
                distribution_type=DistributionType.COLLECTIVE,
                group_formation_mode=GroupFormationMode.INSTRUCTOR_FORMED,
            ),
        )
    assert exc_info.value.field == "distribution_type"


@pytest.mark.asyncio
async def test_delete_work_cascades(db, directory, make_work):
    individual = await make_work()
    collective = await make_work(DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED, title="Project")
    student = directory.students[0]

    result = await WorkService.assign_individually(db, individual.id, [student.profile_id], directory.instructor.principal)
    await SubmissionService.submit_individual(
        db, result.assignments[0].id, student.principal, SubmissionContent(content="done")
    )
    await GroupService.create_group(
        db, collective.id, directory.instructor.principal, "Team A", [student.profile_id]
    )

    await WorkService.delete_work(db, individual.id, directory.director.principal)
    await WorkService.delete_work(db, collective.id, directory.director.principal)

    with pytest.raises(NotFound):
        await WorkService.get_work(db, individual.id)
    assert await _count(db, IndividualAssignment) == 0
    assert await _count(db, Group) == 0
    assert await _count(db, Submission) == 0


@pytest.mark.asyncio
async def test_list_student_works(db, directory, make_work):
    individual = await make_work()
    collective = await make_work(DistributionType.COLLECTIVE, GroupFormationMode.INSTRUCTOR_FORMED, title="Project")
    student = directory.students[0]

    await WorkService.assign_individually(db, individual.id, [student.profile_id], directory.instructor.principal)
    group = await GroupService.create_group(
        db, collective.id, directory.instructor.principal, "Team A", [student.profile_id]
    )

    works = await WorkService.list_student_works(db, student.principal)

    assert [a.work_id for a in works.individual] == [individual.id]
    assert [g.id for g in works.groups] == [group.id]
    assert works.groups[0].member_ids == [student.profile_id]


@pytest.mark.asyncio
async def test_list_student_works_forbidden_for_staff(db, directory):
    with pytest.raises(Forbidden):
        await WorkService.list_student_works(db, directory.instructor.principal)
