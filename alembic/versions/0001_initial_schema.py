"""Initial coursework schema: directory, works, distribution, submissions, evaluations

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Postgres enum types are created once up front and referenced with
create_type=False, since group_formation_mode is shared by two tables.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "user_role": ("director", "instructor", "student"),
    "distribution_type": ("individual", "collective"),
    "group_formation_mode": ("not_applicable", "instructor_formed", "student_formed"),
    "submission_status": ("on_time", "late"),
}


def _enum(name: str) -> sa.types.TypeEngine:
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "cohorts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cohorts_id", "cohorts", ["id"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_subjects_id", "subjects", ["id"])

    op.create_table(
        "directors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_directors_id", "directors", ["id"])
    op.create_index("ix_directors_user_id", "directors", ["user_id"], unique=True)

    op.create_table(
        "instructors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("specialty", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_instructors_id", "instructors", ["id"])
    op.create_index("ix_instructors_user_id", "instructors", ["user_id"], unique=True)

    op.create_table(
        "students",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("cohort_id", sa.Uuid(), sa.ForeignKey("cohorts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("student_number", sa.String(length=20), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_students_id", "students", ["id"])
    op.create_index("ix_students_user_id", "students", ["user_id"], unique=True)
    op.create_index("ix_students_cohort_id", "students", ["cohort_id"])

    op.create_table(
        "learning_spaces",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("subject_id", sa.Uuid(), sa.ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("cohort_id", sa.Uuid(), sa.ForeignKey("cohorts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("instructor_id", sa.Uuid(), sa.ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_learning_spaces_id", "learning_spaces", ["id"])
    op.create_index("ix_learning_spaces_subject_id", "learning_spaces", ["subject_id"])
    op.create_index("ix_learning_spaces_cohort_id", "learning_spaces", ["cohort_id"])
    op.create_index("ix_learning_spaces_instructor_id", "learning_spaces", ["instructor_id"])

    op.create_table(
        "space_enrollments",
        sa.Column("space_id", sa.Uuid(), sa.ForeignKey("learning_spaces.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("enrolled_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "works",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("space_id", sa.Uuid(), sa.ForeignKey("learning_spaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("creator_id", sa.Uuid(), sa.ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=False),
        sa.Column("instructions_url", sa.Text(), nullable=True),
        sa.Column("distribution_type", _enum("distribution_type"), nullable=False),
        sa.Column("group_formation_mode", _enum("group_formation_mode"), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "(distribution_type = 'individual' AND group_formation_mode = 'not_applicable') OR "
            "(distribution_type = 'collective' AND group_formation_mode <> 'not_applicable')",
            name="ck_works_distribution_mode",
        ),
        sa.CheckConstraint("end_at > start_at", name="ck_works_window"),
    )
    op.create_index("ix_works_id", "works", ["id"])
    op.create_index("ix_works_space_id", "works", ["space_id"])
    op.create_index("ix_works_creator_id", "works", ["creator_id"])

    op.create_table(
        "individual_assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("work_id", sa.Uuid(), sa.ForeignKey("works.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("work_id", "student_id", name="uq_individual_assignments_work_student"),
    )
    op.create_index("ix_individual_assignments_id", "individual_assignments", ["id"])
    op.create_index("ix_individual_assignments_work_id", "individual_assignments", ["work_id"])
    op.create_index("ix_individual_assignments_student_id", "individual_assignments", ["student_id"])

    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("work_id", sa.Uuid(), sa.ForeignKey("works.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("formation_mode", _enum("group_formation_mode"), nullable=False),
        sa.Column("creator_id", sa.Uuid(), sa.ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_groups_id", "groups", ["id"])
    op.create_index("ix_groups_work_id", "groups", ["work_id"])

    op.create_table(
        "group_memberships",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("group_id", "student_id", name="uq_group_memberships_group_student"),
    )
    op.create_index("ix_group_memberships_id", "group_memberships", ["id"])
    op.create_index("ix_group_memberships_group_id", "group_memberships", ["group_id"])
    op.create_index("ix_group_memberships_student_id", "group_memberships", ["student_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "assignment_id",
            sa.Uuid(),
            sa.ForeignKey("individual_assignments.id", ondelete="CASCADE"),
            nullable=True,
            unique=True,
        ),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=True, unique=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("artifact_url", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("status", _enum("submission_status"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "(assignment_id IS NOT NULL AND group_id IS NULL) OR "
            "(assignment_id IS NULL AND group_id IS NOT NULL)",
            name="ck_submissions_single_owner",
        ),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"])

    op.create_table(
        "evaluations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("submission_id", sa.Uuid(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("grader_id", sa.Uuid(), sa.ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("evaluated_at", sa.DateTime(), nullable=False),
        sa.Column("modified_by_id", sa.Uuid(), sa.ForeignKey("directors.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("modified_at", sa.DateTime(), nullable=True),
        sa.Column("override_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(modified_by_id IS NULL AND modified_at IS NULL AND override_reason IS NULL) OR "
            "(modified_by_id IS NOT NULL AND modified_at IS NOT NULL AND override_reason IS NOT NULL)",
            name="ck_evaluations_override_fields",
        ),
    )
    op.create_index("ix_evaluations_id", "evaluations", ["id"])
    op.create_index("ix_evaluations_submission_id", "evaluations", ["submission_id"], unique=True)


def downgrade() -> None:
    for table in (
        "evaluations",
        "submissions",
        "group_memberships",
        "groups",
        "individual_assignments",
        "works",
        "space_enrollments",
        "learning_spaces",
        "students",
        "instructors",
        "directors",
        "subjects",
        "cohorts",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in reversed(list(ENUMS)):
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
