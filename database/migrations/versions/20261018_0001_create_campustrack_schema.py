"""create campustrack schema

Revision ID: 20261018_0001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "faculty", "student", name="user_role")
subject_type_enum = sa.Enum("theory", "practical", name="subject_type")
attendance_status_enum = sa.Enum("present", "absent", name="attendance_status")
# Shared by the MDC attendance table; the type is created with attendance_records.
existing_attendance_status_enum = postgresql.ENUM("present", "absent", name="attendance_status", create_type=False)
notification_type_enum = sa.Enum("attendance", "notice", "event", "system", name="notification_type")


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True, nullable=False)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "users",
        _id_column(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "departments",
        _id_column(),
        sa.Column("name", sa.String(length=200), nullable=False, unique=True),
        sa.Column("code", sa.String(length=20), nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        "academic_years",
        _id_column(),
        sa.Column("year", sa.Integer(), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
    )

    op.create_table(
        "semesters",
        _id_column(),
        sa.Column("number", sa.Integer(), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), sa.ForeignKey("academic_years.id"), nullable=False),
    )

    op.create_table(
        "subjects",
        _id_column(),
        sa.Column("code", sa.String(length=20), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("type", subject_type_enum, nullable=False),
        sa.Column("department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("is_mdc", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.create_index("ix_subjects_department_id", "subjects", ["department_id"])
    op.create_index("ix_subjects_semester_id", "subjects", ["semester_id"])

    op.create_table(
        "subject_color_map",
        _id_column(),
        sa.Column(
            "subject_id",
            sa.String(length=36),
            sa.ForeignKey("subjects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("color_index", sa.Integer(), nullable=False),
    )

    op.create_table(
        "faculty_profiles",
        _id_column(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("designation", sa.String(length=200), nullable=False),
    )
    op.create_index("ix_faculty_profiles_department_id", "faculty_profiles", ["department_id"])

    op.create_table(
        "student_profiles",
        _id_column(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("enrollment_no", sa.String(length=50), nullable=False, unique=True),
        sa.Column("admission_year", sa.Integer(), nullable=False),
        sa.Column("current_year", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_student_profiles_department_id", "student_profiles", ["department_id"])
    op.create_index("ix_student_profiles_semester_id", "student_profiles", ["semester_id"])

    op.create_table(
        "faculty_subjects",
        _id_column(),
        sa.Column("faculty_id", sa.String(length=36), sa.ForeignKey("faculty_profiles.id"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("faculty_id", "subject_id", name="uq_faculty_subjects_pair"),
    )
    op.create_index("ix_faculty_subjects_faculty_id", "faculty_subjects", ["faculty_id"])
    op.create_index("ix_faculty_subjects_subject_id", "faculty_subjects", ["subject_id"])

    op.create_table(
        "student_semester_history",
        _id_column(),
        sa.Column("student_id", sa.String(length=36), sa.ForeignKey("student_profiles.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("changed_by", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_student_semester_history_student_id", "student_semester_history", ["student_id"])

    op.create_table(
        "timetables",
        _id_column(),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("faculty_id", sa.String(length=36), sa.ForeignKey("faculty_profiles.id"), nullable=False),
        sa.Column("room", sa.String(length=50), nullable=True),
        sa.Column("department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), sa.ForeignKey("academic_years.id"), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "day_of_week",
            "period",
            "department_id",
            "semester_id",
            "academic_year_id",
            name="uq_timetables_slot",
        ),
    )
    op.create_index("ix_timetables_subject_id", "timetables", ["subject_id"])
    op.create_index("ix_timetables_faculty_id", "timetables", ["faculty_id"])

    op.create_table(
        "attendance_records",
        _id_column(),
        sa.Column("student_id", sa.String(length=36), sa.ForeignKey("student_profiles.id"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("status", attendance_status_enum, nullable=False),
        sa.Column("marked_by", sa.String(length=36), sa.ForeignKey("faculty_profiles.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("student_id", "subject_id", "date", "period", name="uq_attendance_records_natural_key"),
    )
    op.create_index("ix_attendance_records_student_id", "attendance_records", ["student_id"])
    op.create_index("ix_attendance_records_subject_id", "attendance_records", ["subject_id"])
    op.create_index("ix_attendance_records_date", "attendance_records", ["date"])
    op.create_index("ix_attendance_records_semester_id", "attendance_records", ["semester_id"])

    op.create_table(
        "mdc_courses",
        _id_column(),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("home_department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("mdc_department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("student_ids", sa.JSON(), nullable=False),
        sa.Column("faculty_id", sa.String(length=36), sa.ForeignKey("faculty_profiles.id"), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "home_department_id",
            "mdc_department_id",
            "year",
            "semester",
            name="uq_mdc_courses_cohort",
        ),
    )
    op.create_index("ix_mdc_courses_home_department_id", "mdc_courses", ["home_department_id"])
    op.create_index("ix_mdc_courses_mdc_department_id", "mdc_courses", ["mdc_department_id"])

    op.create_table(
        "mdc_attendance_records",
        _id_column(),
        sa.Column(
            "mdc_course_id",
            sa.String(length=36),
            sa.ForeignKey("mdc_courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_id", sa.String(length=36), sa.ForeignKey("student_profiles.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("status", existing_attendance_status_enum, nullable=False),
        sa.Column("marked_by", sa.String(length=36), sa.ForeignKey("faculty_profiles.id"), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("mdc_course_id", "student_id", "date", "period", name="uq_mdc_attendance_natural_key"),
    )
    op.create_index("ix_mdc_attendance_records_mdc_course_id", "mdc_attendance_records", ["mdc_course_id"])
    op.create_index("ix_mdc_attendance_records_student_id", "mdc_attendance_records", ["student_id"])
    op.create_index("ix_mdc_attendance_records_date", "mdc_attendance_records", ["date"])

    op.create_table(
        "notifications",
        _id_column(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", notification_type_enum, nullable=False),
        sa.Column("link", sa.String(length=500), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "activity_logs",
        _id_column(),
        sa.Column("actor_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("actor_role", sa.String(length=20), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("department_id", sa.String(length=36), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_activity_logs_department_created", "activity_logs", ["department_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_department_created", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("mdc_attendance_records")
    op.drop_table("mdc_courses")
    op.drop_table("attendance_records")
    op.drop_table("timetables")
    op.drop_table("student_semester_history")
    op.drop_table("faculty_subjects")
    op.drop_table("student_profiles")
    op.drop_table("faculty_profiles")
    op.drop_table("subject_color_map")
    op.drop_table("subjects")
    op.drop_table("semesters")
    op.drop_table("academic_years")
    op.drop_table("departments")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    notification_type_enum.drop(bind, checkfirst=True)
    attendance_status_enum.drop(bind, checkfirst=True)
    subject_type_enum.drop(bind, checkfirst=True)
    user_role_enum.drop(bind, checkfirst=True)
