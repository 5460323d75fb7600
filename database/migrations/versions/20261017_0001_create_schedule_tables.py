"""create schedule tables

Revision ID: 20261017_0001
Revises: None
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


location_type_enum = sa.Enum("room", "no_room", name="location_type")
term_status_enum = sa.Enum("active", "archived", name="term_status")
notification_level_enum = sa.Enum("success", "info", "warning", "error", name="notification_level")


def upgrade() -> None:
    op.create_table(
        "schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_code", sa.String(length=50), nullable=False),
        sa.Column("course_title", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("program", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("subject_code", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("catalog_number", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("course_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("section", sa.String(length=50), nullable=False),
        sa.Column("crn", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("clss_id", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("term", sa.String(length=50), nullable=False),
        sa.Column("term_code", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("credits", sa.Integer(), nullable=True),
        sa.Column("max_enrollment", sa.Integer(), nullable=True),
        sa.Column("schedule_type", sa.String(length=100), nullable=False, server_default="Class Instruction"),
        sa.Column("instruction_method", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="Active"),
        sa.Column("meeting_patterns", sa.JSON(), nullable=False),
        sa.Column("instructor_id", sa.String(length=36), nullable=True),
        sa.Column("instructor_ids", sa.JSON(), nullable=False),
        sa.Column("instructor_assignments", sa.JSON(), nullable=False),
        sa.Column("location_type", location_type_enum, nullable=False, server_default="room"),
        sa.Column("location_label", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("space_ids", sa.JSON(), nullable=False),
        sa.Column("space_display_names", sa.JSON(), nullable=False),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("online_mode", sa.String(length=30), nullable=True),
        sa.Column("identity_key", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("identity_keys", sa.JSON(), nullable=False),
        sa.Column("identity_source", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_schedules_course_code", "schedules", ["course_code"])
    op.create_index("ix_schedules_term", "schedules", ["term"])
    op.create_index("ix_schedules_identity_key", "schedules", ["identity_key"])

    op.create_table(
        "people",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("merged_into", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_people_name", "people", ["name"])

    op.create_table(
        "terms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("term", sa.String(length=50), nullable=False),
        sa.Column("term_code", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("status", term_status_enum, nullable=False, server_default="active"),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_terms_term", "terms", ["term"], unique=True)

    op.create_table(
        "buildings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=30), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("aliases", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_buildings_code", "buildings", ["code"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("summary", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=1000), nullable=True),
        sa.Column("source", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("level", notification_level_enum, nullable=False, server_default="info"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("activity_logs")
    op.drop_index("ix_buildings_code", table_name="buildings")
    op.drop_table("buildings")
    op.drop_index("ix_terms_term", table_name="terms")
    op.drop_table("terms")
    op.drop_index("ix_people_name", table_name="people")
    op.drop_table("people")
    op.drop_index("ix_schedules_identity_key", table_name="schedules")
    op.drop_index("ix_schedules_term", table_name="schedules")
    op.drop_index("ix_schedules_course_code", table_name="schedules")
    op.drop_table("schedules")
    notification_level_enum.drop(op.get_bind(), checkfirst=True)
    term_status_enum.drop(op.get_bind(), checkfirst=True)
    location_type_enum.drop(op.get_bind(), checkfirst=True)
