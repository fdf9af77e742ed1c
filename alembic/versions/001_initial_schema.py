"""Initial schema: users, pharmacy branches, branch locations, staff assignments, time entries, audit logs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(ts_default):
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"
    ts_default = sa.text("CURRENT_TIMESTAMP") if is_sqlite else sa.text("now()")
    true_default = sa.text("1") if is_sqlite else sa.text("true")
    false_default = sa.text("0") if is_sqlite else sa.text("false")

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="staff"),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(ts_default),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "pharmacy_branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_name", sa.String(), nullable=False),
        sa.Column("branch_code", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("city", sa.String(), nullable=False),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("postcode", sa.String(), nullable=False),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("branch_type", sa.String(), nullable=True),
        sa.Column("pharmacy_license_number", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(ts_default),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pharmacy_branches_id"), "pharmacy_branches", ["id"], unique=False)
    op.create_index(op.f("ix_pharmacy_branches_branch_code"), "pharmacy_branches", ["branch_code"], unique=True)

    op.create_table(
        "branch_locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("radius_meters", sa.Integer(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(ts_default),
        sa.ForeignKeyConstraint(["branch_id"], ["pharmacy_branches.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_branch_locations_id"), "branch_locations", ["id"], unique=False)
    op.create_index(op.f("ix_branch_locations_branch_id"), "branch_locations", ["branch_id"], unique=True)

    op.create_table(
        "branch_staff_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("assignment_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=true_default),
        *_timestamps(ts_default),
        sa.ForeignKeyConstraint(["branch_id"], ["pharmacy_branches.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("branch_id", "user_id", name="uq_branch_staff_assignments_branch_user"),
    )
    op.create_index(op.f("ix_branch_staff_assignments_id"), "branch_staff_assignments", ["id"], unique=False)
    op.create_index(op.f("ix_branch_staff_assignments_branch_id"), "branch_staff_assignments", ["branch_id"], unique=False)
    op.create_index(op.f("ix_branch_staff_assignments_user_id"), "branch_staff_assignments", ["user_id"], unique=False)

    op.create_table(
        "time_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("clock_in_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("clock_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("clock_in_latitude", sa.Float(), nullable=False),
        sa.Column("clock_in_longitude", sa.Float(), nullable=False),
        sa.Column("clock_in_accuracy", sa.Float(), nullable=True),
        sa.Column("clock_out_latitude", sa.Float(), nullable=True),
        sa.Column("clock_out_longitude", sa.Float(), nullable=True),
        sa.Column("clock_out_accuracy", sa.Float(), nullable=True),
        sa.Column("clock_in_distance_meters", sa.Integer(), nullable=True),
        sa.Column("location_exception", sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column("clock_out_location_verified", sa.Boolean(), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(ts_default),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["pharmacy_branches.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_time_entries_id"), "time_entries", ["id"], unique=False)
    op.create_index(op.f("ix_time_entries_user_id"), "time_entries", ["user_id"], unique=False)
    op.create_index(op.f("ix_time_entries_branch_id"), "time_entries", ["branch_id"], unique=False)
    # At most one open entry per user
    op.create_index(
        "uq_time_entries_open_per_user",
        "time_entries",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("clock_out_time IS NULL"),
        postgresql_where=sa.text("clock_out_time IS NULL"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_index("uq_time_entries_open_per_user", table_name="time_entries")
    op.drop_table("time_entries")
    op.drop_table("branch_staff_assignments")
    op.drop_table("branch_locations")
    op.drop_table("pharmacy_branches")
    op.drop_table("users")
