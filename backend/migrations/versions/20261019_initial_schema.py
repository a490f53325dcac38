"""Initial timebank schema: employees, time clock, hour bank, overtime

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="employee"),
        sa.Column("department", sa.String(64), nullable=True),
        sa.Column("overtime_limit", sa.Float(), nullable=True),
        sa.Column("work_schedule", sa.JSON(), nullable=True),
        sa.Column("lunch_break_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("late_tolerance", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("employees", schema=None) as batch_op:
        batch_op.create_index("ix_employees_department", ["department"], unique=False)

    op.create_table(
        "overtime_exceptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("additional_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "month", "year", name="uq_overtime_exceptions_period"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("overtime_exceptions", schema=None) as batch_op:
        batch_op.create_index("ix_overtime_exceptions_employee_id", ["employee_id"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)
        batch_op.create_index("ix_session_tokens_employee", ["employee_id"], unique=False)

    op.create_table(
        "company_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False, server_default=""),
        sa.Column("default_overtime_limit", sa.Float(), nullable=False, server_default=sa.text("40")),
        sa.Column("default_accumulation_limit", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("default_usage_limit", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["updated_by"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "justifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("justifications", schema=None) as batch_op:
        batch_op.create_index("ix_justifications_is_active", ["is_active"], unique=False)

    op.create_table(
        "time_clock_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("entry_time", sa.DateTime(), nullable=True),
        sa.Column("lunch_exit_time", sa.DateTime(), nullable=True),
        sa.Column("lunch_return_time", sa.DateTime(), nullable=True),
        sa.Column("exit_time", sa.DateTime(), nullable=True),
        sa.Column("total_worked_hours", sa.Float(), nullable=True),
        sa.Column("scheduled_hours", sa.Float(), nullable=True),
        sa.Column("late_minutes", sa.Integer(), nullable=True),
        sa.Column("lunch_late_minutes", sa.Integer(), nullable=True),
        sa.Column("overtime_hours", sa.Float(), nullable=True),
        sa.Column("negative_hours", sa.Float(), nullable=True),
        sa.Column("hour_bank_credit_id", sa.Integer(), nullable=True),
        sa.Column("hour_bank_debit_id", sa.Integer(), nullable=True),
        sa.Column("justification_id", sa.Integer(), nullable=True),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["justification_id"], ["justifications.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "date", name="uq_time_clock_employee_date"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("time_clock_records", schema=None) as batch_op:
        batch_op.create_index("ix_time_clock_records_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_time_clock_records_date", ["date"], unique=False)

    op.create_table(
        "overtime_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["approved_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["rejected_by"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("overtime_requests", schema=None) as batch_op:
        batch_op.create_index("ix_overtime_requests_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_overtime_requests_status", ["status"], unique=False)
        batch_op.create_index("ix_overtime_employee_date", ["employee_id", "date"], unique=False)

    op.create_table(
        "hour_bank_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("overtime_request_id", sa.Integer(), nullable=True),
        sa.Column("time_clock_record_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("hours > 0", name="ck_hour_bank_hours_positive"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["approved_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["rejected_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["overtime_request_id"], ["overtime_requests.id"]),
        sa.ForeignKeyConstraint(["time_clock_record_id"], ["time_clock_records.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("hour_bank_records", schema=None) as batch_op:
        batch_op.create_index("ix_hour_bank_records_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_hour_bank_records_status", ["status"], unique=False)
        batch_op.create_index("ix_hour_bank_records_overtime_request_id", ["overtime_request_id"], unique=False)
        batch_op.create_index("ix_hour_bank_records_time_clock_record_id", ["time_clock_record_id"], unique=False)
        batch_op.create_index("ix_hour_bank_employee_status", ["employee_id", "status"], unique=False)
        batch_op.create_index("ix_hour_bank_employee_date", ["employee_id", "date"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["target_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("audit_logs", schema=None) as batch_op:
        batch_op.create_index("ix_audit_logs_action", ["action"], unique=False)
        batch_op.create_index("ix_audit_logs_actor_id", ["actor_id"], unique=False)
        batch_op.create_index("ix_audit_logs_target_id", ["target_id"], unique=False)
        batch_op.create_index("ix_audit_logs_entity", ["entity_type", "entity_id"], unique=False)
        batch_op.create_index("ix_audit_logs_occurred", ["occurred_at"], unique=False)


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("hour_bank_records")
    op.drop_table("overtime_requests")
    op.drop_table("time_clock_records")
    op.drop_table("justifications")
    op.drop_table("company_settings")
    op.drop_table("session_tokens")
    op.drop_table("overtime_exceptions")
    op.drop_table("employees")
