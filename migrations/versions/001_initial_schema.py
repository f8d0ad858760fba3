"""Initial schema: appointments, blocked_times.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ACTIVE = "status IN ('PENDING', 'CONFIRMED')"


def upgrade() -> None:
    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_phone", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'REJECTED', 'CANCELLED')", name="ck_appointments_status"
        ),
        sa.CheckConstraint("end_at > start_at", name="ck_appointments_range"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_appointments_start_at"), "appointments", ["start_at"], unique=False)
    op.create_index(op.f("ix_appointments_customer_phone"), "appointments", ["customer_phone"], unique=False)
    op.create_index(op.f("ix_appointments_status"), "appointments", ["status"], unique=False)
    op.create_index(
        "uq_appointments_active_phone",
        "appointments",
        ["customer_phone"],
        unique=True,
        postgresql_where=sa.text(_ACTIVE),
    )
    # Authoritative guard against double booking; the application check is only a pre-check
    op.execute(
        "ALTER TABLE appointments ADD CONSTRAINT appointments_no_overlap "
        "EXCLUDE USING gist (tsrange(start_at, end_at, '[)') WITH &&) "
        f"WHERE ({_ACTIVE})"
    )

    op.create_table(
        "blocked_times",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_blocked_times_start_at"), "blocked_times", ["start_at"], unique=False)
    op.create_index(op.f("ix_blocked_times_end_at"), "blocked_times", ["end_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_blocked_times_end_at"), table_name="blocked_times")
    op.drop_index(op.f("ix_blocked_times_start_at"), table_name="blocked_times")
    op.drop_table("blocked_times")
    op.execute("ALTER TABLE appointments DROP CONSTRAINT appointments_no_overlap")
    op.drop_index("uq_appointments_active_phone", table_name="appointments")
    op.drop_index(op.f("ix_appointments_status"), table_name="appointments")
    op.drop_index(op.f("ix_appointments_customer_phone"), table_name="appointments")
    op.drop_index(op.f("ix_appointments_start_at"), table_name="appointments")
    op.drop_table("appointments")
