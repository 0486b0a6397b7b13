"""attendance and leave accounting tables

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2025-11-10 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('designation', sa.String(length=120), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('week_off_day', sa.SmallInteger(), nullable=True),
        sa.Column('joining_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role in ('admin','hr','employee')", name='ck_employee_role'),
        sa.CheckConstraint("week_off_day is null or (week_off_day between 0 and 6)", name='ck_employee_week_off'),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_emp_active_role', 'employees', ['is_active', 'role'], unique=False)

    op.create_table(
        'leave_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('default_days', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('clock_in', sa.DateTime(), nullable=True),
        sa.Column('clock_out', sa.DateTime(), nullable=True),
        sa.Column('total_hours', sa.Numeric(6, 2), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='present'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),
        sa.CheckConstraint("status in ('present','absent','late','leave','week_off')", name='ck_attendance_status'),
    )
    op.create_index('ix_attendance_employee_id', 'attendance', ['employee_id'], unique=False)
    op.create_index('ix_attendance_date', 'attendance', ['date'], unique=False)
    op.create_index('ix_attendance_date_status', 'attendance', ['date', 'status'], unique=False)

    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('used_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'leave_type_id', 'year', name='uq_leave_balance_emp_type_year'),
    )
    op.create_index('ix_leave_balances_employee_id', 'leave_balances', ['employee_id'], unique=False)
    op.create_index('ix_leave_balances_leave_type_id', 'leave_balances', ['leave_type_id'], unique=False)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('half_day', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('half_day_period', sa.String(length=16), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('document_url', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("status in ('pending','approved','rejected')", name='ck_leave_request_status'),
        sa.CheckConstraint(
            "half_day_period is null or half_day_period in ('first_half','second_half')",
            name='ck_leave_request_half_day_period',
        ),
    )
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'], unique=False)
    op.create_index('ix_leave_requests_status', 'leave_requests', ['status'], unique=False)

    op.create_table(
        'late_deductions_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('last_deducted_late_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_deducted', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'year', 'month', name='uq_late_deduction_emp_year_month'),
        sa.CheckConstraint('month between 1 and 12', name='ck_late_deduction_month'),
    )
    op.create_index('ix_late_deductions_log_employee_id', 'late_deductions_log', ['employee_id'], unique=False)

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('max_late_days', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('late_policy_deduction_per_day', sa.Numeric(5, 2), nullable=False, server_default='1'),
        sa.Column('late_policy_leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='SET NULL'), nullable=True),
        sa.Column('auto_clock_out_time', sa.String(length=20), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    for table in ('settings', 'late_deductions_log', 'leave_requests', 'leave_balances',
                  'attendance', 'leave_types', 'employees'):
        op.drop_table(table)
