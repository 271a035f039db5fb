"""staff attendance, regularization and timetables

Revision ID: 8e2b4c6d1f37
Revises: 3c1f7a9d2b10
Create Date: 2026-10-17 14:00:41.902117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '8e2b4c6d1f37'
down_revision: Union[str, Sequence[str], None] = '3c1f7a9d2b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column():
    return sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()'))


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table(
        'staff_attendance',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='present'),
        sa.Column('check_in_time', sa.DateTime(), nullable=True),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('is_late', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('late_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('half_day_type', sa.String(length=20), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('marked_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('marked_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['marked_by'], ['users.id']),
        sa.UniqueConstraint('tenant_id', 'user_id', 'attendance_date', name='uq_staff_attendance_daily'),
        sa.CheckConstraint(
            "status IN ('present','absent','half_day','on_leave','holiday')",
            name='ck_staff_attendance_status',
        ),
    )
    op.create_index('ix_staff_attendance_tenant_id', 'staff_attendance', ['tenant_id'])
    op.create_index('ix_staff_attendance_user_id', 'staff_attendance', ['user_id'])
    op.create_index('ix_staff_attendance_branch_id', 'staff_attendance', ['branch_id'])
    op.create_index('ix_staff_attendance_attendance_date', 'staff_attendance', ['attendance_date'])

    op.create_table(
        'staff_attendance_regularizations',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('attendance_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('request_date', sa.Date(), nullable=False),
        sa.Column('requested_status', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('supporting_document_url', sa.String(length=512), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['attendance_id'], ['staff_attendance.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id']),
        sa.CheckConstraint("status IN ('pending','approved','rejected')", name='ck_staff_regularization_status'),
    )
    op.create_index('ix_staff_attendance_regularizations_tenant_id', 'staff_attendance_regularizations', ['tenant_id'])
    op.create_index('ix_staff_attendance_regularizations_user_id', 'staff_attendance_regularizations', ['user_id'])

    op.create_table(
        'staff_attendance_settings',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('work_start_time', sa.Time(), nullable=False, server_default='09:00:00'),
        sa.Column('work_end_time', sa.Time(), nullable=False, server_default='17:00:00'),
        sa.Column('late_threshold_minutes', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('half_day_threshold_hours', sa.Float(), nullable=False, server_default='4.0'),
        sa.Column('allow_self_checkout', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('require_regularization_approval', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.UniqueConstraint('branch_id', name='uq_staff_attendance_settings_branch'),
    )
    op.create_index('ix_staff_attendance_settings_tenant_id', 'staff_attendance_settings', ['tenant_id'])

    op.create_table(
        'timetables',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('section_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('effective_from', sa.Date(), nullable=True),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('published_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id']),
        sa.ForeignKeyConstraint(['published_by'], ['users.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.CheckConstraint("status IN ('draft','published','archived')", name='ck_timetable_status'),
    )
    op.create_index('ix_timetables_tenant_id', 'timetables', ['tenant_id'])
    op.create_index('ix_timetables_branch_id', 'timetables', ['branch_id'])
    op.create_index('ix_timetables_section_id', 'timetables', ['section_id'])

    op.create_table(
        'timetable_entries',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('timetable_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('period_slot_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('subject', sa.String(length=100), nullable=True),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('room_number', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_free_period', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['timetable_id'], ['timetables.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['period_slot_id'], ['period_slots.id']),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id']),
        sa.UniqueConstraint('timetable_id', 'day_of_week', 'period_slot_id', name='uq_timetable_entry_slot'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_timetable_entry_day'),
    )
    op.create_index('ix_timetable_entries_tenant_id', 'timetable_entries', ['tenant_id'])
    op.create_index('ix_timetable_entries_timetable_id', 'timetable_entries', ['timetable_id'])
    op.create_index('ix_timetable_entries_teacher_id', 'timetable_entries', ['teacher_id'])


def downgrade():
    op.drop_table('timetable_entries')
    op.drop_table('timetables')
    op.drop_table('staff_attendance_settings')
    op.drop_table('staff_attendance_regularizations')
    op.drop_table('staff_attendance')
