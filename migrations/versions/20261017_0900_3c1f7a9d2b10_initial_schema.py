"""initial schema: tenancy, academics and student attendance

Revision ID: 3c1f7a9d2b10
Revises:
Create Date: 2026-10-17 09:00:12.418305

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c1f7a9d2b10'
down_revision: Union[str, Sequence[str], None] = None
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
        'users',
        _id_column(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('roles_csv', sa.String(length=255), nullable=False, server_default='TEACHER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'tenants',
        _id_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('slug', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'tenant_members',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.CheckConstraint("role IN ('OWNER','ADMIN','TEACHER','STAFF')", name='ck_tenant_member_role'),
        sa.UniqueConstraint('tenant_id', 'user_id', name='uq_tenant_member'),
    )
    op.create_index('ix_tenant_members_tenant_id', 'tenant_members', ['tenant_id'])
    op.create_index('ix_tenant_members_user_id', 'tenant_members', ['user_id'])

    op.create_table(
        'branches',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('address', sa.String(length=256), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_branch_code_per_tenant'),
    )
    op.create_index('ix_branches_tenant_id', 'branches', ['tenant_id'])

    op.create_table(
        'classes',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.UniqueConstraint('tenant_id', 'branch_id', 'code', name='uq_class_code_per_branch'),
    )
    op.create_index('ix_classes_tenant_id', 'classes', ['tenant_id'])
    op.create_index('ix_classes_branch_id', 'classes', ['branch_id'])

    op.create_table(
        'sections',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('class_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('class_teacher_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(length=20), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['class_teacher_id'], ['users.id']),
        sa.UniqueConstraint('class_id', 'code', name='uq_section_code_per_class'),
    )
    op.create_index('ix_sections_tenant_id', 'sections', ['tenant_id'])
    op.create_index('ix_sections_class_id', 'sections', ['class_id'])

    op.create_table(
        'students',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('section_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('admission_number', sa.String(length=32), nullable=False),
        sa.Column('first_name', sa.String(length=64), nullable=False),
        sa.Column('last_name', sa.String(length=64), nullable=False),
        sa.Column('roll_number', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id']),
        sa.UniqueConstraint('tenant_id', 'admission_number', name='uq_student_admission_per_tenant'),
    )
    op.create_index('ix_students_tenant_id', 'students', ['tenant_id'])
    op.create_index('ix_students_section_id', 'students', ['section_id'])

    op.create_table(
        'period_slots',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('period_number', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
    )
    op.create_index('ix_period_slots_tenant_id', 'period_slots', ['tenant_id'])
    op.create_index('ix_period_slots_branch_id', 'period_slots', ['branch_id'])

    op.create_table(
        'student_attendance',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('section_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('period_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='present'),
        sa.Column('late_arrival_time', sa.Time(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('marked_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('marked_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['student_id'], ['students.id']),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id']),
        sa.ForeignKeyConstraint(['period_id'], ['period_slots.id']),
        sa.ForeignKeyConstraint(['marked_by'], ['users.id']),
        sa.CheckConstraint("status IN ('present','absent','late','half_day')", name='ck_student_attendance_status'),
    )
    op.create_index('ix_student_attendance_tenant_id', 'student_attendance', ['tenant_id'])
    op.create_index('ix_student_attendance_student_id', 'student_attendance', ['student_id'])
    op.create_index('ix_student_attendance_section_id', 'student_attendance', ['section_id'])
    op.create_index('ix_student_attendance_period_id', 'student_attendance', ['period_id'])
    op.create_index('ix_student_attendance_attendance_date', 'student_attendance', ['attendance_date'])

    # One daily row per student per day, one row per student per period
    op.create_index(
        'uq_student_attendance_daily',
        'student_attendance',
        ['tenant_id', 'student_id', 'attendance_date'],
        unique=True,
        postgresql_where=sa.text('period_id IS NULL'),
    )
    op.create_index(
        'uq_student_attendance_period',
        'student_attendance',
        ['tenant_id', 'student_id', 'attendance_date', 'period_id'],
        unique=True,
        postgresql_where=sa.text('period_id IS NOT NULL'),
    )

    op.create_table(
        'student_attendance_settings',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('edit_window_minutes', sa.Integer(), nullable=False, server_default='120'),
        sa.Column('late_threshold_minutes', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('sms_on_absent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('period_attendance_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.UniqueConstraint('branch_id', name='uq_student_attendance_settings_branch'),
    )
    op.create_index('ix_student_attendance_settings_tenant_id', 'student_attendance_settings', ['tenant_id'])

    op.create_table(
        'student_attendance_audit',
        _id_column(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('attendance_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('change_type', sa.String(length=20), nullable=False, server_default='edit'),
        sa.Column('previous_status', sa.String(length=20), nullable=True),
        sa.Column('new_status', sa.String(length=20), nullable=False),
        sa.Column('previous_remarks', sa.Text(), nullable=True),
        sa.Column('new_remarks', sa.Text(), nullable=True),
        sa.Column('previous_late_arrival_time', sa.Time(), nullable=True),
        sa.Column('new_late_arrival_time', sa.Time(), nullable=True),
        sa.Column('change_reason', sa.Text(), nullable=False),
        sa.Column('changed_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('changed_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['attendance_id'], ['student_attendance.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id']),
    )
    op.create_index('ix_student_attendance_audit_tenant_id', 'student_attendance_audit', ['tenant_id'])
    op.create_index('ix_student_attendance_audit_attendance_id', 'student_attendance_audit', ['attendance_id'])
    op.create_index('ix_student_attendance_audit_changed_by', 'student_attendance_audit', ['changed_by'])


def downgrade():
    op.drop_table('student_attendance_audit')
    op.drop_table('student_attendance_settings')
    op.drop_index('uq_student_attendance_period', table_name='student_attendance')
    op.drop_index('uq_student_attendance_daily', table_name='student_attendance')
    op.drop_table('student_attendance')
    op.drop_table('period_slots')
    op.drop_table('students')
    op.drop_table('sections')
    op.drop_table('classes')
    op.drop_table('branches')
    op.drop_table('tenant_members')
    op.drop_table('tenants')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
