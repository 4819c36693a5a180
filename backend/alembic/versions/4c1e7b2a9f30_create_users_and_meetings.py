"""Create users and meetings tables

Revision ID: 4c1e7b2a9f30
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1e7b2a9f30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum('CLIENT', 'TBB_STAFF', 'ADMIN', name='user_role')
meeting_status = sa.Enum('SCHEDULED', 'CONFIRMED', 'CANCELLED', 'COMPLETED', 'NO_SHOW', name='meeting_status')
meeting_type = sa.Enum('VIRTUAL', 'IN_PERSON', 'PHONE', name='meeting_type')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', user_role, nullable=False),
        # Google Calendar credential, tokens Fernet-encrypted
        sa.Column('google_calendar_id', sa.String(), nullable=True),
        sa.Column('google_access_token', sa.String(), nullable=True),
        sa.Column('google_refresh_token', sa.String(), nullable=True),
        sa.Column('google_token_expiry', sa.DateTime(timezone=True), nullable=True),
        sa.Column('google_token_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'meetings',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('client_id', sa.UUID(), nullable=False),
        sa.Column('tbb_staff_id', sa.UUID(), nullable=False),
        sa.Column('project_id', sa.UUID(), nullable=True),
        sa.Column('status', meeting_status, nullable=False),
        sa.Column('meeting_type', meeting_type, nullable=False),
        sa.Column('google_meet_link', sa.String(), nullable=True),
        sa.Column('google_event_id', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('end_time > start_time', name='ck_meetings_end_after_start'),
        sa.ForeignKeyConstraint(['client_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['tbb_staff_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_meetings_start_time', 'meetings', ['start_time'])
    op.create_index('ix_meetings_status', 'meetings', ['status'])
    op.create_index('idx_meetings_client_start', 'meetings', ['client_id', 'start_time'])
    op.create_index('idx_meetings_staff_start', 'meetings', ['tbb_staff_id', 'start_time'])
    op.create_index('idx_meetings_project_start', 'meetings', ['project_id', 'start_time'])


def downgrade() -> None:
    op.drop_index('idx_meetings_project_start', table_name='meetings')
    op.drop_index('idx_meetings_staff_start', table_name='meetings')
    op.drop_index('idx_meetings_client_start', table_name='meetings')
    op.drop_index('ix_meetings_status', table_name='meetings')
    op.drop_index('ix_meetings_start_time', table_name='meetings')
    op.drop_table('meetings')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    meeting_type.drop(op.get_bind(), checkfirst=True)
    meeting_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
