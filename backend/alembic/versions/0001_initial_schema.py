"""Initial schema: users, tasks, subtasks, delegation notes, focus sessions,
contacts, team members, team invites and user stats.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_str = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', _str(), nullable=False),
        sa.Column('email', _str(length=255), nullable=True),
        sa.Column('password_hash', _str(), nullable=True),
        sa.Column('display_name', _str(length=255), nullable=True),
        sa.Column('device_id', _str(length=255), nullable=True),
        sa.Column('reset_code_hash', _str(), nullable=True),
        sa.Column('reset_code_expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_device_id'), 'users', ['device_id'], unique=False)

    op.create_table(
        'tasks',
        sa.Column('id', _str(), nullable=False),
        sa.Column('user_id', _str(), nullable=False),
        sa.Column('title', _str(length=500), nullable=False),
        sa.Column('notes', _str(), nullable=True),
        sa.Column('lane', _str(), nullable=False, server_default='now'),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('focus_time_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('assigned_contact_id', _str(), nullable=True),
        sa.Column('delegated_to_user_id', _str(), nullable=True),
        sa.Column('delegation_status', _str(), nullable=True),
        sa.Column('delegated_at', sa.DateTime(), nullable=True),
        sa.Column('last_delegation_update', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tasks_user_id'), 'tasks', ['user_id'], unique=False)
    op.create_index(op.f('ix_tasks_created_at'), 'tasks', ['created_at'], unique=False)
    op.create_index(op.f('ix_tasks_delegated_to_user_id'), 'tasks', ['delegated_to_user_id'], unique=False)

    op.create_table(
        'subtasks',
        sa.Column('id', _str(), nullable=False),
        sa.Column('task_id', _str(), nullable=False),
        sa.Column('title', _str(length=500), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_subtasks_task_id'), 'subtasks', ['task_id'], unique=False)

    op.create_table(
        'delegation_notes',
        sa.Column('id', _str(), nullable=False),
        sa.Column('task_id', _str(), nullable=False),
        sa.Column('author_id', _str(), nullable=True),
        sa.Column('type', _str(), nullable=False, server_default='status_update'),
        sa.Column('text', _str(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_delegation_notes_task_id'), 'delegation_notes', ['task_id'], unique=False)

    op.create_table(
        'focus_sessions',
        sa.Column('id', _str(), nullable=False),
        sa.Column('user_id', _str(), nullable=False),
        sa.Column('task_id', _str(), nullable=True),
        sa.Column('minutes', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_focus_sessions_user_id'), 'focus_sessions', ['user_id'], unique=False)
    op.create_index(op.f('ix_focus_sessions_created_at'), 'focus_sessions', ['created_at'], unique=False)

    op.create_table(
        'contacts',
        sa.Column('id', _str(), nullable=False),
        sa.Column('user_id', _str(), nullable=False),
        sa.Column('name', _str(length=255), nullable=False),
        sa.Column('role', _str(length=255), nullable=True),
        sa.Column('color', _str(), nullable=False, server_default='#007AFF'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_contacts_user_id'), 'contacts', ['user_id'], unique=False)

    op.create_table(
        'team_members',
        sa.Column('id', _str(), nullable=False),
        sa.Column('user_id', _str(), nullable=False),
        sa.Column('teammate_id', _str(), nullable=False),
        sa.Column('nickname', _str(length=255), nullable=False, server_default='Teammate'),
        sa.Column('color', _str(), nullable=False, server_default='#007AFF'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['teammate_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_team_members_user_id'), 'team_members', ['user_id'], unique=False)
    op.create_index(op.f('ix_team_members_teammate_id'), 'team_members', ['teammate_id'], unique=False)

    op.create_table(
        'team_invites',
        sa.Column('id', _str(), nullable=False),
        sa.Column('invite_code', _str(length=20), nullable=False),
        sa.Column('inviter_id', _str(), nullable=False),
        sa.Column('invitee_email', _str(length=255), nullable=True),
        sa.Column('status', _str(), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['inviter_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_team_invites_invite_code'), 'team_invites', ['invite_code'], unique=True)
    op.create_index(op.f('ix_team_invites_inviter_id'), 'team_invites', ['inviter_id'], unique=False)

    op.create_table(
        'user_stats',
        sa.Column('id', _str(), nullable=False),
        sa.Column('user_id', _str(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_tasks_completed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('level', _str(), nullable=False, server_default='starter'),
        sa.Column('last_active_date', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_stats_user_id'), 'user_stats', ['user_id'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_user_stats_user_id'), table_name='user_stats')
    op.drop_table('user_stats')
    op.drop_index(op.f('ix_team_invites_inviter_id'), table_name='team_invites')
    op.drop_index(op.f('ix_team_invites_invite_code'), table_name='team_invites')
    op.drop_table('team_invites')
    op.drop_index(op.f('ix_team_members_teammate_id'), table_name='team_members')
    op.drop_index(op.f('ix_team_members_user_id'), table_name='team_members')
    op.drop_table('team_members')
    op.drop_index(op.f('ix_contacts_user_id'), table_name='contacts')
    op.drop_table('contacts')
    op.drop_index(op.f('ix_focus_sessions_created_at'), table_name='focus_sessions')
    op.drop_index(op.f('ix_focus_sessions_user_id'), table_name='focus_sessions')
    op.drop_table('focus_sessions')
    op.drop_index(op.f('ix_delegation_notes_task_id'), table_name='delegation_notes')
    op.drop_table('delegation_notes')
    op.drop_index(op.f('ix_subtasks_task_id'), table_name='subtasks')
    op.drop_table('subtasks')
    op.drop_index(op.f('ix_tasks_delegated_to_user_id'), table_name='tasks')
    op.drop_index(op.f('ix_tasks_created_at'), table_name='tasks')
    op.drop_index(op.f('ix_tasks_user_id'), table_name='tasks')
    op.drop_table('tasks')
    op.drop_index(op.f('ix_users_device_id'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
