"""Per-task reminder type; push token and notification flag on users.

Revision ID: 0002_reminders_push
Revises: 0001_initial
Create Date: 2026-10-20 10:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0002_reminders_push'
down_revision: Union[str, Sequence[str], None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_str = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    with op.batch_alter_table('tasks') as batch_op:
        batch_op.add_column(sa.Column('reminder_type', _str(), nullable=False, server_default='soft'))

    with op.batch_alter_table('users') as batch_op:
        batch_op.add_column(sa.Column('push_token', _str(length=255), nullable=True))
        batch_op.add_column(
            sa.Column('notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.false())
        )


def downgrade() -> None:
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_column('notifications_enabled')
        batch_op.drop_column('push_token')

    with op.batch_alter_table('tasks') as batch_op:
        batch_op.drop_column('reminder_type')
