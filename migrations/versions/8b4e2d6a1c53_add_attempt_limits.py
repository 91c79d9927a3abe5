"""add login and action attempt limits

Revision ID: 8b4e2d6a1c53
Revises: 3f1a9c2b7d10
Create Date: 2026-09-10 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8b4e2d6a1c53'
down_revision = '3f1a9c2b7d10'
branch_labels = None
depends_on = None


def _counter_columns():
    return [
        sa.Column('attempt_count', sa.Integer(), nullable=False),
        sa.Column('first_attempt_at', sa.DateTime(), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(), nullable=False),
        sa.Column('blocked_until', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'login_attempts',
        *_counter_columns(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=32), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scope', 'ip_address', name='uq_login_attempts_scope_ip')
    )
    with op.batch_alter_table('login_attempts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_login_attempts_ip_address'), ['ip_address'], unique=False)
        batch_op.create_index(batch_op.f('ix_login_attempts_blocked_until'), ['blocked_until'], unique=False)

    op.create_table(
        'action_attempts',
        *_counter_columns(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scope', 'user_id', name='uq_action_attempts_scope_user')
    )
    with op.batch_alter_table('action_attempts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_action_attempts_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_action_attempts_blocked_until'), ['blocked_until'], unique=False)


def downgrade():
    with op.batch_alter_table('action_attempts', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_action_attempts_blocked_until'))
        batch_op.drop_index(batch_op.f('ix_action_attempts_user_id'))
    op.drop_table('action_attempts')

    with op.batch_alter_table('login_attempts', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_login_attempts_blocked_until'))
        batch_op.drop_index(batch_op.f('ix_login_attempts_ip_address'))
    op.drop_table('login_attempts')
