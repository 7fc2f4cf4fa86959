"""create device, judging_session and rubric tables

Revision ID: 5a7c9e1d2b30
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c9e1d2b30'
down_revision = None
branch_labels = None
depends_on = None


def _record_columns():
    return [
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('team_number', sa.String(length=10), nullable=False, index=True),
        sa.Column('judge_id', sa.String(length=36), nullable=False, index=True),
    ]


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())

    if 'device' not in tables:
        op.create_table(
            'device',
            sa.Column('device_id', sa.Text(), primary_key=True),
            sa.Column('device_name', sa.Text(), nullable=False, server_default=''),
            sa.Column('connected_at', sa.BigInteger(), nullable=False),
            sa.Column('is_online', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        )
    if 'judging_session' not in tables:
        op.create_table(
            'judging_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.String(length=36), nullable=False, unique=True, index=True),
            sa.Column('device_id', sa.Text(), nullable=False, index=True),
            sa.Column('device_name', sa.String(length=100), nullable=False),
            sa.Column('created_at', sa.BigInteger(), nullable=False, index=True),
            sa.Column('closed_at', sa.BigInteger(), nullable=True),
        )
    if 'engineering_notebook_rubric' not in tables:
        op.create_table(
            'engineering_notebook_rubric',
            *_record_columns(),
            sa.Column('rubric', sa.JSON(), nullable=False),
            sa.Column('notes', sa.Text(), nullable=False, server_default=''),
            sa.Column('innovate_award_notes', sa.Text(), nullable=False, server_default=''),
        )
    if 'team_interview_rubric' not in tables:
        op.create_table(
            'team_interview_rubric',
            *_record_columns(),
            sa.Column('rubric', sa.JSON(), nullable=False),
            sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        )
    if 'team_interview_note' not in tables:
        op.create_table(
            'team_interview_note',
            *_record_columns(),
            sa.Column('rows', sa.JSON(), nullable=False),
        )


def downgrade():
    op.drop_table('team_interview_note')
    op.drop_table('team_interview_rubric')
    op.drop_table('engineering_notebook_rubric')
    op.drop_table('judging_session')
    op.drop_table('device')
