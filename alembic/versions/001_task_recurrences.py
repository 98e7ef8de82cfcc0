"""Workspace tasks and task recurrences

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None  # This is the first migration
branch_labels = None
depends_on = None


def upgrade():
    # Recurrence rules; one row is shared by every occurrence of a series
    op.create_table(
        'task_recurrences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workspace_id', sa.Integer(), nullable=False),
        sa.Column('recurrence_type', sa.String(length=20), nullable=False),
        sa.Column('recurrence_pattern', sa.JSON(), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('anchor_date', sa.Date(), nullable=False),
        sa.Column('weekly_days', sa.JSON(), nullable=True),
        sa.Column('days_of_week', sa.String(length=100), nullable=True),
        sa.Column('monthly_option', sa.String(length=20), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        sa.Column('week_of_month', sa.Integer(), nullable=True),
        sa.Column('month_of_year', sa.Integer(), nullable=True),
        sa.Column('end_type', sa.String(length=20), nullable=False, server_default='never'),
        sa.Column('end_count', sa.Integer(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('excluded_dates', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_task_recurrences_workspace_id', 'task_recurrences', ['workspace_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workspace_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('assigned_member_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='todo'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('time_slot', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('task_recurrence_id', sa.Integer(), sa.ForeignKey('task_recurrences.id'), nullable=True),
        sa.Column('is_recurring_instance', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('original_task_id', sa.Integer(), nullable=True),
        sa.Column('sequence_index', sa.Integer(), nullable=True),
    )

    # Due-date queries scan by workspace and date range
    op.create_index('ix_tasks_workspace_id', 'tasks', ['workspace_id'])
    op.create_index('ix_tasks_project_id', 'tasks', ['project_id'])
    op.create_index('ix_tasks_due_date', 'tasks', ['due_date'])
    op.create_index('ix_tasks_task_recurrence_id', 'tasks', ['task_recurrence_id'])


def downgrade():
    op.drop_index('ix_tasks_task_recurrence_id', table_name='tasks')
    op.drop_index('ix_tasks_due_date', table_name='tasks')
    op.drop_index('ix_tasks_project_id', table_name='tasks')
    op.drop_index('ix_tasks_workspace_id', table_name='tasks')
    op.drop_table('tasks')

    op.drop_index('ix_task_recurrences_workspace_id', table_name='task_recurrences')
    op.drop_table('task_recurrences')
