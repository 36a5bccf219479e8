"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table('projects',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=300), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='Planning'),
        sa.Column('created_by', sa.String(length=120)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )

    op.create_table('tasks',
        sa.Column('pk', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('project_id', sa.String(length=64), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('task_id', sa.String(length=120), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('name', sa.String(length=300), nullable=False),
        sa.Column('start', sa.Date(), nullable=False),
        sa.Column('end', sa.Date(), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('dependencies', sa.Text()),
        sa.Column('custom_class', sa.String(length=200)),
        sa.UniqueConstraint('project_id', 'task_id', name='uq_tasks_project_task'),
    )
    op.create_index('ix_tasks_project_id', 'tasks', ['project_id'])

def downgrade() -> None:
    op.drop_index('ix_tasks_project_id', table_name='tasks')
    op.drop_table('tasks')
    op.drop_table('projects')
