"""Create saved_reports table

Revision ID: create_saved_reports
Revises:
Create Date: 2026-10-19 09:00:00.000000

The reportable maintenance tables (organizations, users, assets, parts,
preventive_maintenance, work_orders, audit_logs) belong to the core CMMS
schema; this revision only adds the saved report definitions.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_saved_reports'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create saved_reports with schedule metadata."""
    op.create_table(
        'saved_reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('report_type', sa.String(length=50), nullable=False),
        sa.Column('configuration', sa.JSON(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_scheduled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            'schedule_frequency',
            sa.Enum('DAILY', 'WEEKLY', 'MONTHLY', 'QUARTERLY', name='reportschedulefrequency'),
            nullable=True,
        ),
        sa.Column('schedule_recipients', sa.JSON(), nullable=True),
        sa.Column('schedule_time', sa.String(length=5), nullable=True),
        sa.Column('schedule_day_of_week', sa.Integer(), nullable=True),
        sa.Column('schedule_day_of_month', sa.Integer(), nullable=True),
        sa.Column('last_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_saved_reports_organization_id_organizations',
        ),
        sa.ForeignKeyConstraint(
            ['created_by_id'], ['users.id'],
            name='fk_saved_reports_created_by_id_users',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_saved_reports'),
    )
    op.create_index('ix_saved_reports_report_type', 'saved_reports', ['report_type'])
    op.create_index('ix_saved_reports_organization_id', 'saved_reports', ['organization_id'])


def downgrade() -> None:
    """Drop saved_reports."""
    op.drop_index('ix_saved_reports_organization_id', 'saved_reports')
    op.drop_index('ix_saved_reports_report_type', 'saved_reports')
    op.drop_table('saved_reports')
    sa.Enum(name='reportschedulefrequency').drop(op.get_bind(), checkfirst=True)
