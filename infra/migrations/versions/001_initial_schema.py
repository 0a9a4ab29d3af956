"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2024-06-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create initial database schema."""

    # Create workspaces table
    op.create_table('workspaces',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # Create custom rules table
    op.create_table('custom_rules',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('workspace_id', sa.String(64), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_custom_rules_workspace_id', 'custom_rules', ['workspace_id'])

    # Create reports table
    op.create_table('reports',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('workspace_id', sa.String(64), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('overall_score', sa.Integer(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('checks', sa.JSON(), nullable=True),
        sa.Column('source_content', sa.Text(), nullable=True),
        sa.Column('analysis_type', sa.String(16), nullable=False),
        sa.Column('custom_rules_applied', sa.JSON(), nullable=True),
        sa.Column('campaign_name', sa.String(255), nullable=True),
        sa.Column('influencer_handle', sa.String(255), nullable=True),
        sa.Column('client_brand', sa.String(255), nullable=True),
        sa.Column('user_name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(32), server_default='pending', nullable=False),
        sa.Column('strategic_insight', sa.Text(), nullable=True),
        sa.Column('suggested_revision', sa.Text(), nullable=True),
        sa.Column('media_key', sa.String(512), nullable=True),
        sa.Column('media_mime_type', sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reports_workspace_id', 'reports', ['workspace_id'])
    op.create_index('ix_reports_timestamp', 'reports', ['timestamp'])
    op.create_index('ix_reports_status', 'reports', ['status'])

    # Create certificates table
    op.create_table('certificates',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('workspace_id', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('report', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_certificates_workspace_id', 'certificates', ['workspace_id'])
    op.create_index('ix_certificates_created_at', 'certificates', ['created_at'])

    # Create revision requests table
    op.create_table('revision_requests',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('workspace_id', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(16), server_default='pending', nullable=False),
        sa.Column('revised_content', sa.Text(), nullable=True),
        sa.Column('report', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_revision_requests_workspace_id', 'revision_requests', ['workspace_id'])

    # Create feedback table
    op.create_table('feedback',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('workspace_id', sa.String(64), nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_feedback_workspace_id', 'feedback', ['workspace_id'])


def downgrade() -> None:
    """Drop all tables."""

    # Drop tables in reverse order due to foreign keys
    op.drop_table('feedback')
    op.drop_table('revision_requests')
    op.drop_table('certificates')
    op.drop_table('reports')
    op.drop_table('custom_rules')
    op.drop_table('workspaces')
