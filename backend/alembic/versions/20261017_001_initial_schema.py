"""Initial schema for the reel pipeline

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates all Reelpipe database tables:
- users: Project owners (provisioned by the surrounding application)
- video_projects: One uploaded source video and its pipeline state
- video_segments: Selected sub-clips of a project's source video
- video_renders: Submissions to the external render service
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(50), unique=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'])

    # Create video_projects table
    op.create_table(
        'video_projects',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('post_id', sa.String(36), nullable=True),
        # Source video
        sa.Column('source_video_path', sa.String(500), nullable=False),
        sa.Column('source_video_url', sa.Text(), nullable=True),
        sa.Column('source_duration_ms', sa.Integer(), nullable=True),
        sa.Column('source_width', sa.Integer(), nullable=True),
        sa.Column('source_height', sa.Integer(), nullable=True),
        sa.Column('source_file_size', sa.BigInteger(), nullable=True),
        # Derived artifacts
        sa.Column('frame_analysis', sa.JSON(), nullable=False),
        sa.Column('transcript', sa.JSON(), nullable=True),
        # Editing parameters
        sa.Column('target_duration_sec', sa.Integer(), nullable=False, default=30),
        sa.Column('subtitle_style', sa.String(20), nullable=False, default='bold_center'),
        sa.Column('transition_style', sa.String(20), nullable=False, default='smooth'),
        sa.Column('background_music_url', sa.Text(), nullable=True),
        # Render linkage and output
        sa.Column('render_job_id', sa.String(100), nullable=True),
        sa.Column('rendered_video_path', sa.String(500), nullable=True),
        sa.Column('rendered_video_url', sa.Text(), nullable=True),
        # Status
        sa.Column('status', sa.String(30), nullable=False, default='uploaded'),
        sa.Column('error_message', sa.Text(), nullable=True),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_video_projects_user_id', 'video_projects', ['user_id'])
    op.create_index('ix_video_projects_status', 'video_projects', ['status'])
    op.create_index('ix_video_projects_created_at', 'video_projects', ['created_at'])

    # Create video_segments table
    op.create_table(
        'video_segments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('video_projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('segment_index', sa.Integer(), nullable=False),
        sa.Column('start_ms', sa.Integer(), nullable=False),
        sa.Column('end_ms', sa.Integer(), nullable=False),
        # Selection output
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('narrative_role', sa.String(20), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('transcript_text', sa.Text(), nullable=True),
        sa.Column('subtitle_text', sa.Text(), nullable=True),
        # Flags
        sa.Column('is_included', sa.Boolean(), nullable=False, default=True),
        sa.Column('is_user_modified', sa.Boolean(), nullable=False, default=False),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('end_ms > start_ms', name='ck_video_segments_time_range'),
    )
    op.create_index('ix_video_segments_project_id', 'video_segments', ['project_id'])
    op.create_index('ix_video_segments_user_id', 'video_segments', ['user_id'])

    # Create video_renders table
    op.create_table(
        'video_renders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('video_projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('external_job_id', sa.String(100), nullable=False),
        # Status
        sa.Column('status', sa.String(20), nullable=False, default='queued'),
        sa.Column('error_message', sa.Text(), nullable=True),
        # Input snapshot
        sa.Column('composition', sa.JSON(), nullable=False),
        # Output
        sa.Column('output_url', sa.Text(), nullable=True),
        sa.Column('stored_video_path', sa.String(500), nullable=True),
        sa.Column('stored_video_url', sa.Text(), nullable=True),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_video_renders_external_job_id', 'video_renders', ['external_job_id'], unique=True)
    op.create_index('ix_video_renders_project_id', 'video_renders', ['project_id'])
    op.create_index('ix_video_renders_user_id', 'video_renders', ['user_id'])
    op.create_index('ix_video_renders_status', 'video_renders', ['status'])
    op.create_index('ix_video_renders_created_at', 'video_renders', ['created_at'])


def downgrade() -> None:
    op.drop_table('video_renders')
    op.drop_table('video_segments')
    op.drop_table('video_projects')
    op.drop_table('users')
