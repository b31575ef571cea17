"""Initial schema: users, agents, question bank, knowledge sources, interviews

Revision ID: 0001_initial
Revises: None
Create Date: 2025-09-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(120)),
        sa.Column('password_hash', sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'interview_agents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('creator_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('gender', sa.String(20), nullable=False),
        sa.Column('appearance', sa.String(255), nullable=False),
        sa.Column('voice_type', sa.String(100), nullable=False),
        sa.Column('conversational_style', sa.String(20), nullable=False),
        sa.Column('enable_follow_ups', sa.Boolean(), nullable=False),
        sa.Column('max_follow_ups', sa.Integer(), nullable=False),
        sa.Column('shareable_link', sa.String(32), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('total_marks', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_interview_agents_creator_id', 'interview_agents', ['creator_id'])
    op.create_index('ix_interview_agents_shareable_link', 'interview_agents', ['shareable_link'], unique=True)
    op.create_index('ix_interview_agents_is_published', 'interview_agents', ['is_published'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('agent_id', sa.Integer(), sa.ForeignKey('interview_agents.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('marks', sa.Integer(), nullable=False),
        sa.Column('options', sa.JSON()),
        sa.Column('correct_option', sa.Integer()),
        sa.Column('key_points', sa.JSON()),
        *_timestamps(),
    )
    op.create_index('ix_questions_agent_id', 'questions', ['agent_id'])
    op.create_index('ix_questions_agent_order', 'questions', ['agent_id', 'order'])

    op.create_table(
        'knowledge_sources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('agent_id', sa.Integer(), sa.ForeignKey('interview_agents.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('scraped_content', sa.Text()),
        sa.Column('document_url', sa.String(1024)),
        sa.Column('metadata', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_knowledge_sources_agent_id', 'knowledge_sources', ['agent_id'])

    # agent_id has no foreign key: interviews outlive their agent
    op.create_table(
        'interviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('candidate_name', sa.String(200), nullable=False),
        sa.Column('candidate_email', sa.String(254), nullable=False),
        sa.Column('candidate_user_id', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('phase', sa.String(20), nullable=False),
        sa.Column('total_score', sa.Integer(), nullable=False),
        sa.Column('max_score', sa.Integer(), nullable=False),
        sa.Column('question_ids', sa.JSON(), nullable=False),
        sa.Column('candidate_intro', sa.Text()),
        sa.Column('recording_url', sa.String(1024)),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime()),
        *_timestamps(),
    )
    op.create_index('ix_interviews_agent_id', 'interviews', ['agent_id'])
    op.create_index('ix_interviews_candidate_email', 'interviews', ['candidate_email'])
    op.create_index('ix_interviews_status', 'interviews', ['status'])
    op.create_index('ix_interviews_agent_status', 'interviews', ['agent_id', 'status'])

    op.create_table(
        'interview_responses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('interview_id', sa.Integer(), sa.ForeignKey('interviews.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('candidate_answer', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean()),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('evaluation_feedback', sa.Text()),
        sa.Column('follow_up_questions', sa.JSON(), nullable=False),
        sa.Column('follow_up_answers', sa.JSON(), nullable=False),
        sa.Column('answered_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('interview_id', 'question_id', name='uq_response_interview_question'),
    )
    op.create_index('ix_interview_responses_interview_id', 'interview_responses', ['interview_id'])
    op.create_index('ix_interview_responses_question_id', 'interview_responses', ['question_id'])

    op.create_table(
        'recordings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('interview_id', sa.Integer(), sa.ForeignKey('interviews.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('storage_url', sa.String(1024), nullable=False),
        sa.Column('public_url', sa.String(1024)),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('duration_sec', sa.Integer()),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_recordings_interview_id', 'recordings', ['interview_id'])
    op.create_index('ix_recordings_storage_key', 'recordings', ['storage_key'])


def downgrade() -> None:
    for table in ('recordings', 'interview_responses', 'interviews', 'knowledge_sources',
                  'questions', 'interview_agents', 'users'):
        op.drop_table(table)
