"""initial schema

Revision ID: 4a1d2c9e7b30
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

# revision identifiers, used by Alembic.
revision = '4a1d2c9e7b30'
down_revision = None

from alembic import op
import sqlalchemy as sa


user_role = sa.Enum('ADMIN', 'REVIEWER', 'SPEAKER', name='userrole')
proposal_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='proposalstatus')


def upgrade():
    op.create_table('user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('created', sa.DateTime(), nullable=False),
        sa.Column('modified', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user')),
    )
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)
    op.create_index('ix_user_email_lower', 'user', [sa.text('lower(email)')], unique=True)

    op.create_table('tag',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tag')),
        sa.UniqueConstraint('name', name=op.f('uq_tag_name')),
    )

    op.create_table('proposal',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('file_path', sa.String(), nullable=True),
        sa.Column('status', proposal_status, nullable=False),
        sa.Column('created', sa.DateTime(), nullable=False),
        sa.Column('modified', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name=op.f('fk_proposal_user_id_user'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_proposal')),
    )
    op.create_index(op.f('ix_proposal_user_id'), 'proposal', ['user_id'], unique=False)
    op.create_index(op.f('ix_proposal_title'), 'proposal', ['title'], unique=False)
    op.create_index(op.f('ix_proposal_status'), 'proposal', ['status'], unique=False)
    op.create_index(op.f('ix_proposal_created'), 'proposal', ['created'], unique=False)

    op.create_table('proposal_tag',
        sa.Column('proposal_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['proposal_id'], ['proposal.id'], name=op.f('fk_proposal_tag_proposal_id_proposal'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tag.id'], name=op.f('fk_proposal_tag_tag_id_tag'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('proposal_id', 'tag_id', name=op.f('pk_proposal_tag')),
    )

    op.create_table('review',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('proposal_id', sa.Integer(), nullable=False),
        sa.Column('reviewer_id', sa.Integer(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.String(), nullable=True),
        sa.Column('created', sa.DateTime(), nullable=False),
        sa.Column('modified', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['proposal_id'], ['proposal.id'], name=op.f('fk_review_proposal_id_proposal'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewer_id'], ['user.id'], name=op.f('fk_review_reviewer_id_user'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_review')),
        sa.UniqueConstraint('proposal_id', 'reviewer_id', name='uq_review_proposal_reviewer'),
    )
    op.create_index(op.f('ix_review_proposal_id'), 'review', ['proposal_id'], unique=False)
    op.create_index(op.f('ix_review_reviewer_id'), 'review', ['reviewer_id'], unique=False)
    op.create_index(op.f('ix_review_created'), 'review', ['created'], unique=False)

    op.create_table('email_job',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(), nullable=False),
        sa.Column('text_body', sa.String(), nullable=False),
        sa.Column('created', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_email_job')),
    )

    op.create_table('email_recipient',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('sent', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['email_job.id'], name=op.f('fk_email_recipient_job_id_email_job'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name=op.f('fk_email_recipient_user_id_user'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_email_recipient')),
    )

    op.create_table('scheduled_task_result',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('duration', sa.Interval(), nullable=True),
        sa.Column('result', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_scheduled_task_result')),
    )
    op.create_index(op.f('ix_scheduled_task_result_name'), 'scheduled_task_result', ['name'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_scheduled_task_result_name'), table_name='scheduled_task_result')
    op.drop_table('scheduled_task_result')
    op.drop_table('email_recipient')
    op.drop_table('email_job')
    op.drop_index(op.f('ix_review_created'), table_name='review')
    op.drop_index(op.f('ix_review_reviewer_id'), table_name='review')
    op.drop_index(op.f('ix_review_proposal_id'), table_name='review')
    op.drop_table('review')
    op.drop_table('proposal_tag')
    op.drop_index(op.f('ix_proposal_created'), table_name='proposal')
    op.drop_index(op.f('ix_proposal_status'), table_name='proposal')
    op.drop_index(op.f('ix_proposal_title'), table_name='proposal')
    op.drop_index(op.f('ix_proposal_user_id'), table_name='proposal')
    op.drop_table('proposal')
    op.drop_table('tag')
    op.drop_index('ix_user_email_lower', table_name='user')
    op.drop_index(op.f('ix_user_email'), table_name='user')
    op.drop_table('user')
    proposal_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
