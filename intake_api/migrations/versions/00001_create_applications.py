"""Create applications and application_skills tables.

Revision ID: 00001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '00001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # applications
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('full_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.Text(), nullable=False),
        sa.Column('location', sa.Text(), nullable=False),
        sa.Column('primary_role', sa.String(100), nullable=False),
        sa.Column('custom_role', sa.String(100), nullable=True),
        sa.Column('experience', sa.String(10), nullable=False),
        sa.Column('portfolio_links', sa.JSON(), nullable=False),
        sa.Column('cv_url', sa.String(1024), nullable=True),
        sa.Column('cv_public_id', sa.String(512), nullable=True),
        sa.Column('cv_original_name', sa.String(255), nullable=True),
        sa.Column('cv_size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cv_mimetype', sa.String(255), nullable=True),
        sa.Column('availability', sa.String(20), nullable=False),
        sa.Column('availability_other', sa.String(200), nullable=True),
        sa.Column('uk_hours', sa.String(20), nullable=False),
        sa.Column('office_work', sa.String(20), nullable=False),
        sa.Column('salary_range', sa.String(50), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('uk_clients', sa.String(10), nullable=False),
        sa.Column('uk_clients_details', sa.Text(), nullable=True),
        sa.Column('interest', sa.Text(), nullable=False),
        sa.Column('accuracy_consent', sa.Boolean(), nullable=False),
        sa.Column('data_consent', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('submission_date', sa.DateTime(), nullable=False),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_applications_email'),
    )
    op.create_index(
        'ix_applications_email_submission_date',
        'applications',
        ['email', sa.text('submission_date DESC')],
    )
    op.create_index(
        'ix_applications_status_submission_date',
        'applications',
        ['status', sa.text('submission_date DESC')],
    )
    op.create_index('ix_applications_role_experience', 'applications', ['primary_role', 'experience'])
    op.create_index('ix_applications_availability', 'applications', ['availability'])

    # application_skills
    op.create_table(
        'application_skills',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('application_id', 'name', name='uq_application_skills_app_name'),
    )
    op.create_index('ix_application_skills_name', 'application_skills', ['name'])


def downgrade() -> None:
    op.drop_index('ix_application_skills_name', table_name='application_skills')
    op.drop_table('application_skills')

    op.drop_index('ix_applications_availability', table_name='applications')
    op.drop_index('ix_applications_role_experience', table_name='applications')
    op.drop_index('ix_applications_status_submission_date', table_name='applications')
    op.drop_index('ix_applications_email_submission_date', table_name='applications')
    op.drop_table('applications')
