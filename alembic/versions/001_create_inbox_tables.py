"""Create conversation and support ticket tables

Revision ID: 001_create_inbox_tables
Revises: 
Create Date: 2026-03-02 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_inbox_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create users, companies, jobs, applications, messages and tickets."""
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('avatar_url', sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'companies',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('logo_url', sa.String(length=1024), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_companies_slug'),
    )
    op.create_index('idx_company_slug', 'companies', ['slug'])

    op.create_table(
        'company_members',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='MEMBER'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'company_id', name='uq_company_member_user_company'),
    )
    op.create_index('idx_company_members_company', 'company_members', ['company_id'])
    op.create_index('idx_company_members_user', 'company_members', ['user_id'])
    op.create_index('idx_company_members_company_role', 'company_members', ['company_id', 'role'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_jobs_company', 'jobs', ['company_id'])

    op.create_table(
        'applications',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('job_id', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'job_id', name='uq_application_user_job'),
    )
    op.create_index('idx_applications_user', 'applications', ['user_id'])
    op.create_index('idx_applications_job', 'applications', ['job_id'])
    op.create_index('idx_applications_applied_at', 'applications', ['applied_at'])

    op.create_table(
        'messages',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('application_id', sa.BigInteger(), nullable=False),
        sa.Column('sender_id', sa.BigInteger(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('message_type', sa.String(length=20), nullable=False, server_default='TEXT'),
        sa.Column('file_url', sa.String(length=2048), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_messages_application_created', 'messages', ['application_id', 'created_at'])
    op.create_index('idx_messages_unread', 'messages', ['application_id', 'is_read', 'sender_id'])

    op.create_table(
        'company_tickets',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('applicant_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='OPEN'),
        sa.Column('applicant_last_viewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('company_last_viewed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['applicant_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_tickets_company_status', 'company_tickets', ['company_id', 'status'])
    op.create_index(
        'idx_tickets_applicant_company_status',
        'company_tickets',
        ['applicant_id', 'company_id', 'status'],
    )
    op.create_index('idx_tickets_applicant_created', 'company_tickets', ['applicant_id', 'created_at'])
    op.create_index('idx_tickets_updated_at', 'company_tickets', ['updated_at'])

    op.create_table(
        'company_ticket_messages',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('ticket_id', sa.BigInteger(), nullable=False),
        sa.Column('sender_id', sa.BigInteger(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['ticket_id'], ['company_tickets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index(
        'idx_ticket_messages_ticket_created',
        'company_ticket_messages',
        ['ticket_id', 'created_at'],
    )


def downgrade() -> None:
    """Drop all inbox tables."""
    op.drop_index('idx_ticket_messages_ticket_created', table_name='company_ticket_messages')
    op.drop_table('company_ticket_messages')

    op.drop_index('idx_tickets_updated_at', table_name='company_tickets')
    op.drop_index('idx_tickets_applicant_created', table_name='company_tickets')
    op.drop_index('idx_tickets_applicant_company_status', table_name='company_tickets')
    op.drop_index('idx_tickets_company_status', table_name='company_tickets')
    op.drop_table('company_tickets')

    op.drop_index('idx_messages_unread', table_name='messages')
    op.drop_index('idx_messages_application_created', table_name='messages')
    op.drop_table('messages')

    op.drop_index('idx_applications_applied_at', table_name='applications')
    op.drop_index('idx_applications_job', table_name='applications')
    op.drop_index('idx_applications_user', table_name='applications')
    op.drop_table('applications')

    op.drop_index('idx_jobs_company', table_name='jobs')
    op.drop_table('jobs')

    op.drop_index('idx_company_members_company_role', table_name='company_members')
    op.drop_index('idx_company_members_user', table_name='company_members')
    op.drop_index('idx_company_members_company', table_name='company_members')
    op.drop_table('company_members')

    op.drop_index('idx_company_slug', table_name='companies')
    op.drop_table('companies')

    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')
