"""create_entry_and_projection_tables

Revision ID: 3f9c2a1e7b40
Revises:
Create Date: 2026-01-05 00:01:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9c2a1e7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


entry_type = sa.Enum('income', 'expense', name='entry_type')
recurrence_type = sa.Enum('one_time', 'weekly', 'monthly', name='recurrence_type')
exception_type = sa.Enum('override', 'skip', name='exception_type')


def upgrade() -> None:
    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Entry series
    op.create_table(
        'entry_series',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('parent_series_id', sa.String(), nullable=True),
        sa.Column('entry_type', entry_type, nullable=False),
        sa.Column('recurrence_type', recurrence_type, nullable=False),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('weekday', sa.Integer(), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_series_id'], ['entry_series.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('length(title) > 0 AND length(title) <= 120', name='ck_entry_series_title'),
        sa.CheckConstraint('description IS NULL OR length(description) <= 500', name='ck_entry_series_description'),
        sa.CheckConstraint('amount > 0', name='ck_entry_series_amount'),
        sa.CheckConstraint('end_date IS NULL OR end_date >= start_date', name='ck_entry_series_date_range'),
        sa.CheckConstraint('weekday IS NULL OR (weekday >= 0 AND weekday <= 6)', name='ck_entry_series_weekday'),
        sa.CheckConstraint(
            'day_of_month IS NULL OR (day_of_month >= 1 AND day_of_month <= 31)',
            name='ck_entry_series_day_of_month',
        ),
        sa.CheckConstraint(
            "recurrence_type != 'one_time' OR (weekday IS NULL AND day_of_month IS NULL)",
            name='recurrence_fields_one_time',
        ),
        sa.CheckConstraint(
            "recurrence_type != 'weekly' OR (weekday IS NOT NULL AND day_of_month IS NULL)",
            name='recurrence_fields_weekly',
        ),
        sa.CheckConstraint(
            "recurrence_type != 'monthly' OR (weekday IS NULL AND day_of_month IS NOT NULL)",
            name='recurrence_fields_monthly',
        ),
    )
    op.create_index('ix_entry_series_user_id', 'entry_series', ['user_id'])
    op.create_index('ix_entry_series_user_start', 'entry_series', ['user_id', 'start_date'])
    op.create_index('ix_entry_series_parent', 'entry_series', ['parent_series_id'])

    # A series and its direct successors never cover the same date
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
        op.execute(
            "ALTER TABLE entry_series ADD CONSTRAINT ex_entry_series_lineage_overlap "
            "EXCLUDE USING gist ("
            "user_id WITH =, "
            "(COALESCE(parent_series_id, id)) WITH =, "
            "(daterange(start_date, end_date, '[]')) WITH &&"
            ")"
        )

    # Series exceptions
    op.create_table(
        'series_exceptions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('series_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('exception_date', sa.Date(), nullable=False),
        sa.Column('exception_type', exception_type, nullable=False),
        sa.Column('title', sa.String(length=120), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['series_id'], ['entry_series.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('series_id', 'exception_date', name='unique_series_exception'),
        sa.CheckConstraint(
            "exception_type != 'override' OR (title IS NOT NULL AND amount IS NOT NULL)",
            name='override_requires_fields',
        ),
        sa.CheckConstraint(
            "exception_type != 'skip' OR (title IS NULL AND description IS NULL AND amount IS NULL)",
            name='skip_no_override_fields',
        ),
        sa.CheckConstraint('amount IS NULL OR amount > 0', name='ck_series_exceptions_amount'),
    )
    op.create_index('ix_series_exceptions_user_id', 'series_exceptions', ['user_id'])
    op.create_index('ix_series_exceptions_series_date', 'series_exceptions', ['series_id', 'exception_date'])

    # Starting balances
    op.create_table(
        'starting_balances',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.CheckConstraint('amount >= 0', name='ck_starting_balances_amount'),
    )

    # Analytics events
    op.create_table(
        'analytics_events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('event_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_analytics_events_user_type', 'analytics_events', ['user_id', 'event_type'])


def downgrade() -> None:
    op.drop_index('ix_analytics_events_user_type', table_name='analytics_events')
    op.drop_table('analytics_events')
    op.drop_table('starting_balances')
    op.drop_index('ix_series_exceptions_series_date', table_name='series_exceptions')
    op.drop_index('ix_series_exceptions_user_id', table_name='series_exceptions')
    op.drop_table('series_exceptions')
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('ALTER TABLE entry_series DROP CONSTRAINT IF EXISTS ex_entry_series_lineage_overlap')
    op.drop_index('ix_entry_series_parent', table_name='entry_series')
    op.drop_index('ix_entry_series_user_start', table_name='entry_series')
    op.drop_index('ix_entry_series_user_id', table_name='entry_series')
    op.drop_table('entry_series')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    exception_type.drop(op.get_bind(), checkfirst=True)
    recurrence_type.drop(op.get_bind(), checkfirst=True)
    entry_type.drop(op.get_bind(), checkfirst=True)
