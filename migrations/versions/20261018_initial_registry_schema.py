"""
Initial registry schema.

Fact tables (residents, migration records, households, memberships), the
derived tables owned by the recomputation engine (sectoral profiles, household
aggregates) and the reconciliation run log.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'registry_initial_20261018'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'residents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('middle_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('birthdate', sa.Date(), nullable=False),
        sa.Column('employment_status', sa.String(32), nullable=False, server_default='not_in_labor_force'),
        sa.Column('education_status', sa.String(32), nullable=True),
        sa.Column('education_attainment', sa.String(32), nullable=True),
        sa.Column('salary', sa.Numeric(12, 2), nullable=True),
        sa.Column('is_registered_senior_citizen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_solo_parent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_indigenous_people', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_person_with_disability', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_overseas_filipino_worker', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('salary IS NULL OR salary >= 0', name='ck_residents_salary_non_negative'),
    )
    op.create_index('idx_residents_last_name', 'residents', ['last_name'])
    op.create_index('idx_residents_birthdate', 'residents', ['birthdate'])

    op.create_table(
        'resident_migrant_info',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('resident_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('residents.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('previous_barangay_code', sa.String(10), nullable=True),
        sa.Column('previous_city_municipality_code', sa.String(10), nullable=True),
        sa.Column('previous_province_code', sa.String(10), nullable=True),
        sa.Column('previous_region_code', sa.String(10), nullable=True),
        sa.Column('previous_country', sa.String(100), nullable=True),
        sa.Column('date_of_transfer', sa.Date(), nullable=True),
        sa.Column('reason_for_leaving', sa.Text(), nullable=True),
        sa.Column('reason_for_transferring', sa.Text(), nullable=True),
        sa.Column('length_of_stay_previous_months', sa.Integer(), nullable=True),
        sa.Column('duration_of_stay_current_months', sa.Integer(), nullable=True),
        sa.Column('is_intending_to_return', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'households',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('household_head_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('residents.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'household_members',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('household_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('households.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resident_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('residents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('relationship_to_head', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('move_in_date', sa.Date(), nullable=True),
        sa.Column('move_out_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_household_members_household_active', 'household_members', ['household_id', 'is_active'])
    op.create_index(
        'uq_household_members_active_resident',
        'household_members',
        ['resident_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )

    op.create_table(
        'resident_sectoral_profiles',
        sa.Column('resident_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('residents.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('is_labor_force_employed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_unemployed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_out_of_school_children', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_out_of_school_youth', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_senior_citizen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_registered_senior_citizen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_solo_parent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_indigenous_people', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_person_with_disability', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_overseas_filipino_worker', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_migrant', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('as_of', sa.Date(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'household_aggregates',
        sa.Column('household_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('households.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('member_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('migrant_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_monthly_income', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('income_class', sa.String(32), nullable=False),
        sa.Column('household_name', sa.String(100), nullable=True),
        sa.Column('as_of', sa.Date(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_household_aggregates_income_class', 'household_aggregates', ['income_class'])

    op.create_table(
        'reconciliation_runs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('as_of', sa.Date(), nullable=False),
        sa.Column('residents_checked', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('households_checked', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('profile_corrections', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('aggregate_corrections', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_log', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_reconciliation_runs_created_at', 'reconciliation_runs', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_reconciliation_runs_created_at', table_name='reconciliation_runs')
    op.drop_table('reconciliation_runs')
    op.drop_index('idx_household_aggregates_income_class', table_name='household_aggregates')
    op.drop_table('household_aggregates')
    op.drop_table('resident_sectoral_profiles')
    op.drop_index('uq_household_members_active_resident', table_name='household_members')
    op.drop_index('idx_household_members_household_active', table_name='household_members')
    op.drop_table('household_members')
    op.drop_table('households')
    op.drop_table('resident_migrant_info')
    op.drop_index('idx_residents_birthdate', table_name='residents')
    op.drop_index('idx_residents_last_name', table_name='residents')
    op.drop_table('residents')
