"""Initial Miss Belle database schema

Revision ID: 0001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create utility functions
    op.execute('''
        CREATE OR REPLACE FUNCTION set_updated_at()
        RETURNS TRIGGER LANGUAGE plpgsql AS $$
        BEGIN
          NEW.updated_at = now();
          RETURN NEW;
        END;
        $$;
    ''')

    # Create profiles table
    op.create_table('profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("role IN ('super_admin', 'user')", name='ck_profiles_role')
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    # Create login_sessions table
    op.create_table('login_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_login_sessions_profile_id', 'login_sessions', ['profile_id'])

    # Create procedures table
    op.create_table('procedures',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('default_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('duration_minutes > 0', name='ck_procedures_duration_positive'),
        sa.CheckConstraint('default_price >= 0', name='ck_procedures_price_non_negative')
    )

    # Create patients table
    op.create_table('patients',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('professional_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['professional_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_patients_professional_id', 'patients', ['professional_id'])

    # Create appointments table
    op.create_table('appointments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('patient_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('procedure_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('professional_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.Time(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='scheduled'),
        sa.Column('cancellation_reason', sa.String(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.ForeignKeyConstraint(['procedure_id'], ['procedures.id']),
        sa.ForeignKeyConstraint(['professional_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'completed', 'cancelled')",
            name='ck_appointments_status'
        )
    )
    op.create_index('ix_appointments_appointment_date', 'appointments', ['appointment_date'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index('ix_appointments_professional_id', 'appointments', ['professional_id'])
    # One non-cancelled appointment per professional slot
    op.create_index(
        'uq_appointments_active_slot',
        'appointments',
        ['professional_id', 'appointment_date', 'appointment_time'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'")
    )

    # Create cash_register_closings table
    op.create_table('cash_register_closings',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('professional_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('closing_date', sa.Date(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, server_default='0.00'),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('is_finalized', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['professional_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('professional_id', 'closing_date', name='uq_cash_closings_professional_date')
    )
    op.create_index('ix_cash_register_closings_closing_date', 'cash_register_closings', ['closing_date'])
    op.create_index('ix_cash_register_closings_professional_id', 'cash_register_closings', ['professional_id'])

    # Create cash_register_transactions table
    op.create_table('cash_register_transactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('closing_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appointment_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['closing_id'], ['cash_register_closings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount >= 0', name='ck_cash_transactions_amount_non_negative')
    )
    op.create_index('ix_cash_register_transactions_closing_id', 'cash_register_transactions', ['closing_id'])

    # Finalized closings reject new and removed transactions
    op.execute('''
        CREATE OR REPLACE FUNCTION reject_finalized_closing_change()
        RETURNS TRIGGER LANGUAGE plpgsql AS $$
        DECLARE
          target_closing UUID;
        BEGIN
          IF TG_OP = 'DELETE' THEN
            target_closing := OLD.closing_id;
          ELSE
            target_closing := NEW.closing_id;
          END IF;

          IF EXISTS (
            SELECT 1 FROM cash_register_closings
            WHERE id = target_closing AND is_finalized
          ) THEN
            RAISE EXCEPTION 'cash register closing % is finalized', target_closing
              USING ERRCODE = 'check_violation';
          END IF;

          IF TG_OP = 'DELETE' THEN
            RETURN OLD;
          END IF;
          RETURN NEW;
        END;
        $$;
    ''')
    op.execute('''
        CREATE TRIGGER trg_cash_transactions_open_closing
        BEFORE INSERT OR DELETE ON cash_register_transactions
        FOR EACH ROW EXECUTE FUNCTION reject_finalized_closing_change();
    ''')

    # updated_at triggers
    for table in ('profiles', 'procedures', 'patients', 'appointments', 'cash_register_closings'):
        op.execute(f'''
            CREATE TRIGGER trg_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION set_updated_at();
        ''')


def downgrade() -> None:
    for table in ('profiles', 'procedures', 'patients', 'appointments', 'cash_register_closings'):
        op.execute(f'DROP TRIGGER IF EXISTS trg_{table}_updated_at ON {table};')
    op.execute('DROP TRIGGER IF EXISTS trg_cash_transactions_open_closing ON cash_register_transactions;')
    op.execute('DROP FUNCTION IF EXISTS reject_finalized_closing_change();')

    op.drop_table('cash_register_transactions')
    op.drop_table('cash_register_closings')
    op.drop_index('uq_appointments_active_slot', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('patients')
    op.drop_table('procedures')
    op.drop_table('login_sessions')
    op.drop_table('profiles')

    op.execute('DROP FUNCTION IF EXISTS set_updated_at();')
